"""Single-turn dispatcher: one inbound message in, at most one reply out."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from qna_bot.config import BotMessages
from qna_bot.obs.telemetry import TelemetrySink
from qna_bot.qna.client import ScoringOracle
from qna_bot.types import InboundMessage, TelemetryEvent

logger = logging.getLogger(__name__)

ReplySender = Callable[[str], Awaitable[None]]


class TurnDispatcher:
    """Answers each message with the oracle's top-ranked answer.

    Non-message activities get an "event detected" notice and blank messages
    get a prompt to say something; neither reaches the oracle. Answered turns
    are recorded on the telemetry sink. The dispatcher keeps no per-turn
    state, so the host may run turns concurrently against one instance.
    """

    def __init__(
        self,
        *,
        oracle: ScoringOracle,
        telemetry: TelemetrySink,
        messages: BotMessages | None = None,
    ) -> None:
        self.oracle = oracle
        self.telemetry = telemetry
        self.messages = messages or BotMessages()

    async def handle_turn(self, message: InboundMessage, send_reply: ReplySender) -> None:
        logger.debug("Turn start: type=%s", message.type)

        if not message.is_message:
            await send_reply(self.messages.event_detected.format(type=message.type))
            return

        text = message.text
        if text is None or not text.strip():
            await send_reply(self.messages.empty_input)
            return

        # Oracle failures propagate to the host's turn error handler.
        results = await self.oracle.get_answers(text)
        if not results:
            logger.info("No answer found for query")
            await send_reply(self.messages.no_answer)
            return

        top_result = results[0]
        self._track(TelemetryEvent.from_answer(text, top_result))
        await send_reply(top_result.answer_text)

    def _track(self, event: TelemetryEvent) -> None:
        try:
            self.telemetry.track_event(event.name, event.to_properties())
        except Exception:
            logger.warning("Telemetry emission failed; reply unaffected", exc_info=True)
