"""FastAPI host for the QnA bot: activity endpoint, turn error handling, health."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from pydantic import BaseModel

from qna_bot.bot.dispatcher import TurnDispatcher
from qna_bot.config import BotMessages, BotSettings, configure_logging
from qna_bot.obs.telemetry import NullTelemetrySink, build_telemetry_sink
from qna_bot.qna.client import QnAMakerClient
from qna_bot.types import ActivityType, InboundMessage

logger = logging.getLogger(__name__)


class ActivityRequest(BaseModel):
    type: str = ActivityType.MESSAGE
    text: str | None = None


def build_dispatcher(settings: BotSettings) -> TurnDispatcher:
    return TurnDispatcher(
        oracle=QnAMakerClient(settings.qna),
        telemetry=build_telemetry_sink(settings.telemetry),
        messages=settings.messages,
    )


def create_app(
    dispatcher: TurnDispatcher | None = None,
    *,
    settings: BotSettings | None = None,
) -> FastAPI:
    """Create the host application.

    Without an injected dispatcher, one is built on startup from `settings`
    or, failing that, from the environment. Missing QnA settings then abort
    startup with `ConfigurationError`.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.dispatcher is None:
            resolved = settings or BotSettings.from_env()
            configure_logging(resolved.log_level)
            app.state.dispatcher = build_dispatcher(resolved)
            app.state.messages = resolved.messages
        try:
            yield
        finally:
            active: TurnDispatcher = app.state.dispatcher
            await active.oracle.aclose()
            active.telemetry.close()

    app = FastAPI(title="QnA Bot", version="0.1.0", lifespan=lifespan)
    app.state.dispatcher = dispatcher
    app.state.messages = dispatcher.messages if dispatcher is not None else BotMessages()

    @app.get("/health")
    def health(request: Request) -> dict[str, Any]:
        active: TurnDispatcher | None = request.app.state.dispatcher
        return {
            "status": "ok" if active is not None else "starting",
            "telemetry_enabled": active is not None
            and not isinstance(active.telemetry, NullTelemetrySink),
        }

    @app.post("/api/messages")
    async def messages(activity: ActivityRequest, request: Request) -> dict[str, Any]:
        active: TurnDispatcher = request.app.state.dispatcher
        replies: list[str] = []

        async def send_reply(text: str) -> None:
            replies.append(text)

        try:
            await active.handle_turn(
                InboundMessage(type=activity.type, text=activity.text), send_reply
            )
        except Exception:
            logger.exception("Unhandled error while processing turn")
            replies.append(request.app.state.messages.turn_error)
            return {"replies": replies, "error": True}

        return {"replies": replies, "error": False}

    return app


app = create_app()
