"""Telemetry sinks for answered queries."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from applicationinsights import TelemetryClient
from applicationinsights.channel import AsynchronousQueue, AsynchronousSender, TelemetryChannel

from qna_bot.config import TelemetrySettings

logger = logging.getLogger(__name__)


class TelemetrySink(ABC):
    """Fire-and-forget event recorder.

    `track_event` must not block on delivery; callers never wait for an
    acknowledgment.
    """

    @abstractmethod
    def track_event(self, name: str, properties: dict[str, str]) -> None:
        """Queue one named event with string properties."""

    def close(self) -> None:
        """Flush pending events, if the sink buffers any."""


class NullTelemetrySink(TelemetrySink):
    """Discards events when telemetry is not configured."""

    def track_event(self, name: str, properties: dict[str, str]) -> None:
        return None


@dataclass(slots=True)
class RecordedEvent:
    name: str
    properties: dict[str, str]


@dataclass(slots=True)
class InMemoryTelemetrySink(TelemetrySink):
    """Keeps events in process, for local runs and tests."""

    events: list[RecordedEvent] = field(default_factory=list)

    def track_event(self, name: str, properties: dict[str, str]) -> None:
        self.events.append(RecordedEvent(name=name, properties=dict(properties)))


class ApplicationInsightsSink(TelemetrySink):
    """Ships events to Azure Application Insights.

    The client is expected to use an asynchronous channel, so `track_event`
    only enqueues and a background sender thread handles delivery.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, settings: TelemetrySettings) -> "ApplicationInsightsSink":
        sender = AsynchronousSender()
        queue = AsynchronousQueue(sender)
        channel = TelemetryChannel(None, queue)
        return cls(TelemetryClient(settings.instrumentation_key, channel))

    def track_event(self, name: str, properties: dict[str, str]) -> None:
        try:
            self.client.track_event(name, properties)
        except Exception:
            logger.warning("Application Insights event %s was not queued", name, exc_info=True)

    def close(self) -> None:
        try:
            self.client.flush()
        except Exception:
            logger.warning("Application Insights flush failed", exc_info=True)


def build_telemetry_sink(settings: TelemetrySettings) -> TelemetrySink:
    if not settings.enabled:
        logger.info("Telemetry disabled: no instrumentation key configured")
        return NullTelemetrySink()
    return ApplicationInsightsSink.from_settings(settings)
