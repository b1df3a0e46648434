"""Configuration models for the QnA bot."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator


class ConfigurationError(ValueError):
    """Raised when the bot cannot be wired from the supplied settings."""


class QnAMakerSettings(BaseModel):
    """Connection settings for the hosted QnA knowledge base."""

    host: str = Field(min_length=1)
    endpoint_key: str = Field(min_length=1)
    knowledge_base_id: str = Field(min_length=1)
    top: int = Field(default=1, ge=1, le=50)
    score_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    timeout_seconds: float = Field(default=10.0, gt=0.0)


class TelemetrySettings(BaseModel):
    """Application Insights settings; telemetry is disabled without a key."""

    instrumentation_key: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.instrumentation_key)


class BotMessages(BaseModel):
    """Canned replies used when no informative answer is available."""

    empty_input: str = "This doesn't work unless you say something first."
    no_answer: str = "Sorry, I don't understand."
    event_detected: str = "{type} event detected"
    turn_error: str = "Sorry, it looks like something went wrong."


class BotSettings(BaseModel):
    """Top-level settings assembled at startup."""

    qna: QnAMakerSettings
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
    messages: BotMessages = Field(default_factory=BotMessages)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BotSettings":
        """Build settings from environment variables.

        When `BOT_FILE_PATH` is set, the `.bot` file is loaded first and the
        environment variables override the values it provides.
        """
        env = os.environ if environ is None else environ

        raw: dict[str, Any] = {"qna": {}, "telemetry": {}}
        bot_file = env.get("BOT_FILE_PATH")
        if bot_file:
            raw = _read_bot_file(Path(bot_file))

        qna = raw["qna"]
        for key, var in (
            ("host", "QNA_HOST"),
            ("endpoint_key", "QNA_ENDPOINT_KEY"),
            ("knowledge_base_id", "QNA_KNOWLEDGE_BASE_ID"),
            ("top", "QNA_TOP"),
            ("score_threshold", "QNA_SCORE_THRESHOLD"),
            ("timeout_seconds", "QNA_TIMEOUT_SECONDS"),
        ):
            if env.get(var):
                qna[key] = env[var]

        connection_string = env.get("APPLICATIONINSIGHTS_CONNECTION_STRING", "")
        instrumentation_key = parse_instrumentation_key(connection_string) or env.get(
            "APPINSIGHTS_INSTRUMENTATIONKEY"
        )
        if instrumentation_key:
            raw["telemetry"]["instrumentation_key"] = instrumentation_key

        if env.get("BOT_LOG_LEVEL"):
            raw["log_level"] = env["BOT_LOG_LEVEL"]

        return cls._validated(raw)

    @classmethod
    def from_bot_file(cls, path: str | Path) -> "BotSettings":
        """Build settings from an unencrypted `.bot` configuration file."""
        return cls._validated(_read_bot_file(Path(path)))

    @classmethod
    def _validated(cls, raw: dict[str, Any]) -> "BotSettings":
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid bot configuration: {exc}") from exc


def parse_instrumentation_key(connection_string: str) -> str:
    """Extract the InstrumentationKey from an Application Insights connection string."""
    for part in connection_string.split(";"):
        key, _, value = part.strip().partition("=")
        if key == "InstrumentationKey":
            return value
    return ""


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read_bot_file(path: Path) -> dict[str, Any]:
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Bot configuration file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Bot configuration file is not valid JSON: {path}") from exc

    if not isinstance(document, dict):
        raise ConfigurationError(f"Bot configuration file must hold a JSON object: {path}")
    # Encrypted files carry a padlock; their service secrets are ciphertext.
    if document.get("padlock"):
        raise ConfigurationError(f"Encrypted bot configuration files are not supported: {path}")
    services = document.get("services", [])
    if not isinstance(services, list) or not all(isinstance(s, dict) for s in services):
        raise ConfigurationError(f"Bot configuration services must be a list of objects: {path}")

    raw: dict[str, Any] = {"qna": {}, "telemetry": {}}
    for service in services:
        service_type = service.get("type")
        if service_type == "qna" and not raw["qna"]:
            raw["qna"] = {
                "host": service.get("hostname", ""),
                "endpoint_key": service.get("endpointKey", ""),
                "knowledge_base_id": service.get("kbId", ""),
            }
        elif service_type == "appInsights" and not raw["telemetry"]:
            raw["telemetry"] = {"instrumentation_key": service.get("instrumentationKey")}
    return raw
