"""QnA Bot package."""

from .config import BotSettings, ConfigurationError

__all__ = ["BotSettings", "ConfigurationError"]
