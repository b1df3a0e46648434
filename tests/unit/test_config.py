import json

import pytest

from qna_bot.config import BotSettings, ConfigurationError, parse_instrumentation_key

_QNA_ENV = {
    "QNA_HOST": "https://example-qna.azurewebsites.net/qnamaker",
    "QNA_ENDPOINT_KEY": "env-key",
    "QNA_KNOWLEDGE_BASE_ID": "kb-env",
}


def _write_bot_file(tmp_path, services: list[dict[str, object]]):
    path = tmp_path / "QnaBot.bot"
    path.write_text(json.dumps({"name": "QnaBot", "services": services}), encoding="utf-8")
    return path


def test_from_env_reads_qna_and_telemetry() -> None:
    env = dict(
        _QNA_ENV,
        QNA_TOP="3",
        QNA_SCORE_THRESHOLD="0.5",
        APPLICATIONINSIGHTS_CONNECTION_STRING=(
            "InstrumentationKey=abc-123;IngestionEndpoint=https://westeurope-0.in.applicationinsights.azure.com/"
        ),
    )

    settings = BotSettings.from_env(env)

    assert settings.qna.host == _QNA_ENV["QNA_HOST"]
    assert settings.qna.knowledge_base_id == "kb-env"
    assert settings.qna.top == 3
    assert settings.qna.score_threshold == 0.5
    assert settings.telemetry.instrumentation_key == "abc-123"
    assert settings.telemetry.enabled


def test_from_env_without_telemetry_disables_it() -> None:
    settings = BotSettings.from_env(_QNA_ENV)

    assert not settings.telemetry.enabled
    assert settings.messages.no_answer == "Sorry, I don't understand."


def test_from_env_missing_qna_settings_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        BotSettings.from_env({"QNA_HOST": "https://example-qna.azurewebsites.net/qnamaker"})


def test_from_bot_file_reads_services(tmp_path) -> None:
    path = _write_bot_file(
        tmp_path,
        [
            {"type": "endpoint", "name": "development", "endpoint": "http://localhost:3978/api/messages"},
            {"type": "qna", "name": "QnaBot", "hostname": "https://file-qna.azurewebsites.net/qnamaker", "endpointKey": "file-key", "kbId": "kb-file"},
            {"type": "appInsights", "instrumentationKey": "file-ikey"},
        ],
    )

    settings = BotSettings.from_bot_file(path)

    assert settings.qna.host == "https://file-qna.azurewebsites.net/qnamaker"
    assert settings.qna.endpoint_key == "file-key"
    assert settings.telemetry.instrumentation_key == "file-ikey"


def test_environment_overrides_bot_file(tmp_path) -> None:
    path = _write_bot_file(
        tmp_path,
        [{"type": "qna", "hostname": "https://file-qna.azurewebsites.net/qnamaker", "endpointKey": "file-key", "kbId": "kb-file"}],
    )

    settings = BotSettings.from_env({"BOT_FILE_PATH": str(path), "QNA_ENDPOINT_KEY": "env-key"})

    assert settings.qna.endpoint_key == "env-key"
    assert settings.qna.knowledge_base_id == "kb-file"


def test_missing_bot_file_is_a_configuration_error(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        BotSettings.from_bot_file(tmp_path / "missing.bot")


def test_parse_instrumentation_key() -> None:
    assert parse_instrumentation_key("InstrumentationKey=k1;IngestionEndpoint=https://x/") == "k1"
    assert parse_instrumentation_key("IngestionEndpoint=https://x/") == ""
    assert parse_instrumentation_key("") == ""


@pytest.mark.parametrize(
    "document",
    [[], "services", {"services": {"type": "qna"}}, {"services": ["qna"]}],
)
def test_bot_file_with_wrong_shape_is_a_configuration_error(tmp_path, document: object) -> None:
    path = tmp_path / "QnaBot.bot"
    path.write_text(json.dumps(document), encoding="utf-8")

    with pytest.raises(ConfigurationError):
        BotSettings.from_bot_file(path)


def test_encrypted_bot_file_is_a_configuration_error(tmp_path) -> None:
    path = tmp_path / "QnaBot.bot"
    path.write_text(
        json.dumps(
            {
                "padlock": "c2VjcmV0LXBhZGxvY2s=",
                "services": [{"type": "qna", "hostname": "https://x/qnamaker", "endpointKey": "ENCRYPTED", "kbId": "kb"}],
            }
        ),
        encoding="utf-8",
    )

    with pytest.raises(ConfigurationError, match="Encrypted"):
        BotSettings.from_bot_file(path)


def test_log_level_is_normalized_and_validated() -> None:
    assert BotSettings.from_env(dict(_QNA_ENV, BOT_LOG_LEVEL="debug")).log_level == "DEBUG"

    with pytest.raises(ConfigurationError):
        BotSettings.from_env(dict(_QNA_ENV, BOT_LOG_LEVEL="verbose"))
