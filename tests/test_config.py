"""Tests for settings loading."""

import logging

from serpent.config import SerpentSettings, configure_logging, load_settings


def test_defaults(monkeypatch):
    for var in ("SERPENT_BOT_TOKEN", "SERPENT_CHAT_ID", "SERPENT_MESSAGE_LIMIT"):
        monkeypatch.delenv(var, raising=False)
    settings = SerpentSettings(_env_file=None)
    assert settings.message_limit == 4096
    assert settings.caption_limit == 1024
    assert settings.cell_timeout == 3.0
    assert settings.problem_timeout == 5.0
    assert settings.handoff_retries == 50
    assert settings.handoff_interval == 0.1
    assert settings.api_base == "https://api.telegram.org"
    assert not settings.has_credentials


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("SERPENT_BOT_TOKEN", "123:ABC")
    monkeypatch.setenv("SERPENT_CHAT_ID", "-100200")
    monkeypatch.setenv("SERPENT_REQUEST_TIMEOUT", "7.5")
    settings = SerpentSettings(_env_file=None)
    assert settings.bot_token == "123:ABC"
    assert settings.chat_id == "-100200"
    assert settings.request_timeout == 7.5
    assert settings.has_credentials


def test_unrelated_env_ignored(monkeypatch):
    monkeypatch.setenv("SERPENT_SOMETHING_ELSE", "x")
    SerpentSettings(_env_file=None)


def test_load_settings_warns_without_credentials(monkeypatch, tmp_path, caplog):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SERPENT_BOT_TOKEN", raising=False)
    monkeypatch.delenv("SERPENT_CHAT_ID", raising=False)
    with caplog.at_level(logging.WARNING, logger="serpent.config"):
        settings = load_settings()
    assert not settings.has_credentials
    assert "Missing configuration" in caplog.text


def test_dotenv_file(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SERPENT_BOT_TOKEN", raising=False)
    monkeypatch.delenv("SERPENT_CHAT_ID", raising=False)
    (tmp_path / ".env").write_text("SERPENT_BOT_TOKEN=1:X\nSERPENT_CHAT_ID=9\n")
    assert load_settings().has_credentials


def test_configure_logging_quiets_httpx():
    configure_logging(debug=False)
    assert logging.getLogger("httpx").level == logging.WARNING
