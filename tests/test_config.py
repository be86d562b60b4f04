import pytest
from pydantic import ValidationError

from tictactoe_ai.backend.config import DEFAULT_BASE_URL, DEFAULT_MODEL, load_settings


def test_defaults_without_environment():
    s = load_settings({})
    assert s.api_key == ""
    assert not s.has_credential
    assert s.model == DEFAULT_MODEL
    assert s.base_url == DEFAULT_BASE_URL
    assert s.ai_min_delay == 0.6
    assert s.log_level == "INFO"


def test_reads_environment():
    s = load_settings(
        {
            "GEMINI_API_KEY": "abc",
            "GEMINI_MODEL": "gemini-2.0-flash",
            "GEMINI_BASE_URL": "http://localhost:9000/v1/",
            "AI_TIMEOUT": "3.5",
            "AI_MIN_DELAY": "0",
            "LOG_LEVEL": "debug",
        }
    )
    assert s.has_credential
    assert s.model == "gemini-2.0-flash"
    assert s.base_url == "http://localhost:9000/v1"
    assert s.ai_timeout == 3.5
    assert s.ai_min_delay == 0.0
    assert s.log_level == "DEBUG"


def test_api_key_alias_and_blank_key():
    assert load_settings({"API_KEY": "xyz"}).api_key == "xyz"
    assert not load_settings({"GEMINI_API_KEY": "   "}).has_credential


def test_rejects_bad_timeout():
    with pytest.raises(ValidationError):
        load_settings({"AI_TIMEOUT": "0"})


def test_session_ttl():
    assert load_settings({}).session_ttl == 3600.0
    assert load_settings({"SESSION_TTL": "90"}).session_ttl == 90.0
    with pytest.raises(ValidationError):
        load_settings({"SESSION_TTL": "-5"})
