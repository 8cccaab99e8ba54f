"""Settings: defaults, environment overrides and validation."""

import pytest
from pydantic import ValidationError

from relaychat.core.config import Settings


@pytest.fixture
def no_env_file(tmp_path):
    return tmp_path / "absent.env"


def test_defaults_match_provider_parameters():
    s = Settings()
    assert s.completion_params == {"temperature": 0.7, "max_tokens": 4000}
    assert s.GEN_MODEL == "deepseek-chat"
    assert s.DB_PATH.is_absolute()


def test_prefixed_environment_overrides(monkeypatch, no_env_file):
    monkeypatch.setenv("RELAYCHAT_LLM_TEMP", "0.2")
    monkeypatch.setenv("RELAYCHAT_CORS_ORIGINS", "http://a, http://b")

    s = Settings.from_env(no_env_file)

    assert s.LLM_TEMP == 0.2
    assert s.CORS_ORIGINS == ["http://a", "http://b"]


def test_provider_key_falls_back_to_deepseek_variable(monkeypatch, no_env_file):
    monkeypatch.delenv("RELAYCHAT_PROVIDER_API_KEY", raising=False)
    monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-test")
    assert Settings.from_env(no_env_file).PROVIDER_API_KEY == "sk-test"


def test_keyword_overrides_win(monkeypatch, no_env_file):
    monkeypatch.setenv("RELAYCHAT_GEN_MODEL", "env-model")
    assert Settings.from_env(no_env_file, GEN_MODEL="kw-model").GEN_MODEL == "kw-model"


@pytest.mark.parametrize("field,value", [("LLM_TEMP", 3.5), ("LLM_MAX_TOKENS", 0), ("UNKNOWN", 1)])
def test_bad_values_fail_early(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})
