"""
Tests for settings resolution.
"""

import pytest
from pydantic import ValidationError

from config import DEFAULT_SCHEDULE_FILE, Settings

ENV_VARS = [
    "OPENAI_API_KEY", "OPENAI_API_URL", "OPENAI_MODEL", "MAX_TOKENS", "TEMPERATURE",
    "UPSTREAM_TIMEOUT", "VALID_API_KEYS", "DAILY_LIMIT", "LEDGER_BACKEND", "LEDGER_PATH",
    "REDIS_URL", "SCHEDULE_FILE", "CORS_ORIGIN", "PORT", "HOST", "DEBUG", "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:

    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)

        assert settings.openai_api_key is None
        assert settings.completions_enabled is False
        assert settings.openai_model == "gpt-3.5-turbo"
        assert settings.max_tokens == 1000
        assert settings.temperature == 0.7
        assert settings.daily_limit == 100
        assert settings.api_keys == []
        assert settings.port == 8000
        assert settings.ledger_backend == "duckdb"
        assert settings.schedule_file == DEFAULT_SCHEDULE_FILE
        assert settings.cors_origin == "http://localhost:5173"

    def test_reads_environment(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-env")
        clean_env.setenv("VALID_API_KEYS", "alpha, beta,,gamma ")
        clean_env.setenv("DAILY_LIMIT", "5")
        clean_env.setenv("TEMPERATURE", "0.2")
        clean_env.setenv("PORT", "9000")

        settings = Settings(_env_file=None)

        assert settings.completions_enabled is True
        assert settings.api_keys == ["alpha", "beta", "gamma"]
        assert settings.daily_limit == 5
        assert settings.temperature == 0.2
        assert settings.port == 9000

    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_upstream_key_is_unset(self, clean_env, value):
        clean_env.setenv("OPENAI_API_KEY", value)
        assert Settings(_env_file=None).completions_enabled is False

    @pytest.mark.parametrize("field,value", [
        ("daily_limit", -1),
        ("max_tokens", 0),
        ("temperature", 2.5),
        ("upstream_timeout", 0),
        ("ledger_backend", "sqlite"),
    ])
    def test_invalid_values_fail_fast(self, clean_env, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_reads_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DAILY_LIMIT=12\nOPENAI_MODEL=gpt-4o-mini\n")

        settings = Settings(_env_file=env_file)

        assert settings.daily_limit == 12
        assert settings.openai_model == "gpt-4o-mini"
