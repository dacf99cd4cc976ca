"""
Gateway configuration, resolved once at startup
"""
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SCHEDULE_FILE = Path(__file__).resolve().parent / "data" / "ramadan.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Upstream completion provider
    openai_api_key: Optional[str] = None
    openai_api_url: str = "https://api.openai.com/v1/chat/completions"
    openai_model: str = "gpt-3.5-turbo"
    max_tokens: int = Field(default=1000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    upstream_timeout: float = Field(default=30.0, gt=0)
    upstream_max_connections: int = Field(default=20, gt=0)

    # Callers and quota
    valid_api_keys: str = ""
    daily_limit: int = Field(default=100, ge=0)

    # Usage ledger
    ledger_backend: Literal["duckdb", "redis"] = "duckdb"
    ledger_path: str = "usage.duckdb"
    redis_url: str = "redis://localhost:6379/0"
    usage_ttl_seconds: int = Field(default=2 * 24 * 3600, gt=0)

    # Upstream circuit breaker
    circuit_error_threshold: int = Field(default=10, gt=0)
    circuit_window_seconds: int = Field(default=60, gt=0)

    schedule_file: Path = DEFAULT_SCHEDULE_FILE
    cors_origin: str = "http://localhost:5173"

    log_level: str = "info"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("openai_api_key")
    @classmethod
    def _blank_key_is_unset(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def api_keys(self) -> List[str]:
        """Configured caller keys, blanks dropped"""
        return [key.strip() for key in self.valid_api_keys.split(",") if key.strip()]

    @property
    def completions_enabled(self) -> bool:
        return self.openai_api_key is not None


def get_settings() -> Settings:
    return Settings()
