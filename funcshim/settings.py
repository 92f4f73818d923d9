"""Invoker settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration with sensible defaults."""

    function_target: str = Field(default="function", alias="FUNCTION_TARGET")
    function_signature_type: str | None = Field(default="http", alias="FUNCTION_SIGNATURE_TYPE")
    function_source: Path = Field(default=Path("main.py"), alias="FUNCTION_SOURCE")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    metrics_enabled: bool = Field(default=False, alias="METRICS_ENABLED")
    metrics_path: str = Field(default="/metrics", alias="METRICS_PATH")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    version: str = Field(default="0.1.0", alias="FUNCSHIM_VERSION")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    @property
    def signature_type(self) -> str | None:
        # An empty FUNCTION_SIGNATURE_TYPE means "rely on declarative registration".
        return self.function_signature_type or None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
