"""Configuration helpers for the review dashboard."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables (prefix ``V2C_``)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="V2C_",
        extra="ignore",
    )

    api_base_url: str = Field(
        "http://localhost:8000",
        description="Root URL of the product API (no trailing /api/v1).",
    )
    request_timeout: float = Field(
        30.0, description="Seconds to wait for any single product API call."
    )
    state_path: Path = Field(
        Path("~/.video2commerce/state.json"),
        description="Where the signed-in token and storefront selection are kept.",
    )
    dashboard_host: str = "127.0.0.1"
    dashboard_port: int = 8501
    dashboard_reload: bool = False
    log_level: str = Field("INFO", description="Root log level for `serve`.")

    @property
    def resolved_state_path(self) -> Path:
        return self.state_path.expanduser().resolve()


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
