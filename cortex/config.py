"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Cortex configuration. All values come from environment variables."""

    # Anthropic
    anthropic_api_key: str = Field(default="")
    default_memory_model: str = Field(default="haiku")

    # State store
    state_backend: str = Field(default="sqlite")
    database_path: Path = Field(default=Path("data/cortex.db"))

    # Session memory
    session_ttl_hours: int = Field(default=4)
    memory_window_size: int = Field(default=50)
    memory_summarize_threshold: int = Field(default=20)
    memory_max_entities: int = Field(default=50)
    memory_max_facts: int = Field(default=30)
    memory_topic_history_size: int = Field(default=10)
    # Hard cutoff for extracted entities and facts, not a per-call knob.
    memory_min_confidence: float = Field(default=0.7)

    # Extraction
    extraction_timeout_seconds: float = Field(default=15.0)

    # Autonomy
    risk_catalog_path: Path = Field(default=Path("config/RISK_CATALOG.toml"))

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=_env_file(), env_file_encoding="utf-8", extra="forbid"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def session_ttl_seconds(self) -> int:
        return self.session_ttl_hours * 60 * 60


settings = Settings()
