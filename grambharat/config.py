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
    """GramBharat configuration. All values come from environment variables."""

    # Inference service (Ollama-compatible /api/chat)
    ollama_base_url: str = Field(default="http://localhost:11434")
    default_model: str = Field(default="gpt-oss:20b")
    ollama_connect_timeout: float = Field(default=10.0)

    # Storage
    data_dir: Path = Field(default=Path("data"))
    profiles_dir: Path = Field(default=Path("data/financial-profiles"))

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    cors_allow_origin: str = Field(default="*")

    # Logging
    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("logs"))

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

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
    def chats_dir(self) -> Path:
        """One JSON document per chat lives here."""
        return self.data_dir / "chats"

    @property
    def memory_path(self) -> Path:
        return self.data_dir / "memories.json"

    @property
    def context_path(self) -> Path:
        return self.data_dir / "context.json"


settings = Settings()
