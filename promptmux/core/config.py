"""Configuration management for PromptMux."""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    pass


def _default_data_dir() -> str:
    return str(Path.home() / ".promptmux")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    PROMPTMUX_ENV: str = Field(default="dev", description="Environment: dev, test, prod")

    # Storage locations
    PROMPTMUX_DATA_DIR: str = Field(
        default_factory=_default_data_dir,
        description="Directory holding the persisted workspace document",
    )
    PROMPTMUX_SETTINGS_PATH: str | None = Field(
        default=None,
        description="Provider settings file (defaults to <data dir>/settings.json)",
    )

    # Provider credentials used by the built-in default provider config
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key")

    # Provider defaults
    DEFAULT_OPENAI_BASE_URL: str = Field(
        default="https://api.openai.com/v1", description="Base URL for chat-completions providers"
    )
    DEFAULT_ANTHROPIC_BASE_URL: str = Field(
        default="https://api.anthropic.com/v1", description="Base URL for messages providers"
    )
    DEFAULT_OPENAI_MODEL: str = Field(default="gpt-4o-mini", description="Default chat model")
    DEFAULT_ANTHROPIC_MODEL: str = Field(
        default="claude-3-5-sonnet-20241022", description="Default messages model"
    )
    ANTHROPIC_VERSION: str = Field(default="2023-06-01", description="anthropic-version header")
    ANTHROPIC_MAX_TOKENS: int = Field(default=4096, description="max_tokens for messages requests")

    # Workspace behaviour
    DEFAULT_PROJECT_NAME: str = Field(default="My Project", description="Seeded project name")
    UNDO_HISTORY_DEPTH: int = Field(default=50, description="Max undo snapshots kept in memory")

    @property
    def document_path(self) -> Path:
        return Path(self.PROMPTMUX_DATA_DIR).expanduser() / "workspace.json"

    @property
    def settings_path(self) -> Path:
        if self.PROMPTMUX_SETTINGS_PATH:
            return Path(self.PROMPTMUX_SETTINGS_PATH).expanduser()
        return Path(self.PROMPTMUX_DATA_DIR).expanduser() / "settings.json"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance
    """
    return Settings()
