"""Provider settings collaborator.

Reads the provider settings file (``settings.json`` in the data directory).
A missing file yields a built-in default rather than a failure.
"""

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from promptmux.core.config import Settings, get_settings
from promptmux.core.errors import UpstreamProtocolError
from promptmux.core.logging import get_logger

logger = get_logger(__name__)

ProtocolFamily = Literal["openai", "anthropic"]
SUPPORTED_PROTOCOLS: tuple[str, ...] = ("openai", "anthropic")


def infer_protocol(provider: str) -> ProtocolFamily:
    """Pick a wire protocol from a free-form provider label."""
    label = provider.lower()
    if "anthropic" in label or "claude" in label:
        return "anthropic"
    return "openai"


class ProviderConfig(BaseModel):
    """Connection settings for the active language-model provider."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    provider: str = Field(default="openai", description="Free-form provider label")
    protocol: str | None = Field(None, description="openai or anthropic")
    api_key: str = Field(
        default="", validation_alias=AliasChoices("api_key", "apiKey"), description="API key"
    )
    base_url: str = Field(
        ..., validation_alias=AliasChoices("base_url", "baseUrl"), description="API base URL"
    )
    model: str | None = Field(None, description="Model override")

    @model_validator(mode="after")
    def _default_protocol(self) -> "ProviderConfig":
        if not self.protocol:
            self.protocol = infer_protocol(self.provider)
        self.base_url = self.base_url.rstrip("/")
        return self

    def require_protocol(self) -> ProtocolFamily:
        """
        Return the protocol family.

        Raises:
            UpstreamProtocolError: the label is not a supported protocol
        """
        if self.protocol not in SUPPORTED_PROTOCOLS:
            raise UpstreamProtocolError(f"Unsupported LLM provider protocol: {self.protocol}")
        return self.protocol  # type: ignore[return-value]


def default_provider_config(settings: Settings | None = None) -> ProviderConfig:
    """Built-in configuration used when no settings file exists."""
    settings = settings or get_settings()

    if settings.ANTHROPIC_API_KEY and not settings.OPENAI_API_KEY:
        return ProviderConfig(
            provider="anthropic",
            protocol="anthropic",
            api_key=settings.ANTHROPIC_API_KEY,
            base_url=settings.DEFAULT_ANTHROPIC_BASE_URL,
            model=settings.DEFAULT_ANTHROPIC_MODEL,
        )

    return ProviderConfig(
        provider="openai",
        protocol="openai",
        api_key=settings.OPENAI_API_KEY,
        base_url=settings.DEFAULT_OPENAI_BASE_URL,
        model=settings.DEFAULT_OPENAI_MODEL,
    )


def load_provider_config(path: Path | None = None, settings: Settings | None = None) -> ProviderConfig:
    """
    Load the active provider configuration.

    Args:
        path: Settings file (defaults to Settings.settings_path)
        settings: Settings override

    Returns:
        ProviderConfig from the file, or the built-in default if absent

    Raises:
        json.JSONDecodeError: the file exists but is not JSON
        pydantic.ValidationError: the file lacks required fields
    """
    settings = settings or get_settings()
    path = path or settings.settings_path

    if not path.exists():
        logger.info(f"No provider settings at {path}, using built-in default")
        return default_provider_config(settings)

    with path.open("r", encoding="utf-8") as f:
        raw: dict[str, Any] = json.load(f)

    return ProviderConfig.model_validate(raw)


def save_provider_config(
    config: ProviderConfig, path: Path | None = None, settings: Settings | None = None
) -> None:
    """Write the provider configuration to the settings file."""
    settings = settings or get_settings()
    path = path or settings.settings_path

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(config.model_dump(), f, indent=2)

    logger.info(f"Saved provider settings for {config.provider} to {path}")


def resolve_model(config: ProviderConfig, settings: Settings | None = None) -> str:
    """Model name to send, falling back to the protocol default."""
    if config.model:
        return config.model
    settings = settings or get_settings()
    if config.require_protocol() == "anthropic":
        return settings.DEFAULT_ANTHROPIC_MODEL
    return settings.DEFAULT_OPENAI_MODEL
