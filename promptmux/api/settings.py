"""API endpoints for provider settings."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from promptmux.core.errors import UpstreamProtocolError
from promptmux.core.logging import get_logger
from promptmux.core.provider_config import (
    ProviderConfig,
    load_provider_config,
    save_provider_config,
)

logger = get_logger(__name__)

router = APIRouter()

# Trailing characters of the key left visible in responses
VISIBLE_KEY_CHARS = 4


class ProviderSettingsResponse(BaseModel):
    """Provider configuration as returned by the API (key masked)."""

    provider: str
    protocol: str | None
    base_url: str
    model: str | None
    api_key: str = Field(..., description="Masked key, e.g. ****abcd")
    api_key_set: bool


def mask_api_key(api_key: str) -> str:
    if not api_key:
        return ""
    if len(api_key) <= 2 * VISIBLE_KEY_CHARS:
        return "****"
    return "****" + api_key[-VISIBLE_KEY_CHARS:]


def _to_response(config: ProviderConfig) -> ProviderSettingsResponse:
    return ProviderSettingsResponse(
        provider=config.provider,
        protocol=config.protocol,
        base_url=config.base_url,
        model=config.model,
        api_key=mask_api_key(config.api_key),
        api_key_set=bool(config.api_key),
    )


@router.get("/provider", response_model=ProviderSettingsResponse)
def read_provider_settings() -> ProviderSettingsResponse:
    """Return the active provider configuration (built-in default if none saved)."""
    try:
        return _to_response(load_provider_config())
    except ValueError as e:
        logger.exception("Failed to read provider settings")
        raise HTTPException(status_code=500, detail=f"Failed to read settings: {e}") from e


@router.put("/provider", response_model=ProviderSettingsResponse)
def update_provider_settings(config: ProviderConfig) -> ProviderSettingsResponse:
    """Persist a provider configuration."""
    try:
        config.require_protocol()
    except UpstreamProtocolError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        save_provider_config(config)
    except OSError as e:
        logger.exception("Failed to save provider settings")
        raise HTTPException(status_code=500, detail=f"Failed to save settings: {e}") from e

    return _to_response(config)
