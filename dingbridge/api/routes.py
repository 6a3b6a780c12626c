"""Core API routes — health and status."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from dingbridge.api.deps import get_config, get_registry
from dingbridge.core.config.schema import Config
from dingbridge.core.models import HealthResponse, StatusConfig, StatusResponse
from dingbridge.core.session import SessionRegistry

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health():
    """Health check."""
    return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc).isoformat())


@router.get("/status", response_model=StatusResponse)
async def status(
    config: Config = Depends(get_config),
    registry: SessionRegistry = Depends(get_registry),
):
    """In-flight session count and which DingTalk settings are present."""
    return StatusResponse(
        status="ok",
        sessions=len(registry),
        config=StatusConfig(
            has_webhook_url=config.has_webhook_url,
            has_sign_key=config.has_sign_key,
        ),
    )
