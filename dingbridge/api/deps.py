"""FastAPI dependency injection — pull singletons from app.state."""

from __future__ import annotations

from fastapi import Request

from dingbridge.agent.dispatcher import DispatchController
from dingbridge.core.config.schema import Config
from dingbridge.core.session import SessionRegistry


def get_config(request: Request) -> Config:
    """Get Config singleton from app state."""
    return request.app.state.config


def get_registry(request: Request) -> SessionRegistry:
    """Get SessionRegistry singleton from app state."""
    return request.app.state.registry


def get_dispatcher(request: Request) -> DispatchController:
    """Get DispatchController singleton from app state."""
    return request.app.state.dispatcher
