"""FastAPI application factory."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from loguru import logger

from dingbridge import __version__
from dingbridge.agent.dispatcher import DispatchController
from dingbridge.agent.invoker import AgentInvoker
from dingbridge.api.routes import router as core_router
from dingbridge.core.background.sweeper import SessionSweeper
from dingbridge.core.channels.dingtalk import router as dingtalk_router
from dingbridge.core.channels.sink import ChatSink
from dingbridge.core.config.loader import load_config
from dingbridge.core.config.schema import Config
from dingbridge.core.session import SessionRegistry


def build_state(app: FastAPI, config: Config) -> None:
    """Wire Config → SessionRegistry → AgentInvoker → ChatSink → DispatchController onto app.state."""
    registry = SessionRegistry()
    invoker = AgentInvoker(
        config.agent.path,
        kill_grace_s=config.agent.kill_grace_s,
        extra_args=config.agent.extra_args,
    )
    sink = ChatSink(secret=config.dingtalk.outbound_secret)

    app.state.config = config
    app.state.registry = registry
    app.state.invoker = invoker
    app.state.sink = sink
    app.state.dispatcher = DispatchController(config, registry, invoker, sink)
    app.state.sweeper = SessionSweeper(registry, config.session.ttl_s)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load config, build services, start sweeper. Shutdown: drain dispatch tasks."""
    config = load_config()
    build_state(app, config)

    sweeper: SessionSweeper = app.state.sweeper
    sweeper_task = asyncio.create_task(sweeper.start())

    logger.info(
        f"dingbridge started — agent: {config.agent.path}, "
        f"webhook: {'set' if config.has_webhook_url else 'missing'}, "
        f"signature check: {'on' if config.has_sign_key else 'off'}"
    )
    yield

    # Shutdown
    sweeper.stop()
    sweeper_task.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper_task
    await app.state.dispatcher.shutdown()
    logger.info("dingbridge shutting down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="dingbridge",
        description="DingTalk robot relay for a command-line agent",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(core_router)
    app.include_router(dingtalk_router)

    return app


app = create_app()
