"""SessionSweeper — periodic expiry of session entries that were never released."""

from __future__ import annotations

import asyncio

from loguru import logger

from dingbridge.core.session import SessionRegistry


class SessionSweeper:
    """Runs ``registry.sweep`` every ``ttl_s`` seconds."""

    def __init__(self, registry: SessionRegistry, ttl_s: float):
        self.registry = registry
        self.ttl_s = ttl_s
        self._running = False

    async def start(self) -> None:
        """Start the sweep loop."""
        self._running = True
        logger.info(f"SessionSweeper started (ttl={self.ttl_s}s)")
        while self._running:
            await asyncio.sleep(self.ttl_s)
            if not self._running:
                break
            self.tick()

    def stop(self) -> None:
        """Stop the sweep loop."""
        self._running = False
        logger.info("SessionSweeper stopped")

    def tick(self) -> int:
        return self.registry.sweep(self.registry.now(), self.ttl_s)
