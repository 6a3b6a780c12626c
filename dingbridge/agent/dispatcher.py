"""DispatchController — detached per-message pipeline after the webhook ack."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from dingbridge.agent.invoker import AgentInvoker, reply_text
from dingbridge.core.models import InboundMessage

if TYPE_CHECKING:
    from dingbridge.core.channels.sink import ChatSink
    from dingbridge.core.config.schema import Config
    from dingbridge.core.session import SessionRegistry


class DispatchController:
    """Runs acquire → invoke → deliver → release for each accepted message.

    ``submit`` returns immediately; the pipeline runs as a tracked asyncio
    task whose failures never reach the webhook response. A message whose
    session is already in flight gets the busy notice and is dropped.
    """

    def __init__(
        self,
        config: Config,
        registry: SessionRegistry,
        invoker: AgentInvoker,
        sink: ChatSink,
    ):
        self.config = config
        self.registry = registry
        self.invoker = invoker
        self.sink = sink
        self._tasks: set[asyncio.Task] = set()

    def submit(self, message: InboundMessage) -> asyncio.Task:
        """Spawn the pipeline for ``message`` as a background task."""
        task = asyncio.create_task(self._run(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def destination_for(self, message: InboundMessage) -> str | None:
        """Configured robot URL, else the event's sessionWebhook if enabled."""
        dingtalk = self.config.dingtalk
        if dingtalk.webhook_url:
            return dingtalk.webhook_url
        if dingtalk.use_session_webhook:
            return message.session_webhook
        return None

    async def _run(self, message: InboundMessage) -> None:
        """Error boundary: any pipeline failure ends in an apology to the chat."""
        try:
            await self._process(message)
        except Exception as e:
            logger.exception(f"Processing failed for {message.session_key}: {e}")
            await self._apologize(message)

    async def _process(self, message: InboundMessage) -> None:
        key = message.session_key
        destination = self.destination_for(message)
        replies = self.config.replies

        if not self.registry.try_acquire(key):
            logger.info(f"Session {key} busy, sending wait notice")
            await self.sink.deliver(destination, replies.busy)
            return

        try:
            result = await self.invoker.invoke(message.content, self.config.agent.timeout_s)
            logger.info(f"Agent finished for {key}: {type(result).__name__}")
            await self.sink.deliver(destination, reply_text(result, replies))
        finally:
            self.registry.release(key)

    async def _apologize(self, message: InboundMessage) -> None:
        try:
            await self.sink.deliver(self.destination_for(message), self.config.replies.error)
        except Exception as e:
            logger.error(f"Apology delivery failed for {message.session_key}: {e}")

    @property
    def pending(self) -> int:
        """Number of pipelines still running."""
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Wait for all running pipelines to complete."""
        if not self._tasks:
            return
        logger.info(f"Waiting for {len(self._tasks)} dispatch tasks to finish")
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()
