"""AgentInvoker — runs the agent CLI once per message with a hard deadline."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Sequence, Union

from loguru import logger

from dingbridge.core.config.schema import RepliesConfig

DEFAULT_TIMEOUT_S = 120
DEFAULT_KILL_GRACE_S = 10


# ── Results ─────────────────────────────────────────────────


@dataclass(frozen=True)
class AgentSuccess:
    text: str


@dataclass(frozen=True)
class AgentTimeout:
    pass


@dataclass(frozen=True)
class AgentFailure:
    error: str


@dataclass(frozen=True)
class AgentEmptyOutput:
    pass


AgentResult = Union[AgentSuccess, AgentTimeout, AgentFailure, AgentEmptyOutput]


def reply_text(result: AgentResult, replies: RepliesConfig) -> str:
    """Map an invocation outcome to the text sent back to the chat."""
    if isinstance(result, AgentSuccess):
        return result.text
    if isinstance(result, AgentTimeout):
        return replies.timeout
    if isinstance(result, AgentFailure):
        return replies.failure.format(detail=result.error)
    return replies.empty


# ── Invoker ─────────────────────────────────────────────────


class AgentInvoker:
    """Spawn ``<path> agent --message <text> --timeout <n>`` as an argument list.

    ``timeout_s`` is passed to the agent as its own budget; the process is
    killed ``kill_grace_s`` seconds after that if it is still running.
    """

    def __init__(
        self,
        path: str = "moltbot",
        kill_grace_s: float = DEFAULT_KILL_GRACE_S,
        extra_args: Sequence[str] = (),
    ):
        self.path = path
        self.kill_grace_s = kill_grace_s
        self.extra_args = list(extra_args)

    def build_args(self, message: str, timeout_s: float) -> list[str]:
        return [
            self.path,
            "agent",
            "--message",
            message,
            "--timeout",
            str(timeout_s),
            *self.extra_args,
        ]

    async def invoke(self, message: str, timeout_s: float = DEFAULT_TIMEOUT_S) -> AgentResult:
        """Run the agent. Never raises; every outcome is an AgentResult."""
        args = self.build_args(message, timeout_s)
        deadline = timeout_s + self.kill_grace_s

        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Agent spawn failed: {e}")
            return AgentFailure(str(e))

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=deadline)
        except asyncio.TimeoutError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass  # already exited
            await proc.wait()
            logger.error(f"Agent killed after {deadline}s")
            return AgentTimeout()

        out = stdout.decode("utf-8", errors="replace").strip()
        err = stderr.decode("utf-8", errors="replace").strip()

        if proc.returncode != 0:
            detail = f"exit code {proc.returncode}"
            if err:
                detail = f"{detail}: {err}"
            logger.error(f"Agent failed ({detail})")
            return AgentFailure(detail)

        if out:
            return AgentSuccess(out)
        # Some agent builds print the reply on stderr
        if err:
            return AgentSuccess(err)
        return AgentEmptyOutput()
