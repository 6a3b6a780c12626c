"""Agent CLI invocation and per-message dispatch."""

from dingbridge.agent.dispatcher import DispatchController
from dingbridge.agent.invoker import AgentInvoker

__all__ = ["AgentInvoker", "DispatchController"]
