"""Background services — session sweeper."""

from dingbridge.core.background.sweeper import SessionSweeper

__all__ = ["SessionSweeper"]
