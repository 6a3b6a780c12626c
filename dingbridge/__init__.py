"""dingbridge — DingTalk robot ↔ agent CLI relay."""

__version__ = "0.1.0"
