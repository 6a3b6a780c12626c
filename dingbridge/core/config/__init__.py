"""Configuration module."""

from dingbridge.core.config.loader import load_config
from dingbridge.core.config.schema import Config

__all__ = ["Config", "load_config"]
