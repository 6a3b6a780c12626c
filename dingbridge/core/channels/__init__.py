"""DingTalk channel — signature, parsing, delivery and webhook route."""

from dingbridge.core.channels.parser import MalformedPayloadError, parse_message
from dingbridge.core.channels.signature import verify_signature
from dingbridge.core.channels.sink import ChatSink

__all__ = ["ChatSink", "MalformedPayloadError", "parse_message", "verify_signature"]
