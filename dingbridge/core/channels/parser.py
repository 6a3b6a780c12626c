"""DingTalk event parsing — raw payload → InboundMessage."""

from __future__ import annotations

from typing import Any

from dingbridge.core.models import InboundMessage

# conversationType: "1" = single chat, "2" = group; some gateways send "group"
GROUP_MARKERS = frozenset({"group", "2"})


class MalformedPayloadError(ValueError):
    """Raised when the webhook body is not a JSON object."""


def unwrap_event(envelope: Any) -> Any:
    """Return the event inside a ``{header, body}`` envelope, or the flat event itself."""
    if not isinstance(envelope, dict):
        raise MalformedPayloadError(f"expected JSON object, got {type(envelope).__name__}")
    if "body" in envelope:
        return envelope["body"]
    return envelope


def parse_message(data: Any) -> InboundMessage | None:
    """Normalize a DingTalk event into an InboundMessage.

    Returns None for anything that is not a usable text message (pictures,
    rich text, system events, missing sender...). Raises
    MalformedPayloadError only if ``data`` is not an object.
    """
    if not isinstance(data, dict):
        raise MalformedPayloadError(f"expected JSON object, got {type(data).__name__}")

    msgtype = data.get("msgtype")
    if msgtype is not None and msgtype != "text":
        return None

    text = data.get("text")
    content = text.get("content") if isinstance(text, dict) else None
    if not isinstance(content, str) or not content.strip():
        return None

    user_id = _sender_id(data)
    chat_id = data.get("conversationId")
    if not user_id or not chat_id:
        return None

    return InboundMessage(
        content=content.strip(),
        user_id=str(user_id),
        chat_id=str(chat_id),
        is_group=str(data.get("conversationType", "")) in GROUP_MARKERS,
        sender_nick=_optional_str(data.get("senderNick")),
        session_webhook=_optional_str(data.get("sessionWebhook")),
    )


def _sender_id(data: dict[str, Any]) -> str | None:
    """senderStaffId first, then senderId (plain string or ``{"id": ...}``)."""
    staff_id = data.get("senderStaffId")
    if staff_id:
        return staff_id
    sender = data.get("senderId")
    if isinstance(sender, dict):
        return sender.get("id") or None
    return sender or None


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None
