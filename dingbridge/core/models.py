"""Pydantic data models — inbound messages and API responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ════════════════════════════════════════════════════════════
# DOMAIN MODELS
# ════════════════════════════════════════════════════════════


class InboundMessage(BaseModel):
    """Canonical text message extracted from a DingTalk event."""

    model_config = ConfigDict(frozen=True)

    content: str
    user_id: str
    chat_id: str
    is_group: bool = False
    sender_nick: str | None = None
    session_webhook: str | None = None

    @property
    def session_key(self) -> str:
        return session_key(self.chat_id, self.user_id)


def session_key(chat_id: str, user_id: str) -> str:
    """One conversation thread per (chat, user) pair."""
    return f"{chat_id}:{user_id}"


# ════════════════════════════════════════════════════════════
# API RESPONSES
# ════════════════════════════════════════════════════════════


class WebhookAck(BaseModel):
    status: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class StatusConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    has_webhook_url: bool = Field(alias="hasWebhookUrl")
    has_sign_key: bool = Field(alias="hasSignKey")


class StatusResponse(BaseModel):
    status: str
    sessions: int
    config: StatusConfig
