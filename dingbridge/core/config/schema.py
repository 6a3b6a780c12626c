"""dingbridge configuration schema — YAML + Pydantic + env override."""

from __future__ import annotations

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ════════════════════════════════════════════════════════════
# SUB-CONFIGS (nested BaseModel)
# ════════════════════════════════════════════════════════════


class DingTalkConfig(BaseModel):
    """DingTalk robot settings. Empty sign_key = inbound signature check disabled."""

    sign_key: str = ""
    webhook_url: str = ""
    keyword: str = "Moltbot"
    outbound_secret: str = ""  # custom robot "signing" secret for outbound posts
    use_session_webhook: bool = False  # reply via event's sessionWebhook when webhook_url is empty


class AgentConfig(BaseModel):
    """External agent CLI (``<path> agent --message ... --timeout N``)."""

    path: str = "moltbot"
    timeout_s: int = 120
    kill_grace_s: int = 10
    extra_args: list[str] = Field(default_factory=list)


class SessionConfig(BaseModel):
    ttl_s: int = 300


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000


class LoggingConfig(BaseModel):
    level: str = "INFO"


class RepliesConfig(BaseModel):
    """Fixed texts sent back to the chat. ``failure`` takes a ``{detail}`` field."""

    busy: str = "Please wait, I'm still thinking..."
    timeout: str = "Processing timed out, please try again later."
    failure: str = "Processing failed: {detail}"
    empty: str = "Message sent, but no reply was received."
    error: str = "Sorry, something went wrong while processing your message."


# ════════════════════════════════════════════════════════════
# ROOT CONFIG (BaseSettings — env + .env support)
# ════════════════════════════════════════════════════════════


class Config(BaseSettings):
    """
    Root configuration.

    Env override examples:
        DINGBRIDGE_DINGTALK__WEBHOOK_URL=https://oapi.dingtalk.com/robot/send?access_token=...
        DINGBRIDGE_AGENT__PATH=/usr/local/bin/moltbot
        DINGBRIDGE_SERVER__PORT=8080
    """

    model_config = SettingsConfigDict(
        env_prefix="DINGBRIDGE_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    dingtalk: DingTalkConfig = Field(default_factory=DingTalkConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    replies: RepliesConfig = Field(default_factory=RepliesConfig)

    # ── Computed properties ─────────────────────────────────

    @property
    def has_webhook_url(self) -> bool:
        return bool(self.dingtalk.webhook_url)

    @property
    def has_sign_key(self) -> bool:
        """True when inbound signatures are checked."""
        return bool(self.dingtalk.sign_key)
