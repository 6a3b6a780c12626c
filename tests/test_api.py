"""Tests for the HTTP surface — webhook, health, status."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from dingbridge.agent.invoker import AgentSuccess
from dingbridge.api.app import build_state, create_app
from dingbridge.core.channels.signature import sign
from dingbridge.core.config import Config

WEBHOOK = "https://example.test/robot"


class GatedInvoker:
    def __init__(self):
        self.calls: list[str] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def invoke(self, message, timeout_s=120):
        self.calls.append(message)
        self.started.set()
        await self.release.wait()
        return AgentSuccess(f"echo: {message}")


def _event(content: str, user: str = "u1", chat: str = "c1") -> dict:
    return {
        "header": {"eventType": "chat"},
        "body": {
            "msgtype": "text",
            "text": {"content": content},
            "senderStaffId": user,
            "conversationId": chat,
            "conversationType": "group",
        },
    }


def _make_app(config: Config):
    """App with state wired manually (lifespan is not run by ASGITransport)."""
    app = create_app()
    build_state(app, config)
    invoker = GatedInvoker()
    sink = AsyncMock()
    sink.deliver = AsyncMock(return_value=True)
    app.state.dispatcher.invoker = invoker
    app.state.dispatcher.sink = sink
    return app, invoker, sink


@pytest.fixture
def cfg():
    return Config(dingtalk={"webhook_url": WEBHOOK, "keyword": "Moltbot"})


@pytest.fixture
def wired(cfg):
    return _make_app(cfg)


@pytest.fixture
async def client(wired):
    app, _, _ = wired
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


# --- Health / status ---


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert "T" in data["timestamp"]


@pytest.mark.asyncio
async def test_status(client, wired):
    app, _, _ = wired
    app.state.registry.try_acquire("c9:u9")

    resp = await client.get("/status")
    assert resp.status_code == 200
    assert resp.json() == {
        "status": "ok",
        "sessions": 1,
        "config": {"hasWebhookUrl": True, "hasSignKey": False},
    }


# --- Webhook: synchronous outcomes ---


@pytest.mark.asyncio
async def test_keyword_mismatch_no_invocation(client, wired):
    app, invoker, sink = wired
    resp = await client.post("/webhook/dingtalk", json=_event("hello there"))

    assert resp.status_code == 200
    assert resp.json() == {"status": "keyword_mismatch"}
    await app.state.dispatcher.shutdown()
    assert invoker.calls == []
    sink.deliver.assert_not_called()


@pytest.mark.asyncio
async def test_non_text_event_ignored(client, wired):
    _, invoker, _ = wired
    body = {"header": {}, "body": {"msgtype": "picture", "senderStaffId": "u1", "conversationId": "c1"}}
    resp = await client.post("/webhook/dingtalk", json=body)
    assert resp.json() == {"status": "ignored"}
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_malformed_payload_500(client):
    resp = await client.post("/webhook/dingtalk", json=["not", "an", "object"])
    assert resp.status_code == 500
    assert "error" in resp.json()

    resp = await client.post("/webhook/dingtalk", json={"header": {}, "body": None})
    assert resp.status_code == 500


@pytest.mark.asyncio
async def test_invalid_json_500(client):
    resp = await client.post(
        "/webhook/dingtalk", content=b"{oops", headers={"content-type": "application/json"}
    )
    assert resp.status_code == 500


@pytest.mark.asyncio
async def test_flat_event_accepted(client, wired):
    app, invoker, _ = wired
    invoker.release.set()
    resp = await client.post("/webhook/dingtalk", json=_event("Moltbot hi")["body"])
    assert resp.json() == {"status": "ok"}
    await app.state.dispatcher.shutdown()
    assert invoker.calls == ["Moltbot hi"]


@pytest.mark.asyncio
async def test_empty_keyword_accepts_everything():
    app, invoker, _ = _make_app(Config(dingtalk={"webhook_url": WEBHOOK, "keyword": ""}))
    invoker.release.set()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.post("/webhook/dingtalk", json=_event("anything"))
    assert resp.json() == {"status": "ok"}
    await app.state.dispatcher.shutdown()
    assert invoker.calls == ["anything"]


# --- Webhook: signatures ---


@pytest.fixture
def signed():
    return _make_app(Config(dingtalk={"webhook_url": WEBHOOK, "sign_key": "abc", "keyword": ""}))


@pytest.mark.asyncio
async def test_bad_signature_401(signed):
    app, invoker, _ = signed
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.post(
            "/webhook/dingtalk",
            json=_event("hi"),
            headers={"timestamp": "1000", "sign": "forged"},
        )
    assert resp.status_code == 401
    assert "error" in resp.json()
    assert invoker.calls == []


@pytest.mark.asyncio
async def test_good_signature_accepted(signed):
    app, invoker, _ = signed
    invoker.release.set()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.post(
            "/webhook/dingtalk",
            json=_event("hi"),
            headers={"timestamp": "1000", "sign": sign("1000", "abc")},
        )
    assert resp.json() == {"status": "ok"}
    await app.state.dispatcher.shutdown()


@pytest.mark.asyncio
async def test_legacy_signature_headers(signed):
    app, _, _ = signed
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        resp = await c.post(
            "/webhook/dingtalk",
            json=_event("hi"),
            headers={"x-dingtalk-signature-timestamp": "1000", "x-dingtalk-signature": "forged"},
        )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_missing_signature_headers_skip_verification(signed):
    app, invoker, _ = signed
    invoker.release.set()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        only_ts = await c.post("/webhook/dingtalk", json=_event("a"), headers={"timestamp": "1000"})
        none = await c.post("/webhook/dingtalk", json=_event("b", user="u2"))
    assert only_ts.json() == {"status": "ok"}
    assert none.json() == {"status": "ok"}
    await app.state.dispatcher.shutdown()


# --- Webhook: end-to-end dispatch ---


@pytest.mark.asyncio
async def test_ack_before_agent_finishes_then_reply(client, wired):
    app, invoker, sink = wired

    resp = await client.post("/webhook/dingtalk", json=_event("Moltbot what's up"))
    assert resp.json() == {"status": "ok"}

    await asyncio.wait_for(invoker.started.wait(), timeout=1.0)
    assert len(app.state.registry) == 1
    sink.deliver.assert_not_called()

    invoker.release.set()
    await app.state.dispatcher.shutdown()

    assert invoker.calls == ["Moltbot what's up"]
    sink.deliver.assert_awaited_once_with(WEBHOOK, "echo: Moltbot what's up")
    assert len(app.state.registry) == 0


@pytest.mark.asyncio
async def test_second_message_while_busy_gets_wait_notice(client, wired, cfg):
    app, invoker, sink = wired

    await client.post("/webhook/dingtalk", json=_event("Moltbot first"))
    await asyncio.wait_for(invoker.started.wait(), timeout=1.0)

    resp = await client.post("/webhook/dingtalk", json=_event("Moltbot second"))
    assert resp.json() == {"status": "ok"}

    invoker.release.set()
    await app.state.dispatcher.shutdown()

    assert invoker.calls == ["Moltbot first"]
    delivered = [c.args for c in sink.deliver.await_args_list]
    assert (WEBHOOK, cfg.replies.busy) in delivered
    assert (WEBHOOK, "echo: Moltbot first") in delivered
    assert len(app.state.registry) == 0


@pytest.mark.asyncio
async def test_receive_log_names_sender_nick(client, wired):
    """Receive log line uses senderNick when the event carries one."""
    app, invoker, _ = wired
    invoker.release.set()
    event = _event("Moltbot hi")
    event["body"]["senderNick"] = "Li Lei"

    with patch("dingbridge.core.channels.dingtalk.logger") as log:
        resp = await client.post("/webhook/dingtalk", json=event)
    await app.state.dispatcher.shutdown()

    assert resp.json() == {"status": "ok"}
    logged = " ".join(str(c.args[0]) for c in log.info.call_args_list)
    assert "Li Lei" in logged


def test_webhook_ack_in_openapi_schema():
    """Webhook response is declared as the WebhookAck model."""
    schema = create_app().openapi()
    ok = schema["paths"]["/webhook/dingtalk"]["post"]["responses"]["200"]
    assert ok["content"]["application/json"]["schema"]["$ref"].endswith("/WebhookAck")


# --- Lifespan ---


def test_lifespan_starts_sweeper_and_drains_dispatch():
    """Real startup runs the sweeper; shutdown stops it and finishes in-flight replies."""
    config = Config(dingtalk={"webhook_url": WEBHOOK, "keyword": ""})
    invoker = AsyncMock()
    invoker.invoke = AsyncMock(return_value=AgentSuccess("done"))
    sink = AsyncMock()
    sink.deliver = AsyncMock(return_value=True)

    app = create_app()
    with patch("dingbridge.api.app.load_config", return_value=config):
        with TestClient(app) as client:
            app.state.dispatcher.invoker = invoker
            app.state.dispatcher.sink = sink

            resp = client.post("/webhook/dingtalk", json=_event("hi"))
            assert resp.json() == {"status": "ok"}
            assert app.state.sweeper._running is True

    assert app.state.sweeper._running is False
    assert app.state.dispatcher.pending == 0
    invoker.invoke.assert_awaited_once_with("hi", config.agent.timeout_s)
    sink.deliver.assert_awaited_once_with(WEBHOOK, "done")
    assert len(app.state.registry) == 0
