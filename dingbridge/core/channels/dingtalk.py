"""DingTalk channel — webhook handler."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from dingbridge.agent.dispatcher import DispatchController
from dingbridge.api.deps import get_config, get_dispatcher
from dingbridge.core.channels.parser import MalformedPayloadError, parse_message, unwrap_event
from dingbridge.core.channels.signature import verify_signature
from dingbridge.core.config.schema import Config
from dingbridge.core.models import WebhookAck

router = APIRouter(tags=["dingtalk"])

# Outgoing robots send timestamp/sign; older gateways used the x-dingtalk-* names
TIMESTAMP_HEADERS = ("timestamp", "x-dingtalk-signature-timestamp")
SIGN_HEADERS = ("sign", "x-dingtalk-signature")


@router.post("/webhook/dingtalk", response_model=WebhookAck)
async def dingtalk_webhook(
    request: Request,
    config: Config = Depends(get_config),
    dispatcher: DispatchController = Depends(get_dispatcher),
):
    """Handle an incoming DingTalk robot event.

    Everything up to the ack runs synchronously; the agent call happens in a
    detached task so DingTalk gets its response well inside its deadline.
    Signature checking only applies when both headers are present.
    """
    try:
        timestamp = _first_header(request, TIMESTAMP_HEADERS)
        signature = _first_header(request, SIGN_HEADERS)
        if timestamp and signature and not verify_signature(
            timestamp, signature, config.dingtalk.sign_key
        ):
            logger.warning("DingTalk webhook: signature verification failed")
            return JSONResponse({"error": "signature verification failed"}, status_code=401)

        event = unwrap_event(await request.json())
        message = parse_message(event)
        if message is None:
            logger.debug(f"DingTalk webhook: ignoring non-text event: {str(event)[:200]}")
            return WebhookAck(status="ignored")

        keyword = config.dingtalk.keyword
        if keyword and keyword not in message.content:
            logger.debug("DingTalk webhook: keyword not present, skipping")
            return WebhookAck(status="keyword_mismatch")

        kind = "group" if message.is_group else "direct"
        sender = message.sender_nick or message.user_id
        logger.info(f"DingTalk [{kind}] {sender}: {message.content[:80]}")

        dispatcher.submit(message)
        return WebhookAck(status="ok")

    except MalformedPayloadError as e:
        logger.error(f"DingTalk webhook: malformed payload: {e}")
        return JSONResponse({"error": "malformed payload"}, status_code=500)
    except Exception as e:
        logger.error(f"DingTalk webhook failed: {e}")
        return JSONResponse({"error": "internal error"}, status_code=500)


def _first_header(request: Request, names: tuple[str, ...]) -> str | None:
    for name in names:
        value = request.headers.get(name)
        if value:
            return value
    return None
