"""ChatSink — best-effort delivery of reply text to a DingTalk robot."""

from __future__ import annotations

import httpx
from loguru import logger

from dingbridge.core.channels.dingtalk_client import DingTalkAPIError, DingTalkClient
from dingbridge.core.channels.signature import signed_url


class ChatSink:
    """Single-attempt sender. ``deliver`` never raises."""

    def __init__(self, client: DingTalkClient | None = None, secret: str = "") -> None:
        self.client = client or DingTalkClient()
        self.secret = secret

    async def deliver(self, destination: str | None, text: str) -> bool:
        """Send ``text`` to ``destination``. Returns True on transport success."""
        if not destination:
            logger.error("DingTalk webhook URL not configured, reply dropped")
            return False

        url = signed_url(destination, self.secret)
        try:
            await self.client.send_text(url, text)
        except httpx.HTTPStatusError as e:
            logger.error(f"DingTalk delivery failed ({e.response.status_code}): {e}")
            return False
        except DingTalkAPIError as e:
            logger.error(f"DingTalk delivery rejected: {e}")
            return False
        except Exception as e:
            logger.error(f"DingTalk delivery failed: {e}")
            return False
        return True
