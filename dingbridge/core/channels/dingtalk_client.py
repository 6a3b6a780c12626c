"""DingTalk robot webhook client."""

from __future__ import annotations

import httpx
from loguru import logger


class DingTalkAPIError(Exception):
    """Raised when DingTalk answers 200 with a non-zero ``errcode``."""

    def __init__(self, errcode: int, errmsg: str):
        self.errcode = errcode
        self.errmsg = errmsg
        super().__init__(f"DingTalk errcode {errcode}: {errmsg}")


class DingTalkClient:
    """Async client for DingTalk robot webhooks.

    Parameters
    ----------
    timeout : float
        Request timeout in seconds.
    transport : httpx.AsyncBaseTransport, optional
        Custom transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self.timeout = timeout
        self.transport = transport

    async def send_text(self, webhook_url: str, text: str) -> dict:
        """Post a text message to a robot webhook.

        Parameters
        ----------
        webhook_url : str
            Full robot URL (``https://oapi.dingtalk.com/robot/send?access_token=...``).
        text : str
            Message text.
        """
        payload = {"msgtype": "text", "text": {"content": text}}
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout), transport=self.transport
        ) as client:
            resp = await client.post(webhook_url, json=payload)
            if resp.status_code != 200:
                logger.warning(
                    f"DingTalk send failed ({resp.status_code}): {resp.text[:200]}"
                )
            resp.raise_for_status()
            try:
                data = resp.json()
            except ValueError:
                data = {}  # plain-text ack

        errcode = data.get("errcode", 0) if isinstance(data, dict) else 0
        if errcode:
            raise DingTalkAPIError(errcode, str(data.get("errmsg", "")))
        return data
