"""DingTalk robot signatures — HMAC-SHA256 over ``"{timestamp}\\n{secret}"``."""

from __future__ import annotations

import base64
import hashlib
import hmac
import time
from urllib.parse import quote_plus


def sign(timestamp: str, secret: str) -> str:
    """Return base64(HMAC-SHA256(key=secret, msg=f"{timestamp}\\n{secret}"))."""
    string_to_sign = f"{timestamp}\n{secret}"
    digest = hmac.new(
        secret.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha256
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(timestamp: str | None, signature: str | None, secret: str) -> bool:
    """Check an inbound request signature.

    Empty ``secret`` means verification is disabled → always True.
    With a secret, missing timestamp or signature is a failure.
    """
    if not secret:
        return True
    if not timestamp or not signature:
        return False
    expected = sign(timestamp, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def signed_url(url: str, secret: str, timestamp_ms: int | None = None) -> str:
    """Append ``timestamp`` and ``sign`` query params for a signed custom robot."""
    if not secret:
        return url
    ts = str(timestamp_ms if timestamp_ms is not None else int(time.time() * 1000))
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}timestamp={ts}&sign={quote_plus(sign(ts, secret))}"
