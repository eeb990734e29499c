"""LINE webhook signature verification.

LINE signs every delivery with base64(HMAC-SHA256(channel_secret, body)) in
the ``x-line-signature`` header. The digest must be computed over the body
bytes exactly as received; a parsed and re-serialized payload can differ in
key order or whitespace and would no longer match.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from collections.abc import Mapping

SIGNATURE_HEADER = "x-line-signature"


def compute_signature(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


class LineSignatureVerifier:
    """Checks inbound webhook deliveries against the channel secret."""

    def __init__(self, channel_secret: str) -> None:
        if not channel_secret:
            raise ValueError("channel secret must not be empty")
        self._secret = channel_secret

    def verify(self, headers: Mapping[str, str], body: bytes) -> bool:
        """Return True if the signature header matches the raw body.

        Uses hmac.compare_digest for constant-time comparison.
        """
        signature = headers.get(SIGNATURE_HEADER, "")
        if not signature:
            return False
        expected = compute_signature(self._secret, body)
        return hmac.compare_digest(signature.encode(), expected.encode())
