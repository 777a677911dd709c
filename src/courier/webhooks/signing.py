"""HMAC-SHA256 request signing.

The signature covers the exact bytes placed on the wire. Payloads are
serialized once with serialize_payload() and those bytes are both signed
and sent, so receivers can verify against the raw request body without
re-serializing anything.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

SIGNATURE_HEADER = "X-Webhook-Signature"
EVENT_HEADER = "X-Webhook-Event"
DELIVERY_HEADER = "X-Webhook-Delivery"


def serialize_payload(payload: dict[str, Any]) -> bytes:
    """Serialize a payload to canonical JSON bytes.

    Keys are sorted and separators are compact, so equal payloads always
    produce identical bytes.
    """
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def sign(raw_body: bytes, secret: str) -> str:
    """Compute the HMAC-SHA256 signature of a request body.

    Args:
        raw_body: Exact bytes that will be transmitted.
        secret: Destination's shared secret.

    Returns:
        Lowercase hexadecimal digest.

    Raises:
        TypeError: If raw_body is not bytes or secret is not a string.
    """
    if not isinstance(raw_body, bytes | bytearray):
        raise TypeError(f"raw_body must be bytes, not {type(raw_body).__name__}")
    if not isinstance(secret, str):
        raise TypeError(f"secret must be str, not {type(secret).__name__}")
    return hmac.new(
        key=secret.encode("utf-8"),
        msg=bytes(raw_body),
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify_signature(raw_body: bytes, secret: str, signature: str) -> bool:
    """Check a received signature in constant time.

    Args:
        raw_body: Request body exactly as received.
        secret: Shared secret.
        signature: Value of the signature header.
    """
    expected = sign(raw_body, secret)
    return hmac.compare_digest(expected, signature.strip().lower())
