"""HMAC-SHA256 request signing.

Every delivery carries the hex digest of the exact request body in the
``X-Webhook-Signature`` header. Receivers recompute it over the raw body
they read from the wire, before any JSON parsing.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

SIGNATURE_HEADER = "X-Webhook-Signature"


def sign(raw_body: bytes, secret: str) -> str:
    """Compute the HMAC-SHA256 signature of a request body.

    Args:
        raw_body: Exact bytes transmitted as the request body.
        secret: Shared secret of the endpoint.

    Returns:
        Lowercase hex digest.
    """
    return hmac.new(
        key=secret.encode("utf-8"),
        msg=raw_body,
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify(raw_body: bytes, supplied_digest: str, secret: str) -> bool:
    """Verify the HMAC-SHA256 signature of a request body.

    Uses a constant-time comparison. Malformed digests (wrong length,
    non-ASCII) simply fail verification.

    Args:
        raw_body: Exact bytes received as the request body.
        supplied_digest: Value of the signature header.
        secret: Shared secret of the endpoint.

    Returns:
        True if the signature matches, False otherwise.
    """
    expected = sign(raw_body, secret)
    try:
        return hmac.compare_digest(expected, supplied_digest.strip().lower())
    except (TypeError, AttributeError):
        return False


def generate_secret() -> str:
    """Generate a new endpoint secret (32 random bytes, hex encoded)."""
    return secrets.token_hex(32)
