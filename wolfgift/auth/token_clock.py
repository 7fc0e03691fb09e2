"""
Identity token freshness checks.

An identity token is a three-segment signed token whose middle segment is
base64url-encoded JSON carrying a Unix-seconds ``exp`` claim. Anything that
cannot be read that way counts as expired.
"""

import base64
import binascii
import json
import math
import time
from typing import Any

from wolfgift.core.types import TokenSet

EXPIRY_MARGIN_SECONDS = 5 * 60


def decode_claims(token: str | None) -> dict[str, Any] | None:
    """Return the payload claims of ``token``, or None if it is malformed."""
    if not token or not isinstance(token, str):
        return None

    parts = token.split(".")
    if len(parts) != 3:
        return None

    segment = parts[1]
    try:
        raw = base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))
        claims = json.loads(raw)
    except (binascii.Error, ValueError):
        return None

    return claims if isinstance(claims, dict) else None


def expires_at(token: str | None) -> float | None:
    """Unix-seconds expiry of ``token``, or None when it has no usable claim."""
    claims = decode_claims(token)
    if claims is None:
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    try:
        value = float(exp)
    except OverflowError:
        return None
    return value if math.isfinite(value) else None


def seconds_remaining(token: str | None, now: float | None = None) -> float | None:
    exp = expires_at(token)
    if exp is None:
        return None
    return exp - (time.time() if now is None else now)


def is_expired(
    tokens: TokenSet | str | None,
    now: float | None = None,
    margin_seconds: float = EXPIRY_MARGIN_SECONDS,
) -> bool:
    """
    True unless the identity token is readable and outlives ``margin_seconds``.

    Args:
        tokens: A TokenSet or a bare identity token
        now: Current Unix time in seconds (defaults to the wall clock)
        margin_seconds: Required remaining lifetime
    """
    token = tokens.identity_token if isinstance(tokens, TokenSet) else tokens
    remaining = seconds_remaining(token, now)
    if remaining is None:
        return True
    return remaining <= margin_seconds


__all__ = [
    "EXPIRY_MARGIN_SECONDS",
    "decode_claims",
    "expires_at",
    "seconds_remaining",
    "is_expired",
]
