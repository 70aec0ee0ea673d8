"""Webhook signature verification — HMAC-SHA512 over sorted parameters.

The marketplace signs every webhook by:

1. dropping the ``hash`` field,
2. sorting the remaining keys,
3. joining ``key=value`` pairs with ``&`` (no URL encoding),
4. computing HMAC-SHA512 with the application's appstore secret
   (lowercase hex).

Comparison uses ``hmac.compare_digest()`` (constant-time); it is still an
exact, case-sensitive match.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

HASH_PARAM = "hash"


def _render(value: Any) -> str:
    """Scalar -> text the way the marketplace's PHP signer casts it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, float):
        # PHP drops the ".0" of integral floats: 10.0 -> "10"
        if value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return repr(value)
    if isinstance(value, (Mapping, list, tuple)):
        raise TypeError(f"Cannot sign non-scalar value of type {type(value).__name__}")
    return str(value)


def canonicalize(params: Mapping[str, Any]) -> str:
    """Build the signed string: sorted ``key=value`` pairs without ``hash``."""
    return "&".join(
        f"{key}={_render(params[key])}" for key in sorted(params) if key != HASH_PARAM
    )


def sign_payload(params: Mapping[str, Any], secret: str) -> str:
    """Compute the lowercase hex HMAC-SHA512 signature for *params*."""
    return hmac.new(
        secret.encode("utf-8"),
        canonicalize(params).encode("utf-8"),
        hashlib.sha512,
    ).hexdigest()


def verify_payload(params: Mapping[str, Any], secret: str) -> bool:
    """Return ``True`` if ``params["hash"]`` matches the computed signature.

    An empty secret, a missing hash or a non-scalar value always fails
    (fail-closed).
    """
    if not secret:
        logger.warning("Appstore secret is empty — rejecting webhook")
        return False

    provided = params.get(HASH_PARAM)
    if not isinstance(provided, str) or not provided:
        return False

    try:
        computed = sign_payload(params, secret)
    except TypeError:
        logger.warning("Webhook carries non-scalar values — rejecting webhook")
        return False
    return hmac.compare_digest(computed.encode("utf-8"), provided.encode("utf-8"))
