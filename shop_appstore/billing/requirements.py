"""Required-parameter checks for inbound webhooks.

Presence follows an "empty is missing" policy: a key that exists but holds
``""``, ``"0"``, ``0``, ``None``, ``False`` or an empty collection counts
as absent.  This is kept for compatibility with the marketplace, even
though it rejects legitimately zero-valued fields.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from shop_appstore.billing.actions import ACTION_REQUIRED_PARAMS, BASE_REQUIRED_PARAMS, Action
from shop_appstore.exceptions import MissingParameterError


def is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == "" or value == "0"
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (list, tuple, dict, set, frozenset, bytes)):
        return len(value) == 0
    return False


def required_params(action: str) -> tuple[str, ...]:
    """Base required parameters plus the extras for *action*."""
    try:
        extra = ACTION_REQUIRED_PARAMS.get(Action(action), ())
    except ValueError:
        extra = ()
    return BASE_REQUIRED_PARAMS + extra


def verify_requirements(params: Mapping[str, Any]) -> None:
    """Raise ``MissingParameterError`` naming the first absent field.

    ``action`` is checked before anything else because it selects the
    action-specific fields.
    """
    action = params.get("action")
    if is_empty(action):
        raise MissingParameterError("action")

    for name in required_params(str(action)):
        if name not in params or is_empty(params[name]):
            raise MissingParameterError(name)
