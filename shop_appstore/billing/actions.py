"""Webhook actions and the parameters each one requires."""

from __future__ import annotations

from enum import Enum


class Action(str, Enum):
    BILLING_INSTALL = "billing_install"
    BILLING_SUBSCRIPTION = "billing_subscription"
    INSTALL = "install"
    UNINSTALL = "uninstall"
    UPGRADE = "upgrade"


# Present on every webhook, checked in this order
BASE_REQUIRED_PARAMS: tuple[str, ...] = (
    "action",
    "shop",
    "shop_url",
    "hash",
    "timestamp",
    "application_code",
)

ACTION_REQUIRED_PARAMS: dict[Action, tuple[str, ...]] = {
    Action.BILLING_SUBSCRIPTION: ("subscription_end_time",),
    Action.INSTALL: ("application_version", "auth_code"),
    Action.UPGRADE: ("application_version",),
}

# Routing fields removed before a payload is built; ``hash`` and
# ``timestamp`` stay in the payload data.
PROTOCOL_PARAMS: tuple[str, ...] = ("action", "shop", "shop_url", "application_code")
