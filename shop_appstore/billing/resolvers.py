"""Message resolvers: one domain effect per webhook action.

Each resolver checks the message type, loads what it needs for the shop
and applies a single change.  Only billing install drives a state machine
(``shop_billing``/``pay``); the others record install data on the shop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from shop_appstore.billing.payload import (
    BillingInstall,
    BillingSubscription,
    Install,
    Message,
    Uninstall,
    Upgrade,
)
from shop_appstore.exceptions import InvalidMessageError
from shop_appstore.state_machine import ShopBillingTransitions

if TYPE_CHECKING:
    from shop_appstore.api.auth import OAuthAuthenticator
    from shop_appstore.billing.interfaces import StateMachineProvider

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=Message)


def _expect(message: Message, expected: type[M]) -> M:
    if not isinstance(message, expected):
        raise InvalidMessageError(expected, message)
    return message


class BillingInstallResolver:
    """Marks the shop's application as paid."""

    def __init__(self, state_machine_factory: StateMachineProvider) -> None:
        self._state_machine_factory = state_machine_factory

    def resolve(self, message: Message) -> None:
        message = _expect(message, BillingInstall)
        state_machine = self._state_machine_factory.get(message.shop, ShopBillingTransitions.GRAPH)
        state_machine.apply(ShopBillingTransitions.TRANSITION_PAY)


class BillingSubscriptionResolver:
    def resolve(self, message: Message) -> None:
        message = _expect(message, BillingSubscription)
        message.shop.subscription_end_time = message.subscription_end_time


class InstallResolver:
    """Records the install; exchanges the auth code when an authenticator is set."""

    def __init__(self, authenticator: OAuthAuthenticator | None = None) -> None:
        self._authenticator = authenticator

    def resolve(self, message: Message) -> None:
        message = _expect(message, Install)
        shop = message.shop
        shop.installed = True
        shop.version = message.application_version
        shop.auth_code = message.auth_code
        if self._authenticator is not None:
            shop.token = self._authenticator.fetch_token(shop, message.auth_code)


class UninstallResolver:
    def resolve(self, message: Message) -> None:
        shop = _expect(message, Uninstall).shop
        shop.installed = False
        shop.token = None
        shop.auth_code = None


class UpgradeResolver:
    def resolve(self, message: Message) -> None:
        message = _expect(message, Upgrade)
        logger.info(
            "Shop %s upgraded application %s: %s -> %s",
            message.shop.name,
            message.application.code,
            message.shop.version,
            message.application_version,
        )
        message.shop.version = message.application_version
