"""Typed webhook payloads, one class per action."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from shop_appstore.billing.actions import Action
from shop_appstore.models import Application, Shop


@dataclass(frozen=True)
class Message:
    """Base payload: the application, the shop and the non-routing fields."""

    application: Application
    shop: Shop
    data: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    @property
    def timestamp(self) -> str | None:
        return self.data.get("timestamp")


@dataclass(frozen=True)
class BillingInstall(Message):
    """The application has been paid for."""


@dataclass(frozen=True)
class BillingSubscription(Message):
    """The subscription was bought or extended."""

    @property
    def subscription_end_time(self) -> datetime:
        return datetime.fromisoformat(str(self.data["subscription_end_time"]))


@dataclass(frozen=True)
class Install(Message):
    @property
    def application_version(self) -> int:
        return int(self.data["application_version"])

    @property
    def auth_code(self) -> str:
        return str(self.data["auth_code"])


@dataclass(frozen=True)
class Uninstall(Message):
    pass


@dataclass(frozen=True)
class Upgrade(Message):
    @property
    def application_version(self) -> int:
        return int(self.data["application_version"])


MESSAGE_CLASSES: dict[Action, type[Message]] = {
    Action.BILLING_INSTALL: BillingInstall,
    Action.BILLING_SUBSCRIPTION: BillingSubscription,
    Action.INSTALL: Install,
    Action.UNINSTALL: Uninstall,
    Action.UPGRADE: Upgrade,
}
