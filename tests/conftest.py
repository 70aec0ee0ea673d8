"""Shared fixtures for the shop appstore test suite."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from shop_appstore.applications import ApplicationRegistry
from shop_appstore.billing.actions import Action
from shop_appstore.billing.dispatcher import Dispatcher
from shop_appstore.billing.registry import ResolverRegistry
from shop_appstore.billing.resolvers import (
    BillingInstallResolver,
    BillingSubscriptionResolver,
    InstallResolver,
    UninstallResolver,
    UpgradeResolver,
)
from shop_appstore.billing.verification import sign_payload
from shop_appstore.models import Application, WebhookRequest
from shop_appstore.state_machine import StateMachineFactory, default_state_machine_factory
from shop_appstore.storage import DefaultShopFactory, InMemoryShopRepository

APP_CODE = "test-app"
APP_SECRET = "appstore-test-secret"
SHOP_NAME = "shop1234"
SHOP_URL = "https://shop1234.example.com"


@pytest.fixture()
def application() -> Application:
    return Application(
        code=APP_CODE,
        appstore_secret=APP_SECRET,
        client_id="client-id",
        client_secret="client-secret",
    )


@pytest.fixture()
def applications(application: Application) -> ApplicationRegistry:
    return ApplicationRegistry([application])


@pytest.fixture()
def storage() -> InMemoryShopRepository:
    return InMemoryShopRepository()


@pytest.fixture()
def state_machine_factory() -> StateMachineFactory:
    return default_state_machine_factory()


@pytest.fixture()
def resolvers(state_machine_factory: StateMachineFactory) -> ResolverRegistry:
    return ResolverRegistry(
        {
            Action.BILLING_INSTALL: BillingInstallResolver(state_machine_factory),
            Action.BILLING_SUBSCRIPTION: BillingSubscriptionResolver(),
            Action.INSTALL: InstallResolver(),
            Action.UNINSTALL: UninstallResolver(),
            Action.UPGRADE: UpgradeResolver(),
        }
    )


@pytest.fixture()
def dispatcher(
    applications: ApplicationRegistry,
    storage: InMemoryShopRepository,
    resolvers: ResolverRegistry,
) -> Dispatcher:
    return Dispatcher(
        applications=applications,
        shop_repository=storage,
        shop_factory=DefaultShopFactory(),
        object_manager=storage,
        resolvers=resolvers,
    )


@pytest.fixture()
def signed_params() -> Callable[..., dict[str, Any]]:
    """Build a webhook parameter mapping with a valid ``hash``."""

    def _build(action: str = "billing_install", secret: str = APP_SECRET, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {
            "action": action,
            "shop": SHOP_NAME,
            "shop_url": SHOP_URL,
            "timestamp": "2024-05-01 12:00:00",
            "application_code": APP_CODE,
        }
        params.update(extra)
        params["hash"] = sign_payload(params, secret)
        return params

    return _build


@pytest.fixture()
def post() -> Callable[[dict[str, Any]], WebhookRequest]:
    def _post(params: dict[str, Any]) -> WebhookRequest:
        return WebhookRequest(method="POST", params=params)

    return _post
