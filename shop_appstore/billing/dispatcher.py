"""Appstore webhook dispatcher — validates a webhook and applies its action.

Steps, strictly in order; any failure aborts the dispatch:

1. method must be exactly "POST"            -> InvalidRequestMethodError
2. required parameters present (non-empty)  -> UnfulfilledRequirementsError
3. application resolved by code             -> ApplicationNotFoundError
4. HMAC-SHA512 hash matches                 -> InvalidPayloadSignatureError
5. shop looked up by (name, application), created or its URI updated
                                            -> InvalidUriError for a bad shop_url
6. resolver found for the action            -> UnsupportedActionError
7. typed payload built (routing fields stripped)
8. resolver applied (its errors propagate unwrapped)
9. shop persisted and flushed

Steps 5-9 run under a lock picked from a fixed pool by the
(shop, application) pair and only ever touch a detached copy of the
stored shop, so a failure before step 9 leaves storage unchanged and
concurrent webhooks for one shop cannot create two records.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

import httpx

from shop_appstore.api.auth import OAuthAuthenticator
from shop_appstore.api.http import RetryingHttpClient
from shop_appstore.applications import ApplicationRegistry
from shop_appstore.billing.actions import PROTOCOL_PARAMS, Action
from shop_appstore.billing.interfaces import (
    ApplicationProvider,
    ObjectManager,
    ShopFactory,
    ShopRepository,
    StateMachineProvider,
)
from shop_appstore.billing.payload import MESSAGE_CLASSES, Message
from shop_appstore.billing.registry import ResolverRegistry
from shop_appstore.billing.requirements import verify_requirements
from shop_appstore.billing.resolvers import (
    BillingInstallResolver,
    BillingSubscriptionResolver,
    InstallResolver,
    UninstallResolver,
    UpgradeResolver,
)
from shop_appstore.billing.verification import verify_payload
from shop_appstore.config import AppstoreSettings
from shop_appstore.exceptions import (
    ApplicationNotFoundError,
    InvalidPayloadSignatureError,
    InvalidRequestMethodError,
    MissingParameterError,
    UnfulfilledRequirementsError,
    UnknownApplicationError,
    UnsupportedActionError,
)
from shop_appstore.models import Application, Shop, WebhookRequest, parse_uri
from shop_appstore.state_machine import default_state_machine_factory
from shop_appstore.storage import DefaultShopFactory, InMemoryShopRepository, RedisShopRepository

logger = logging.getLogger(__name__)

# Fixed lock pool; one (shop, application) pair always maps to the same lock
SHOP_LOCK_STRIPES = 64


class Dispatcher:
    """Turns a signed appstore webhook into a shop state change."""

    def __init__(
        self,
        applications: ApplicationProvider,
        shop_repository: ShopRepository,
        shop_factory: ShopFactory,
        object_manager: ObjectManager,
        resolvers: ResolverRegistry,
        uri_parser: Callable[[Any], httpx.URL] = parse_uri,
    ) -> None:
        self._applications = applications
        self._shop_repository = shop_repository
        self._shop_factory = shop_factory
        self._object_manager = object_manager
        self._resolvers = resolvers
        self._uri_parser = uri_parser

        self._shop_locks = tuple(threading.Lock() for _ in range(SHOP_LOCK_STRIPES))

    @property
    def resolvers(self) -> ResolverRegistry:
        return self._resolvers

    def dispatch(self, request: WebhookRequest) -> Shop:
        """Process one webhook; returns the persisted shop."""
        if request.method != "POST":
            _audit(request, "invalid_method")
            raise InvalidRequestMethodError(request)

        params = dict(request.params)

        try:
            verify_requirements(params)
        except MissingParameterError as exc:
            _audit(request, "missing_parameter")
            raise UnfulfilledRequirementsError(exc.parameter, request) from exc

        try:
            application = self._applications.get(str(params["application_code"]))
        except UnknownApplicationError as exc:
            _audit(request, "unknown_application")
            raise ApplicationNotFoundError(request) from exc

        if not verify_payload(params, application.appstore_secret):
            _audit(request, "signature_failed")
            raise InvalidPayloadSignatureError(request, application)

        shop_uri = self._uri_parser(params["shop_url"])
        shop_name = str(params["shop"])

        with self._lock_for(shop_name, application):
            shop = self._shop_repository.find_one_by_name_and_application(shop_name, application)
            if shop is None:
                shop = self._shop_factory.create_new_by_application_and_uri(application, shop_uri)
                shop.name = shop_name
            else:
                shop.uri = shop_uri

            try:
                resolver = self._resolvers.get(params["action"])
            except UnsupportedActionError as exc:
                _audit(request, "unsupported_action")
                raise UnsupportedActionError(exc.action, request) from exc

            resolver.resolve(self._build_payload(application, shop, params))

            self._object_manager.persist(shop)
            self._object_manager.flush()

        _audit(request, "dispatched")
        return shop

    def _lock_for(self, shop_name: str, application: Application) -> threading.Lock:
        return self._shop_locks[hash((shop_name, application.code)) % SHOP_LOCK_STRIPES]

    @staticmethod
    def _build_payload(application: Application, shop: Shop, params: dict[str, Any]) -> Message:
        message_class = MESSAGE_CLASSES[Action(params["action"])]
        data = {k: v for k, v in params.items() if k not in PROTOCOL_PARAMS}
        return message_class(application, shop, data)


def _audit(request: WebhookRequest, status: str) -> None:
    params = request.params
    logger.info(
        "APPSTORE_AUDIT action=%s shop=%s application=%s status=%s",
        params.get("action", ""),
        params.get("shop", ""),
        params.get("application_code", ""),
        status,
    )


def create_dispatcher(
    settings: AppstoreSettings,
    state_machine_factory: StateMachineProvider | None = None,
    authenticator: OAuthAuthenticator | None = None,
    redis_client: Any = None,
    http: RetryingHttpClient | None = None,
) -> Dispatcher:
    """Wire a ``Dispatcher`` with the default collaborators for *settings*.

    Shops are kept in Redis when ``redis_url`` is set (or a client is
    given), otherwise in memory.  When any application has OAuth
    credentials, install webhooks exchange their auth code through an
    ``OAuthAuthenticator`` on *http*, by default a retrying client built
    from the settings.
    """
    if authenticator is None and any(app.client_id for app in settings.applications):
        authenticator = OAuthAuthenticator(http or RetryingHttpClient.from_settings(settings))

    if settings.redis_url or redis_client is not None:
        storage: InMemoryShopRepository | RedisShopRepository = RedisShopRepository(
            settings.redis_url or None, client=redis_client
        )
    else:
        storage = InMemoryShopRepository()

    resolvers = ResolverRegistry(
        {
            Action.BILLING_INSTALL: BillingInstallResolver(
                state_machine_factory or default_state_machine_factory()
            ),
            Action.BILLING_SUBSCRIPTION: BillingSubscriptionResolver(),
            Action.INSTALL: InstallResolver(authenticator),
            Action.UNINSTALL: UninstallResolver(),
            Action.UPGRADE: UpgradeResolver(),
        }
    )
    return Dispatcher(
        applications=ApplicationRegistry.from_settings(settings),
        shop_repository=storage,
        shop_factory=DefaultShopFactory(),
        object_manager=storage,
        resolvers=resolvers,
    )
