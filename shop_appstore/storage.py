"""Shop storage: factory, in-memory and Redis-backed repositories.

Repositories hand out detached copies of stored shops.  A shop is only
written on ``flush()`` after ``persist()``, so a dispatch that fails
before persisting leaves storage untouched.

Shops are keyed by ``(application code, shop name)``; storing a shop under
an existing key overwrites it, which keeps at most one record per pair.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import threading
from datetime import datetime
from typing import Any

import httpx
import redis

from shop_appstore.models import Application, Shop, Token

logger = logging.getLogger(__name__)

_REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

# Key pattern: appstore:shop:{application_code}:{shop_name}
_KEY_PREFIX = "appstore:shop"


class DefaultShopFactory:
    """Creates unnamed shops; the dispatcher assigns the webhook's shop name."""

    def create_new_by_application_and_uri(self, application: Application, uri: httpx.URL) -> Shop:
        return Shop(name="", application=application, uri=uri)


class InMemoryShopRepository:
    """Thread-safe in-memory repository and object manager.

    Suitable for tests and single-process deployments.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._shops: dict[tuple[str, str], Shop] = {}
        self._pending: dict[tuple[str, str], Shop] = {}

    def find_one_by_name_and_application(self, name: str, application: Application) -> Shop | None:
        with self._lock:
            shop = self._shops.get((name, application.code))
            return dataclasses.replace(shop) if shop is not None else None

    def persist(self, shop: Shop) -> None:
        with self._lock:
            self._pending[shop.key] = dataclasses.replace(shop)

    def flush(self) -> None:
        with self._lock:
            self._shops.update(self._pending)
            count = len(self._pending)
            self._pending.clear()
        logger.debug("Flushed %d shop(s) to memory", count)

    def all(self) -> list[Shop]:
        with self._lock:
            return [dataclasses.replace(s) for s in self._shops.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._shops)


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------


def _shop_key(application_code: str, name: str) -> str:
    return f"{_KEY_PREFIX}:{application_code}:{name}"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _from_iso(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def shop_to_dict(shop: Shop) -> dict[str, Any]:
    token = None
    if shop.token is not None:
        token = {
            "access_token": shop.token.access_token,
            "refresh_token": shop.token.refresh_token,
            "expires_at": _iso(shop.token.expires_at),
        }
    return {
        "name": shop.name,
        "application_code": shop.application.code,
        "uri": str(shop.uri),
        "billing_state": shop.billing_state,
        "installed": shop.installed,
        "version": shop.version,
        "auth_code": shop.auth_code,
        "subscription_end_time": _iso(shop.subscription_end_time),
        "token": token,
    }


def shop_from_dict(data: dict[str, Any], application: Application) -> Shop:
    token_data = data.get("token")
    token = None
    if token_data:
        token = Token(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token", ""),
            expires_at=_from_iso(token_data.get("expires_at")),
        )
    return Shop(
        name=data["name"],
        application=application,
        uri=httpx.URL(data["uri"]),
        billing_state=data.get("billing_state", "unpaid"),
        installed=bool(data.get("installed", False)),
        version=data.get("version"),
        auth_code=data.get("auth_code"),
        subscription_end_time=_from_iso(data.get("subscription_end_time")),
        token=token,
    )


class RedisShopRepository:
    """Redis-backed repository and object manager.

    One JSON document per shop under ``appstore:shop:{app}:{name}``;
    ``flush()`` writes staged shops in a single MULTI/EXEC pipeline.
    """

    def __init__(self, redis_url: str | None = None, client: Any = None) -> None:
        self._redis = client or redis.from_url(redis_url or _REDIS_URL, decode_responses=True)
        self._lock = threading.Lock()
        self._pending: dict[str, dict[str, Any]] = {}

    def find_one_by_name_and_application(self, name: str, application: Application) -> Shop | None:
        raw = self._redis.get(_shop_key(application.code, name))
        if raw is None:
            return None
        return shop_from_dict(json.loads(raw), application)

    def persist(self, shop: Shop) -> None:
        with self._lock:
            self._pending[_shop_key(shop.application.code, shop.name)] = shop_to_dict(shop)

    def flush(self) -> None:
        with self._lock:
            pending, self._pending = self._pending, {}
        if not pending:
            return
        pipe = self._redis.pipeline(transaction=True)
        for key, data in pending.items():
            pipe.set(key, json.dumps(data))
        pipe.execute()
        logger.debug("Flushed %d shop(s) to Redis", len(pending))
