"""Shop REST API client.

Every call goes through ``RetryingHttpClient`` so 429 responses are waited
out transparently.  Calls require an OAuth token on the shop (see
``shop_appstore.api.auth``).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from shop_appstore.api.http import RetryingHttpClient
from shop_appstore.api.resources import Resource
from shop_appstore.exceptions import ApiError, AuthenticationFailedError
from shop_appstore.models import ItemList, Shop

logger = logging.getLogger(__name__)

API_PATH = "webapi/rest"
DEFAULT_LIMIT = 50
MAX_LIMIT = 50


def api_url(shop_uri: httpx.URL, path: str) -> httpx.URL:
    """``{shop_uri}/webapi/rest/{path}``, keeping any base path of the shop."""
    base = shop_uri.path.rstrip("/")
    return shop_uri.copy_with(path=f"{base}/{API_PATH}/{path.lstrip('/')}", query=None)


def response_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def raise_for_api_error(response: httpx.Response) -> None:
    """Convert a non-2xx response into ``ApiError`` (401 -> ``AuthenticationFailedError``)."""
    if response.is_success:
        return
    body = response_json(response)
    if response.status_code == 401:
        raise AuthenticationFailedError.for_invalid_response_body(body, response.request, response)

    detail = ""
    if isinstance(body, dict):
        detail = str(body.get("error_description") or body.get("error") or "")
    message = f"Shop API responded with HTTP {response.status_code}"
    if detail:
        message = f"{message}: {detail}"
    raise ApiError(message, response.request, response)


class ShopClient:
    """CRUD access to shop REST resources."""

    def __init__(self, http: RetryingHttpClient) -> None:
        self._http = http

    def _headers(self, shop: Shop) -> dict[str, str]:
        if shop.token is None or not shop.token.access_token:
            raise ApiError(f"Shop {shop.name!r} has no access token")
        return {
            "Authorization": f"Bearer {shop.token.access_token}",
            "Accept": "application/json",
        }

    def _call(
        self,
        shop: Shop,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        payload: Any = None,
    ) -> Any:
        kwargs: dict[str, Any] = {"headers": self._headers(shop)}
        if params:
            kwargs["params"] = dict(params)
        if payload is not None:
            kwargs["json"] = payload
        response = self._http.request(method, api_url(shop.uri, path), **kwargs)
        raise_for_api_error(response)
        logger.debug("Shop API %s %s -> HTTP %d", method, path, response.status_code)
        return response_json(response)

    def find(self, shop: Shop, resource: type[Resource] | Resource, item_id: int) -> dict[str, Any]:
        return self._call(shop, "GET", f"{resource.name}/{item_id}")

    def find_all(
        self,
        shop: Shop,
        resource: type[Resource] | Resource,
        page: int = 1,
        limit: int = DEFAULT_LIMIT,
        filters: Mapping[str, Any] | None = None,
    ) -> ItemList[dict[str, Any]]:
        """One page of a collection.  *limit* is capped at the API maximum (50)."""
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        params: dict[str, Any] = {"page": page, "limit": max(1, min(limit, MAX_LIMIT))}
        if filters:
            params["filters"] = json.dumps(dict(filters))

        body = self._call(shop, "GET", resource.name, params=params) or {}
        return ItemList(
            body.get("list", []),
            count=int(body.get("count", 0)),
            page=int(body.get("page", page)),
            pages=int(body.get("pages", 1)),
        )

    def insert(self, shop: Shop, resource: type[Resource] | Resource, data: Mapping[str, Any]) -> int:
        """Create an item; returns the new identifier."""
        return int(self._call(shop, "POST", resource.name, payload=dict(data)))

    def update(
        self,
        shop: Shop,
        resource: type[Resource] | Resource,
        item_id: int,
        data: Mapping[str, Any],
    ) -> bool:
        return bool(self._call(shop, "PUT", f"{resource.name}/{item_id}", payload=dict(data)))

    def delete(self, shop: Shop, resource: type[Resource] | Resource, item_id: int) -> bool:
        return bool(self._call(shop, "DELETE", f"{resource.name}/{item_id}"))
