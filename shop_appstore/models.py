"""Domain objects shared by the webhook pipeline and the API client."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar, overload

import httpx

from shop_appstore.exceptions import InvalidUriError

T = TypeVar("T")


@dataclass(frozen=True)
class Application:
    """A marketplace application registered with this SDK.

    ``appstore_secret`` signs inbound webhooks; ``client_id`` and
    ``client_secret`` are the OAuth credentials used against shop APIs.
    """

    code: str
    appstore_secret: str = field(repr=False)
    client_id: str = ""
    client_secret: str = field(default="", repr=False)


@dataclass(frozen=True)
class Token:
    """OAuth access token issued by a shop."""

    access_token: str = field(repr=False)
    refresh_token: str = field(default="", repr=False)
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass
class Shop:
    """An installation of an application on a single store."""

    name: str
    application: Application
    uri: httpx.URL
    billing_state: str = "unpaid"
    installed: bool = False
    version: int | None = None
    auth_code: str | None = field(default=None, repr=False)
    subscription_end_time: datetime | None = None
    token: Token | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Identity of the shop: ``(name, application code)``."""
        return (self.name, self.application.code)


@dataclass(frozen=True)
class WebhookRequest:
    """Transport-independent view of an inbound webhook call."""

    method: str
    params: Mapping[str, Any]
    headers: Mapping[str, str] = field(default_factory=dict)


def parse_uri(value: Any) -> httpx.URL:
    """Parse a shop URL string, requiring an http(s) scheme and a host.

    Raises:
        InvalidUriError: when the value is not a usable absolute URL.
    """
    if not isinstance(value, str):
        raise InvalidUriError(value)
    try:
        uri = httpx.URL(value.strip())
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise InvalidUriError(value) from exc
    if uri.scheme not in ("http", "https") or not uri.host:
        raise InvalidUriError(value)
    return uri


class ItemList(Sequence[T], Generic[T]):
    """Ordered, growable list of API items with paging metadata.

    ``count`` is the total reported by the API (all pages); ``len()`` is
    the number of items held in this page.
    """

    def __init__(
        self,
        items: Iterable[T] = (),
        count: int | None = None,
        page: int = 1,
        pages: int = 1,
    ) -> None:
        self._items: list[T] = list(items)
        self.count = len(self._items) if count is None else count
        self.page = page
        self.pages = pages

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> list[T]: ...

    def __getitem__(self, index: int | slice) -> T | list[T]:
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"ItemList({self._items!r}, count={self.count}, page={self.page}, pages={self.pages})"

    def append(self, item: T) -> None:
        self._items.append(item)

    def remove_at(self, index: int) -> T:
        return self._items.pop(index)

    def ids(self, key: str = "id") -> list[Any]:
        """Identifiers of the held items (mapping key or attribute)."""
        result = []
        for item in self._items:
            if isinstance(item, Mapping):
                result.append(item.get(key))
            else:
                result.append(getattr(item, key, None))
        return result
