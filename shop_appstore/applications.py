"""Registry of marketplace applications known to this installation."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

from shop_appstore.exceptions import UnknownApplicationError
from shop_appstore.models import Application

if TYPE_CHECKING:
    from shop_appstore.config import AppstoreSettings


class ApplicationRegistry:
    """Thread-safe mapping of application code -> ``Application``.

    Passed explicitly to the dispatcher; there is no process-wide instance.
    """

    def __init__(self, applications: Iterable[Application] = ()) -> None:
        self._lock = threading.Lock()
        self._applications: dict[str, Application] = {}
        for application in applications:
            self.register(application)

    @classmethod
    def from_settings(cls, settings: AppstoreSettings) -> ApplicationRegistry:
        return cls(
            Application(
                code=app.code,
                appstore_secret=app.appstore_secret,
                client_id=app.client_id,
                client_secret=app.client_secret,
            )
            for app in settings.applications
        )

    def register(self, application: Application) -> None:
        """Add *application*; re-registering a code is rejected."""
        with self._lock:
            if application.code in self._applications:
                raise ValueError(f"Application {application.code!r} is already registered")
            self._applications[application.code] = application

    def unregister(self, code: str) -> None:
        with self._lock:
            if self._applications.pop(code, None) is None:
                raise UnknownApplicationError(code)

    def has(self, code: str) -> bool:
        with self._lock:
            return code in self._applications

    def get(self, code: str) -> Application:
        with self._lock:
            try:
                return self._applications[code]
            except KeyError:
                raise UnknownApplicationError(code) from None

    def __iter__(self) -> Iterator[Application]:
        with self._lock:
            return iter(list(self._applications.values()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._applications)
