"""Collaborator protocols consumed by the ``Dispatcher``.

Implementors raise the SDK's own exceptions on failure; in particular
``ApplicationProvider.get`` raises ``UnknownApplicationError`` for an
unregistered code, which the dispatcher converts into
``ApplicationNotFoundError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    import httpx

    from shop_appstore.billing.payload import Message
    from shop_appstore.models import Application, Shop
    from shop_appstore.state_machine import StateMachine


@runtime_checkable
class ApplicationProvider(Protocol):
    def get(self, code: str) -> Application:
        """Return the application registered under *code*.

        Raises
        ------
        shop_appstore.exceptions.UnknownApplicationError
            If no application uses *code*.
        """
        ...


@runtime_checkable
class ShopRepository(Protocol):
    def find_one_by_name_and_application(
        self, name: str, application: Application
    ) -> Shop | None:
        """Return a detached copy of the stored shop, or ``None``."""
        ...


@runtime_checkable
class ShopFactory(Protocol):
    def create_new_by_application_and_uri(self, application: Application, uri: httpx.URL) -> Shop:
        ...


@runtime_checkable
class ObjectManager(Protocol):
    """Unit of work: ``persist()`` stages a shop, ``flush()`` writes staged shops."""

    def persist(self, shop: Shop) -> None: ...

    def flush(self) -> None: ...


@runtime_checkable
class MessageResolver(Protocol):
    """Performs the domain effect of one webhook action."""

    def resolve(self, message: Message) -> None: ...


@runtime_checkable
class StateMachineProvider(Protocol):
    def get(self, obj: object, graph_name: str) -> StateMachine: ...
