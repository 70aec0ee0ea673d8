"""Action -> resolver registry restricted to the supported actions."""

from __future__ import annotations

import threading
from collections.abc import Mapping

from shop_appstore.billing.actions import Action
from shop_appstore.billing.interfaces import MessageResolver
from shop_appstore.exceptions import UnsupportedActionError


def _as_action(identifier: str | Action) -> Action:
    try:
        return Action(identifier)
    except ValueError:
        raise UnsupportedActionError(str(identifier)) from None


class ResolverRegistry:
    """Maps ``Action`` members to ``MessageResolver`` instances.

    Identifiers outside ``Action`` are rejected with
    ``UnsupportedActionError`` by every method, including ``has()``.
    """

    def __init__(self, resolvers: Mapping[str | Action, MessageResolver] | None = None) -> None:
        self._lock = threading.Lock()
        self._resolvers: dict[Action, MessageResolver] = {}
        for action, resolver in (resolvers or {}).items():
            self.register(action, resolver)

    def register(self, identifier: str | Action, resolver: MessageResolver) -> None:
        action = _as_action(identifier)
        if not isinstance(resolver, MessageResolver):
            raise TypeError(f"{type(resolver).__name__} does not implement resolve(message)")
        with self._lock:
            if action in self._resolvers:
                raise ValueError(f"Resolver for {action.value!r} is already registered")
            self._resolvers[action] = resolver

    def unregister(self, identifier: str | Action) -> None:
        action = _as_action(identifier)
        with self._lock:
            if self._resolvers.pop(action, None) is None:
                raise UnsupportedActionError(action.value)

    def has(self, identifier: str | Action) -> bool:
        action = _as_action(identifier)
        with self._lock:
            return action in self._resolvers

    def get(self, identifier: str | Action) -> MessageResolver:
        action = _as_action(identifier)
        with self._lock:
            resolver = self._resolvers.get(action)
        if resolver is None:
            raise UnsupportedActionError(action.value)
        return resolver

    def all(self) -> dict[Action, MessageResolver]:
        with self._lock:
            return dict(self._resolvers)
