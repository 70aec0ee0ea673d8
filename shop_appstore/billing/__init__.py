"""Appstore webhook dispatch: validation, signature checks and resolvers."""

from shop_appstore.billing.actions import Action
from shop_appstore.billing.dispatcher import Dispatcher, create_dispatcher
from shop_appstore.billing.registry import ResolverRegistry

__all__ = ["Action", "Dispatcher", "ResolverRegistry", "create_dispatcher"]
