"""Inbound appstore webhooks.

Billing and lifecycle callbacks from the marketplace are signature-verified
and dispatched synchronously to the shop's resolvers.
"""
