"""Outbound shop REST API: retrying HTTP transport, OAuth and resources."""
