"""Exceptions shared by the core and the adapters."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A mandatory configuration value is missing or malformed."""


class FeedError(RuntimeError):
    """The source feed could not be fetched or returned an API error."""


class DeliveryError(RuntimeError):
    """The destination channel rejected or failed a delivery call."""


class BridgeNotRunning(RuntimeError):
    """An operation that needs a running bridge was called while stopped."""
