"""
zonehub error taxonomy.

- BrokerConnectionError: broker unreachable or auth refused, retried with backoff
- DecodeError: malformed inbound payload, logged and dropped
- UnknownZoneError: event or request names an unconfigured zone
- ValidationError: control/playlist request missing required fields
- InternalError: unexpected failure while handling a request
"""

from __future__ import annotations


class HubError(Exception):
    """Base class for all zonehub errors."""


class BrokerConnectionError(HubError, ConnectionError):
    """Transport could not reach or authenticate with the broker."""


class DecodeError(HubError):
    """Inbound payload could not be decoded."""

    def __init__(self, message: str, topic: str = None):
        super().__init__(message)
        self.topic = topic


class UnknownZoneError(HubError, LookupError):
    """Zone id is not part of the configured zone set."""

    def __init__(self, zone_id: str):
        super().__init__(f"Unknown zone '{zone_id}'")
        self.zone_id = zone_id


class ValidationError(HubError, ValueError):
    """Request is missing required fields or carries invalid values."""

    def __init__(self, message: str, fields: list[str] = None):
        super().__init__(message)
        self.fields = fields or []


class InternalError(HubError):
    """Unexpected failure while handling a request."""
