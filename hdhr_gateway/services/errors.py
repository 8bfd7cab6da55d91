"""
Upstream failure conditions raised by the gateway services.

Handlers never let these escape as protocol errors: they substitute an
empty or default value instead.
"""


class GatewayError(Exception):
    """Base class for gateway service failures."""


class UpstreamUnavailable(GatewayError):
    """Timeout, connection failure, bad status or malformed body from the tuner or guide API."""


class AccessDenied(GatewayError):
    """Guide API refused the device auth token (no guide subscription)."""
