from __future__ import annotations


class FastAdError(Exception):
    """Base class for errors raised inside the generation core."""


class InvalidArgument(FastAdError, ValueError):
    """Malformed generation input (empty prompt, unknown style/platform/type)."""


class ProviderFailure(FastAdError):
    """A generation or completion provider failed or returned nothing usable."""


class PersistenceFailure(FastAdError):
    """A record store read or write failed."""
