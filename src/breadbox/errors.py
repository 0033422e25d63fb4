"""
Exceptions raised by breadbox itself.

Backend failures (psycopg errors, constraint violations, lost connections)
are never wrapped: they reach the caller exactly as the driver raised them.
"""


class BreadError(Exception):
    """Base class for breadbox errors."""


class MisuseError(BreadError, ValueError):
    """A query constraint or call that cannot be turned into a meaningful query."""


class TransactionClosedError(MisuseError):
    """A transaction handle was used while not active."""


class NotFoundError(BreadError, LookupError):
    """Raised by NotFound.unwrap() when the caller insists on a row."""


class ConfigError(BreadError):
    """Invalid configuration value."""
