"""
Backend registry.

Accessors built from the same connection configuration share one backend,
and therefore one connection pool.

For testing, use set_backend_override() to route every accessor built
from a connection string to an injected backend (typically a
MemoryBackend, or a PostgresBackend pointed at a test database).
"""

import logging

from breadbox.backends.base import Backend
from breadbox.backends.postgres import PostgresBackend
from breadbox.config import config

logger = logging.getLogger(__name__)

# =============================================================================
# Backend Override (for testing)
# =============================================================================

_backend_override: Backend | None = None


def set_backend_override(backend: Backend) -> None:
    """
    Set a backend to use instead of looking one up by configuration.

    Args:
        backend: The backend to use for all subsequent lookups
    """
    global _backend_override
    _backend_override = backend


def clear_backend_override() -> None:
    """Clear the backend override, restoring normal behavior."""
    global _backend_override
    _backend_override = None


# =============================================================================
# Shared Backends
# =============================================================================

_backends: dict[tuple, PostgresBackend] = {}


def get_backend(
    conninfo: str | None = None,
    *,
    pool_size: int | None = None,
    case_sensitive_search: bool | None = None,
    numeric_as_float: bool | None = None,
) -> Backend:
    """
    Return the shared backend for a connection configuration.

    Unset arguments fall back to the environment configuration.

    Args:
        conninfo: PostgreSQL connection string, defaults to DATABASE_URL
        pool_size: Maximum pooled connections
        case_sensitive_search: Use LIKE instead of ILIKE for search
        numeric_as_float: Load numeric columns as float instead of Decimal

    Returns:
        The override backend if one is set, else one PostgresBackend per
        distinct configuration
    """
    if _backend_override is not None:
        return _backend_override

    key = (
        conninfo or config.require_database_url(),
        pool_size or config.pool_size,
        config.case_sensitive_search if case_sensitive_search is None else case_sensitive_search,
        config.numeric_as_float if numeric_as_float is None else numeric_as_float,
    )
    backend = _backends.get(key)
    if backend is None:
        backend = PostgresBackend(
            key[0],
            pool_size=key[1],
            case_sensitive_search=key[2],
            numeric_as_float=key[3],
        )
        _backends[key] = backend
        logger.debug("Created backend with pool_size=%s", key[1])
    return backend


async def close_all() -> None:
    """Close every shared backend's pool."""
    backends = list(_backends.values())
    _backends.clear()
    for backend in backends:
        await backend.close()
