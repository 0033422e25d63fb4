"""
breadbox

Browse, read, edit, add and delete rows of relational tables, with
composable filters, search, sorting and pagination, and transactions
shared across tables.
"""

from breadbox.backends import Backend, MemoryBackend, PostgresBackend
from breadbox.bread import BrowseResult, ScopedBread, TableBread
from breadbox.errors import (
    BreadError,
    ConfigError,
    MisuseError,
    NotFoundError,
    TransactionClosedError,
)
from breadbox.query import Filter, Pagination, Search, Sort
from breadbox.result import Found, NotFound
from breadbox.transaction import Transaction, TransactionState

__all__ = [
    "Backend",
    "BreadError",
    "BrowseResult",
    "ConfigError",
    "Filter",
    "Found",
    "MemoryBackend",
    "MisuseError",
    "NotFound",
    "NotFoundError",
    "Pagination",
    "PostgresBackend",
    "ScopedBread",
    "Search",
    "Sort",
    "TableBread",
    "Transaction",
    "TransactionClosedError",
    "TransactionState",
]
