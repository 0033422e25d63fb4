"""
The query capability every backend provides.

Backends execute plans; they never decide what a plan means. Every
method takes an optional ``session``: when given, the statement runs on
that reserved transactional session instead of a pooled connection.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping

from breadbox.query.plan import CountPlan, SelectPlan

Row = dict[str, Any]


class Backend(ABC):
    case_sensitive_search: bool = False

    @abstractmethod
    async def fetch_rows(self, plan: SelectPlan, session: Any = None) -> list[Row]:
        """Run a select plan and return its rows in order."""

    @abstractmethod
    async def fetch_count(self, plan: CountPlan, session: Any = None) -> int | None:
        """Run a count plan. None if the aggregate produced no row."""

    @abstractmethod
    async def insert(self, table: str, data: Mapping[str, Any], session: Any = None) -> Row:
        """Insert one row and return it as stored."""

    @abstractmethod
    async def update(
        self,
        table: str,
        key_column: str,
        key: Any,
        data: Mapping[str, Any],
        session: Any = None,
    ) -> Row | None:
        """Update rows matching key and return the first updated row, if any."""

    @abstractmethod
    async def delete(self, table: str, key_column: str, key: Any, session: Any = None) -> Row | None:
        """Delete rows matching key and return the first deleted row, if any."""

    @abstractmethod
    async def begin(self) -> Any:
        """Reserve a connection and open a transaction on it."""

    @abstractmethod
    async def commit(self, session: Any) -> None:
        """Commit and release a session obtained from begin()."""

    @abstractmethod
    async def rollback(self, session: Any) -> None:
        """Roll back and release a session obtained from begin()."""

    async def close(self) -> None:
        """Release pooled resources."""
