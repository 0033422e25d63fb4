"""
Table accessors: browse, read, edit, add and delete rows of one table.

A TableBread never carries transaction state. ``in_transaction(tx)``
returns a separate ScopedBread whose statements all run on the
transaction's reserved session.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping

from breadbox import db
from breadbox.backends.base import Backend, Row
from breadbox.errors import MisuseError
from breadbox.query.composer import compose
from breadbox.query.plan import Comparison, SelectPlan, select_all
from breadbox.query.specs import (
    Filter,
    Pagination,
    Search,
    Sort,
    as_filters,
    as_pagination,
    as_search,
    as_sorting,
)
from breadbox.result import Found, Lookup, NotFound
from breadbox.transaction import Transaction

logger = logging.getLogger(__name__)

Id = str | int
NotFoundProducer = Callable[[], Any]


@dataclass(frozen=True)
class BrowseResult:
    records: list[Row]
    total_records: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire shape: ``{"records": [...]}`` plus ``totalRecords`` when known."""
        data: dict[str, Any] = {"records": self.records}
        if self.total_records is not None:
            data["totalRecords"] = self.total_records
        return data


def _check_id(id: Any) -> None:
    if id is None or isinstance(id, bool):
        raise MisuseError(f"Invalid id {id!r}")


def _resolve(lookup: Lookup, not_found: NotFoundProducer | None):
    if not_found is None:
        return lookup
    return lookup.or_else(not_found)


class TableBread:
    """
    BREAD operations for one table.

    Args:
        connection: A Backend, or a PostgreSQL connection string resolved
            through breadbox.db.get_backend()
        table: Table name, optionally schema-qualified
        primary_key: Column used as row identity
        pool_size: Pool size hint when connection is a string, defaults to
            BREADBOX_POOL_SIZE
    """

    def __init__(
        self,
        connection: Backend | str,
        table: str,
        primary_key: str = "id",
        *,
        pool_size: int | None = None,
    ):
        if not table or not primary_key:
            raise MisuseError("table and primary_key are required")
        if isinstance(connection, Backend):
            self._backend = connection
        else:
            self._backend = db.get_backend(connection, pool_size=pool_size)
        self._table = table
        self._primary_key = primary_key

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._table}>"

    @property
    def backend(self) -> Backend:
        return self._backend

    @property
    def table(self) -> str:
        return self._table

    @property
    def primary_key(self) -> str:
        return self._primary_key

    def _session(self) -> Any:
        return None

    def _query(self) -> SelectPlan:
        return select_all(self._table)

    # =========================================================================
    # Transactions
    # =========================================================================

    async def start_transaction(self) -> Transaction:
        """Begin a transaction on this accessor's backend."""
        return await Transaction(self._backend).start()

    def in_transaction(self, transaction: Transaction) -> "ScopedBread":
        """Return an accessor for this table that runs on ``transaction``."""
        return ScopedBread(self, transaction)

    # =========================================================================
    # BREAD
    # =========================================================================

    async def browse(
        self,
        *,
        filters: Iterable[Filter | Mapping[str, Any]] | None = None,
        search: Search | Mapping[str, Any] | None = None,
        sorting: Iterable[Sort | Mapping[str, Any]] | None = None,
        pagination: Pagination | Mapping[str, Any] | None = None,
    ) -> BrowseResult:
        """
        List rows, optionally filtered, searched, sorted and paginated.

        ``total_records`` is only computed when ``pagination`` has a page;
        it counts rows matching the filters and search, ignoring sorting and
        pagination.
        """
        composed = compose(
            self._query(),
            self._primary_key,
            filters=as_filters(filters),
            search=as_search(search),
            sorting=as_sorting(sorting),
            pagination=as_pagination(pagination),
        )
        session = self._session()

        total_records = None
        if composed.total is not None:
            total_records = await self._backend.fetch_count(composed.total, session)
            if total_records is None:
                logger.debug("Count query on %s returned no row", self._table)

        records = await self._backend.fetch_rows(composed.records, session)
        return BrowseResult(records=records, total_records=total_records)

    async def read(self, id: Id, not_found: NotFoundProducer | None = None):
        """
        Fetch the row whose primary key equals ``id``.

        Returns Found(row) or NotFound(); with ``not_found`` given, returns the
        row itself or whatever ``not_found()`` produces.
        """
        _check_id(id)
        plan = self._query().where_also(Comparison(self._primary_key, "=", id)).sliced(limit=1)
        rows = await self._backend.fetch_rows(plan, self._session())
        return _resolve(self._lookup(rows[0] if rows else None, id), not_found)

    async def edit(
        self,
        id: Id,
        update_data: Mapping[str, Any],
        not_found: NotFoundProducer | None = None,
    ):
        """Update the row with ``id`` and answer with the updated row, like read()."""
        _check_id(id)
        if not update_data:
            raise MisuseError(f"Nothing to update for {self._table} {id!r}")
        row = await self._backend.update(
            self._table, self._primary_key, id, dict(update_data), self._session()
        )
        return _resolve(self._lookup(row, id), not_found)

    async def add(self, data: Mapping[str, Any]) -> Row:
        """Insert a row and return it as stored, generated columns included."""
        return await self._backend.insert(self._table, dict(data), self._session())

    async def delete(self, id: Id, not_found: NotFoundProducer | None = None):
        """Delete the row with ``id`` and answer with the deleted row, like read()."""
        _check_id(id)
        row = await self._backend.delete(self._table, self._primary_key, id, self._session())
        return _resolve(self._lookup(row, id), not_found)

    def _lookup(self, row: Row | None, id: Id) -> Lookup:
        if row is None:
            logger.debug("No row in %s with %s=%r", self._table, self._primary_key, id)
            return NotFound(table=self._table, key=id)
        return Found(row)


class ScopedBread(TableBread):
    """
    A TableBread bound to one transaction.

    Every operation runs on the transaction's session and fails with
    TransactionClosedError once the transaction has ended.
    """

    def __init__(self, base: TableBread, transaction: Transaction):
        if transaction.backend is not base.backend:
            raise MisuseError("Transaction belongs to a different backend")
        self._backend = base.backend
        self._table = base.table
        self._primary_key = base.primary_key
        self.transaction = transaction

    def _session(self) -> Any:
        return self.transaction.session
