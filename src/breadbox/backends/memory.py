"""
In-process backend over lists of dict rows.

Evaluates the same plans the PostgreSQL backend renders, following SQL
semantics where they matter to browse: comparisons with NULL never match,
ascending sorts put NULLs last and descending sorts put them first.

Transactions read and write a private snapshot of every table and journal
their writes. Committing replays the journal onto the live tables, so
writes made outside the transaction in the meantime are kept; rolling back
discards the snapshot and the journal. Key sequences are shared with the
live tables and never roll back, as with PostgreSQL sequences.
"""

import copy
import logging
import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from breadbox.backends.base import Backend, Row
from breadbox.query.plan import (
    AnyContains,
    Comparison,
    CountPlan,
    Membership,
    Predicate,
    SelectPlan,
)

logger = logging.getLogger(__name__)

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "=": operator.eq,
    "<>": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}


class MemoryBackendError(Exception):
    """Base class for errors the memory backend raises in place of a database."""


class ProgrammingError(MemoryBackendError):
    """Unknown table or column."""


class IntegrityError(MemoryBackendError):
    """Duplicate primary key."""


@dataclass
class MemoryTable:
    primary_key: str
    columns: tuple[str, ...] | None = None
    autoincrement: bool = True
    rows: list[Row] = field(default_factory=list)
    next_id: int = 1

    def check_columns(self, names: Iterable[str]) -> None:
        if self.columns is None:
            return
        unknown = [n for n in names if n not in self.columns]
        if unknown:
            raise ProgrammingError(f"Unknown column(s): {', '.join(unknown)}")

    def blank_row(self) -> Row:
        return {c: None for c in self.columns} if self.columns else {}


@dataclass
class MemorySession:
    tables: dict[str, MemoryTable]
    journal: list[tuple] = field(default_factory=list)
    open: bool = True


def _compare(left: Any, op: str, right: Any) -> bool:
    if left is None or right is None:
        return False
    try:
        return _OPERATORS[op](left, right)
    except TypeError:
        return False


def _contains(value: Any, term: str, case_sensitive: bool) -> bool:
    if not isinstance(value, str):
        return False
    if case_sensitive:
        return term in value
    return term.casefold() in value.casefold()


def matches(row: Row, predicate: Predicate, case_sensitive: bool = False) -> bool:
    if isinstance(predicate, Comparison):
        return _compare(row.get(predicate.field), predicate.op, predicate.value)
    if isinstance(predicate, Membership):
        value = row.get(predicate.field)
        return value is not None and value in predicate.values
    if isinstance(predicate, AnyContains):
        return any(
            _contains(row.get(f), predicate.term, case_sensitive) for f in predicate.fields
        )
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def _sort_key(name: str) -> Callable[[Row], tuple]:
    # NULLs sort after every value; reverse=True then puts them first.
    def key(row: Row) -> tuple:
        value = row.get(name)
        return (True, 0) if value is None else (False, value)

    return key


def _predicate_fields(predicate: Predicate) -> tuple[str, ...]:
    if isinstance(predicate, AnyContains):
        return predicate.fields
    return (predicate.field,)


def _add_row(name: str, table: MemoryTable, row: Row) -> None:
    key = row.get(table.primary_key)
    if key is not None and any(r.get(table.primary_key) == key for r in table.rows):
        raise IntegrityError(f"Duplicate key {table.primary_key}={key!r} in {name}")
    if isinstance(key, int) and not isinstance(key, bool):
        table.next_id = max(table.next_id, key + 1)
    table.rows.append(row)


def _update_rows(table: MemoryTable, key_column: str, key: Any, data: Mapping) -> Row | None:
    updated = None
    for row in table.rows:
        if _compare(row.get(key_column), "=", key):
            row.update(data)
            if updated is None:
                updated = dict(row)
    return updated


def _delete_rows(table: MemoryTable, key_column: str, key: Any) -> Row | None:
    kept = []
    deleted = None
    for row in table.rows:
        if _compare(row.get(key_column), "=", key):
            if deleted is None:
                deleted = dict(row)
        else:
            kept.append(row)
    table.rows = kept
    return deleted


class MemoryBackend(Backend):
    """
    Backend holding tables in memory.

    Tables must be created before use:

        backend = MemoryBackend()
        backend.create_table("people", primary_key="id", columns=("id", "name"))
    """

    def __init__(self, *, case_sensitive_search: bool = False):
        self.case_sensitive_search = case_sensitive_search
        self._tables: dict[str, MemoryTable] = {}

    def create_table(
        self,
        name: str,
        primary_key: str = "id",
        columns: Iterable[str] | None = None,
        autoincrement: bool = True,
    ) -> None:
        if name in self._tables:
            raise ProgrammingError(f"Table {name} already exists")
        cols = tuple(columns) if columns is not None else None
        if cols is not None and primary_key not in cols:
            cols = (primary_key,) + cols
        self._tables[name] = MemoryTable(
            primary_key=primary_key, columns=cols, autoincrement=autoincrement
        )

    def drop_table(self, name: str) -> None:
        self._tables.pop(name, None)

    def _tables_for(self, session: MemorySession | None) -> dict[str, MemoryTable]:
        if session is None:
            return self._tables
        if not session.open:
            raise ProgrammingError("Session is no longer open")
        return session.tables

    def _table(self, name: str, session: MemorySession | None) -> MemoryTable:
        try:
            return self._tables_for(session)[name]
        except KeyError:
            raise ProgrammingError(f"Table {name} does not exist") from None

    def _select(self, table: MemoryTable, predicates: tuple[Predicate, ...]) -> list[Row]:
        for predicate in predicates:
            table.check_columns(_predicate_fields(predicate))
        return [
            row
            for row in table.rows
            if all(matches(row, p, self.case_sensitive_search) for p in predicates)
        ]

    async def fetch_rows(self, plan: SelectPlan, session=None) -> list[Row]:
        table = self._table(plan.table, session)
        rows = self._select(table, plan.where)

        # Stable sorts applied from the least significant key up.
        table.check_columns(o.field for o in plan.order_by)
        for order in reversed(plan.order_by):
            rows.sort(key=_sort_key(order.field), reverse=order.descending)

        start = plan.offset or 0
        stop = start + plan.limit if plan.limit is not None else None
        return [dict(r) for r in rows[start:stop]]

    async def fetch_count(self, plan: CountPlan, session=None) -> int | None:
        table = self._table(plan.table, session)
        table.check_columns([plan.column])
        rows = self._select(table, plan.where)
        return sum(1 for r in rows if r.get(plan.column) is not None)

    def _next_id(self, name: str, target: MemoryTable) -> int:
        live = self._tables.get(name, target)
        key = max(live.next_id, target.next_id)
        live.next_id = target.next_id = key + 1
        return key

    async def insert(self, table: str, data: Mapping[str, Any], session=None) -> Row:
        target = self._table(table, session)
        target.check_columns(data)

        row = target.blank_row()
        row.update(data)
        if row.get(target.primary_key) is None and target.autoincrement:
            row[target.primary_key] = self._next_id(table, target)
        _add_row(table, target, row)

        if session is not None:
            session.journal.append(("insert", table, dict(row)))
        return dict(row)

    async def update(self, table, key_column, key, data, session=None) -> Row | None:
        target = self._table(table, session)
        target.check_columns([key_column, *data])

        updated = _update_rows(target, key_column, key, data)
        if session is not None and updated is not None:
            session.journal.append(("update", table, key_column, key, dict(data)))
        return updated

    async def delete(self, table, key_column, key, session=None) -> Row | None:
        target = self._table(table, session)
        target.check_columns([key_column])

        deleted = _delete_rows(target, key_column, key)
        if session is not None and deleted is not None:
            session.journal.append(("delete", table, key_column, key))
        return deleted

    async def begin(self) -> MemorySession:
        logger.debug("Opening snapshot session")
        return MemorySession(tables=copy.deepcopy(self._tables))

    async def commit(self, session: MemorySession) -> None:
        """
        Replay the session's writes onto the live tables.

        The replay runs on a copy, so a failing write (a key taken outside
        the session, say) leaves the live tables untouched. The session is
        closed either way.
        """
        self._tables_for(session)
        session.open = False

        tables = copy.deepcopy(self._tables)
        for op, name, *args in session.journal:
            try:
                target = tables[name]
            except KeyError:
                raise ProgrammingError(f"Table {name} does not exist") from None
            if op == "insert":
                _add_row(name, target, dict(args[0]))
            elif op == "update":
                _update_rows(target, *args)
            else:
                _delete_rows(target, *args)
        self._tables = tables
        logger.debug("Snapshot session committed %d write(s)", len(session.journal))

    async def rollback(self, session: MemorySession) -> None:
        self._tables_for(session)
        session.open = False
        logger.debug("Snapshot session rolled back")
