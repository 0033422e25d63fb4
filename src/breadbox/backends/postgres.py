"""
PostgreSQL backend built on psycopg 3.

Plans are rendered with psycopg.sql so table and column names are always
quoted identifiers and values always travel as parameters. Connections
come from one AsyncConnectionPool per backend; a transaction reserves
one pooled connection until it commits or rolls back.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Mapping

from psycopg import AsyncConnection, sql
from psycopg.rows import dict_row
from psycopg.types.numeric import FloatLoader
from psycopg_pool import AsyncConnectionPool

from breadbox.backends.base import Backend, Row
from breadbox.config import DEFAULT_POOL_SIZE
from breadbox.query.plan import (
    AnyContains,
    Comparison,
    CountPlan,
    Membership,
    Predicate,
    SelectPlan,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Rendering
# =============================================================================


def _table(name: str) -> sql.Identifier:
    # "schema.table" becomes "schema"."table"
    return sql.Identifier(*name.split("."))


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def render_predicate(predicate: Predicate, case_sensitive: bool) -> tuple[sql.Composable, list]:
    if isinstance(predicate, Comparison):
        return (
            sql.SQL("{} {} %s").format(sql.Identifier(predicate.field), sql.SQL(predicate.op)),
            [predicate.value],
        )

    if isinstance(predicate, Membership):
        if not predicate.values:
            return sql.SQL("FALSE"), []
        return (
            sql.SQL("{} IN ({})").format(
                sql.Identifier(predicate.field),
                sql.SQL(", ").join(sql.Placeholder() * len(predicate.values)),
            ),
            list(predicate.values),
        )

    if isinstance(predicate, AnyContains):
        operator = sql.SQL("LIKE" if case_sensitive else "ILIKE")
        pattern = f"%{escape_like(predicate.term)}%"
        clauses = [
            sql.SQL("{} {} %s").format(sql.Identifier(field), operator)
            for field in predicate.fields
        ]
        return (
            sql.SQL("({})").format(sql.SQL(" OR ").join(clauses)),
            [pattern] * len(clauses),
        )

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def render_where(predicates: tuple[Predicate, ...], case_sensitive: bool) -> tuple[sql.Composable, list]:
    if not predicates:
        return sql.SQL(""), []

    clauses = []
    params: list = []
    for predicate in predicates:
        clause, clause_params = render_predicate(predicate, case_sensitive)
        clauses.append(clause)
        params.extend(clause_params)

    return sql.SQL(" WHERE {}").format(sql.SQL(" AND ").join(clauses)), params


def render_select(plan: SelectPlan, case_sensitive: bool = False) -> tuple[sql.Composed, list]:
    where, params = render_where(plan.where, case_sensitive)
    parts = [sql.SQL("SELECT * FROM {}").format(_table(plan.table)), where]

    if plan.order_by:
        parts.append(
            sql.SQL(" ORDER BY {}").format(
                sql.SQL(", ").join(
                    sql.SQL("{} DESC" if order.descending else "{} ASC").format(
                        sql.Identifier(order.field)
                    )
                    for order in plan.order_by
                )
            )
        )
    if plan.limit is not None:
        parts.append(sql.SQL(" LIMIT %s"))
        params.append(plan.limit)
    if plan.offset is not None:
        parts.append(sql.SQL(" OFFSET %s"))
        params.append(plan.offset)

    return sql.Composed(parts), params


def render_count(plan: CountPlan, case_sensitive: bool = False) -> tuple[sql.Composed, list]:
    where, params = render_where(plan.where, case_sensitive)
    query = sql.Composed([
        sql.SQL("SELECT COUNT({}) AS value FROM {}").format(
            sql.Identifier(plan.column), _table(plan.table)
        ),
        where,
    ])
    return query, params


def render_insert(table: str, data: Mapping[str, Any]) -> tuple[sql.Composed, list]:
    if not data:
        return sql.SQL("INSERT INTO {} DEFAULT VALUES RETURNING *").format(_table(table)), []

    columns = list(data)
    query = sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING *").format(
        _table(table),
        sql.SQL(", ").join(map(sql.Identifier, columns)),
        sql.SQL(", ").join(sql.Placeholder() * len(columns)),
    )
    return query, [data[c] for c in columns]


def render_update(
    table: str, key_column: str, key: Any, data: Mapping[str, Any]
) -> tuple[sql.Composed, list]:
    columns = list(data)
    query = sql.SQL("UPDATE {} SET {} WHERE {} = %s RETURNING *").format(
        _table(table),
        sql.SQL(", ").join(sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns),
        sql.Identifier(key_column),
    )
    return query, [data[c] for c in columns] + [key]


def render_delete(table: str, key_column: str, key: Any) -> tuple[sql.Composed, list]:
    query = sql.SQL("DELETE FROM {} WHERE {} = %s RETURNING *").format(
        _table(table), sql.Identifier(key_column)
    )
    return query, [key]


# =============================================================================
# Execution
# =============================================================================


class PostgresBackend(Backend):
    """
    Backend for one PostgreSQL database.

    The pool is opened lazily on first use. Accessors that should share
    connections must share the backend instance (see breadbox.db.get_backend).
    """

    def __init__(
        self,
        conninfo: str,
        *,
        pool_size: int = DEFAULT_POOL_SIZE,
        case_sensitive_search: bool = False,
        numeric_as_float: bool = True,
    ):
        self.conninfo = conninfo
        self.pool_size = pool_size
        self.case_sensitive_search = case_sensitive_search
        self.numeric_as_float = numeric_as_float
        self._pool: AsyncConnectionPool | None = None
        self._pool_lock = asyncio.Lock()

    async def _configure(self, conn: AsyncConnection) -> None:
        # Registered on the connection's own adapters, never psycopg's global map.
        if self.numeric_as_float:
            conn.adapters.register_loader("numeric", FloatLoader)

    async def _get_pool(self) -> AsyncConnectionPool:
        if self._pool is None:
            async with self._pool_lock:
                if self._pool is None:
                    pool = AsyncConnectionPool(
                        self.conninfo,
                        min_size=1,
                        max_size=self.pool_size,
                        kwargs={"row_factory": dict_row},
                        configure=self._configure,
                        open=False,
                    )
                    await pool.open()
                    self._pool = pool
        return self._pool

    @asynccontextmanager
    async def _connection(self, session: AsyncConnection | None):
        """
        Yield the connection a statement should run on.

        A session is used as-is and left open. Otherwise a pooled connection
        is borrowed; it commits when the block succeeds and rolls back when
        it raises.
        """
        if session is not None:
            yield session
            return

        pool = await self._get_pool()
        async with pool.connection() as conn:
            yield conn

    async def _run(self, query: sql.Composable, params: list, session) -> list[Row]:
        async with self._connection(session) as conn:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("Executing %s", query.as_string(conn))
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                if cur.description is None:
                    return []
                return await cur.fetchall()

    async def fetch_rows(self, plan: SelectPlan, session=None) -> list[Row]:
        query, params = render_select(plan, self.case_sensitive_search)
        return await self._run(query, params, session)

    async def fetch_count(self, plan: CountPlan, session=None) -> int | None:
        query, params = render_count(plan, self.case_sensitive_search)
        rows = await self._run(query, params, session)
        if not rows or rows[0]["value"] is None:
            return None
        return int(rows[0]["value"])

    async def insert(self, table: str, data: Mapping[str, Any], session=None) -> Row:
        query, params = render_insert(table, data)
        rows = await self._run(query, params, session)
        return rows[0]

    async def update(self, table, key_column, key, data, session=None) -> Row | None:
        query, params = render_update(table, key_column, key, data)
        rows = await self._run(query, params, session)
        return rows[0] if rows else None

    async def delete(self, table, key_column, key, session=None) -> Row | None:
        query, params = render_delete(table, key_column, key)
        rows = await self._run(query, params, session)
        return rows[0] if rows else None

    async def begin(self) -> AsyncConnection:
        # psycopg opens the transaction implicitly with the first statement.
        pool = await self._get_pool()
        conn = await pool.getconn()
        logger.debug("Reserved connection for transaction")
        return conn

    async def commit(self, session: AsyncConnection) -> None:
        try:
            await session.commit()
            logger.debug("Transaction committed")
        finally:
            await self._pool.putconn(session)

    async def rollback(self, session: AsyncConnection) -> None:
        try:
            await session.rollback()
            logger.debug("Transaction rolled back")
        finally:
            await self._pool.putconn(session)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
