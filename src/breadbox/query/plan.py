"""
Backend-neutral query plans.

A plan is an immutable description of one statement against one table.
Builders return new plans, so a plan captured before sorting can be reused
for counting without copying anything.
"""

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class Comparison:
    """``field <op> value`` for a scalar value."""

    field: str
    op: str
    value: Any


@dataclass(frozen=True)
class Membership:
    """``field IN values``. An empty tuple matches nothing."""

    field: str
    values: tuple


@dataclass(frozen=True)
class AnyContains:
    """OR-group: at least one of fields contains term as a substring."""

    fields: tuple[str, ...]
    term: str


Predicate = Comparison | Membership | AnyContains


@dataclass(frozen=True)
class Order:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class CountPlan:
    """``SELECT COUNT(column) FROM table WHERE ...``; never ordered or sliced."""

    table: str
    column: str
    where: tuple[Predicate, ...] = ()


@dataclass(frozen=True)
class SelectPlan:
    table: str
    where: tuple[Predicate, ...] = ()
    order_by: tuple[Order, ...] = ()
    limit: int | None = None
    offset: int | None = None

    def where_also(self, *predicates: Predicate) -> "SelectPlan":
        return replace(self, where=self.where + predicates)

    def ordered_by(self, *orders: Order) -> "SelectPlan":
        return replace(self, order_by=self.order_by + orders)

    def sliced(self, limit: int, offset: int | None = None) -> "SelectPlan":
        return replace(self, limit=limit, offset=offset)

    def counting(self, column: str) -> CountPlan:
        return CountPlan(table=self.table, column=column, where=self.where)


def select_all(table: str) -> SelectPlan:
    return SelectPlan(table=table)
