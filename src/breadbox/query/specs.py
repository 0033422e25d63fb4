"""
Value objects describing what a browse call should narrow, order and slice.

All specs are frozen; composing a query never changes them. Each spec
validates itself on construction so a malformed request fails loudly
instead of silently degrading into an unfiltered query.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterable, Literal

from breadbox.errors import MisuseError

Comparator = Literal["=", ">", ">=", "<", "<=", "<>"]
SortOrder = Literal["asc", "desc"]

COMPARATORS: frozenset[str] = frozenset({"=", ">", ">=", "<", "<=", "<>"})
SORT_ORDERS: frozenset[str] = frozenset({"asc", "desc"})

# Collections that turn a filter into a membership test. Strings and bytes
# are scalars even though they are iterable.
_COLLECTION_TYPES = (set, frozenset, list, tuple)


def _require_field(field: Any, what: str) -> str:
    if not isinstance(field, str) or not field.strip():
        raise MisuseError(f"{what} needs a non-empty field name, got {field!r}")
    return field


def _require_positive_int(value: Any, name: str) -> int:
    # bool is an int subclass; True is not a page size.
    if isinstance(value, bool) or not isinstance(value, int):
        raise MisuseError(f"{name} must be an integer, got {value!r}")
    if value < 1:
        raise MisuseError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Filter:
    """
    One conjunctive constraint on a column.

    A collection value always means membership (``field IN values``),
    whatever comparison was requested.
    """

    field: str
    value: Any
    comparison: Comparator = "="

    def __post_init__(self):
        _require_field(self.field, "Filter")
        if self.comparison not in COMPARATORS:
            raise MisuseError(
                f"Unknown comparison {self.comparison!r} for field {self.field!r}; "
                f"expected one of {sorted(COMPARATORS)}"
            )
        if isinstance(self.value, _COLLECTION_TYPES):
            values = self.value
            if isinstance(values, (set, frozenset)):
                # Sets have no order; sort where possible so the rendered
                # statement and its parameters are deterministic.
                try:
                    values = sorted(values)
                except TypeError:
                    values = list(values)
            object.__setattr__(self, "value", tuple(values))

    @property
    def is_membership(self) -> bool:
        return isinstance(self.value, tuple)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Filter":
        try:
            return cls(
                field=data["field"],
                value=data["value"],
                comparison=data.get("comparison") or "=",
            )
        except KeyError as e:
            raise MisuseError(f"Filter mapping is missing {e.args[0]!r}") from None


@dataclass(frozen=True)
class Search:
    """Substring search: a row matches if ANY of the fields contains term."""

    term: str
    fields: tuple[str, ...]

    def __post_init__(self):
        if not isinstance(self.term, str):
            raise MisuseError(f"Search term must be a string, got {self.term!r}")
        if isinstance(self.fields, str):
            # A bare string would otherwise be searched character by character.
            raise MisuseError("Search fields must be a collection of names, not a string")
        fields = tuple(dict.fromkeys(self.fields))
        if not fields:
            raise MisuseError("Search needs at least one field")
        for field in fields:
            _require_field(field, "Search")
        object.__setattr__(self, "fields", fields)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Search":
        try:
            return cls(term=data["term"], fields=data["fields"])
        except KeyError as e:
            raise MisuseError(f"Search mapping is missing {e.args[0]!r}") from None


@dataclass(frozen=True)
class Sort:
    field: str
    order: SortOrder = "asc"

    def __post_init__(self):
        _require_field(self.field, "Sort")
        order = self.order.lower() if isinstance(self.order, str) else self.order
        if order not in SORT_ORDERS:
            raise MisuseError(f"Sort order must be 'asc' or 'desc', got {self.order!r}")
        object.__setattr__(self, "order", order)

    @property
    def descending(self) -> bool:
        return self.order == "desc"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Sort":
        try:
            return cls(field=data["field"], order=data.get("order") or "asc")
        except KeyError as e:
            raise MisuseError(f"Sort mapping is missing {e.args[0]!r}") from None


@dataclass(frozen=True)
class Pagination:
    """
    Row limit, optionally turned into a numbered page.

    ``count`` alone only caps the result size. Adding ``page`` (1-based)
    applies an offset and asks browse for the total record count.
    """

    count: int
    page: int | None = None

    def __post_init__(self):
        _require_positive_int(self.count, "Pagination count")
        if self.page is not None:
            _require_positive_int(self.page, "Pagination page")

    @property
    def limit(self) -> int:
        return self.count

    @property
    def offset(self) -> int | None:
        if self.page is None:
            return None
        return self.count * (self.page - 1)

    @property
    def wants_total(self) -> bool:
        return self.page is not None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Pagination":
        try:
            return cls(count=data["count"], page=data.get("page"))
        except KeyError as e:
            raise MisuseError(f"Pagination mapping is missing {e.args[0]!r}") from None


def as_filters(filters: Iterable[Filter | Mapping[str, Any]] | None) -> tuple[Filter, ...]:
    if filters is None:
        return ()
    if isinstance(filters, (Filter, Mapping)):
        raise MisuseError("filters must be a sequence of filters, not a single filter")
    return tuple(f if isinstance(f, Filter) else Filter.from_mapping(f) for f in filters)


def as_search(search: Search | Mapping[str, Any] | None) -> Search | None:
    if search is None or isinstance(search, Search):
        return search
    return Search.from_mapping(search)


def as_sorting(sorting: Iterable[Sort | Mapping[str, Any]] | None) -> tuple[Sort, ...]:
    if sorting is None:
        return ()
    if isinstance(sorting, (Sort, Mapping)):
        raise MisuseError("sorting must be a sequence of sorts, not a single sort")
    return tuple(s if isinstance(s, Sort) else Sort.from_mapping(s) for s in sorting)


def as_pagination(pagination: Pagination | Mapping[str, Any] | None) -> Pagination | None:
    if pagination is None or isinstance(pagination, Pagination):
        return pagination
    return Pagination.from_mapping(pagination)
