"""
Query composition for browse.

Layers optional filters, search, sorting and pagination onto a base
select-all plan. The order is fixed: filters and search narrow the rows
and are shared with the count plan, which is forked off before sorting
and slicing are applied to the records plan.
"""

from dataclasses import dataclass

from breadbox.query.plan import (
    AnyContains,
    Comparison,
    CountPlan,
    Membership,
    Order,
    SelectPlan,
)
from breadbox.query.specs import Filter, Pagination, Search, Sort


@dataclass(frozen=True)
class ComposedQuery:
    records: SelectPlan
    total: CountPlan | None = None


def with_filters(plan: SelectPlan, filters: tuple[Filter, ...]) -> SelectPlan:
    predicates = []
    for f in filters:
        if f.is_membership:
            predicates.append(Membership(field=f.field, values=f.value))
        else:
            predicates.append(Comparison(field=f.field, op=f.comparison, value=f.value))
    return plan.where_also(*predicates)


def with_search(plan: SelectPlan, search: Search) -> SelectPlan:
    return plan.where_also(AnyContains(fields=search.fields, term=search.term))


def with_sorting(plan: SelectPlan, sorting: tuple[Sort, ...]) -> SelectPlan:
    return plan.ordered_by(*(Order(field=s.field, descending=s.descending) for s in sorting))


def with_pagination(plan: SelectPlan, pagination: Pagination) -> SelectPlan:
    return plan.sliced(limit=pagination.limit, offset=pagination.offset)


def compose(
    base: SelectPlan,
    count_column: str,
    *,
    filters: tuple[Filter, ...] = (),
    search: Search | None = None,
    sorting: tuple[Sort, ...] = (),
    pagination: Pagination | None = None,
) -> ComposedQuery:
    """
    Build the records plan and, when a page number was asked for, the count plan.

    Args:
        base: Select-all plan for the table
        count_column: Column counted for the total (the primary key)
        filters: AND-ed constraints
        search: Substring search across fields, AND-ed with the filters
        sorting: Sort keys, first entry is the primary key
        pagination: Limit, plus offset and total when ``page`` is set

    Returns:
        ComposedQuery whose ``total`` is None unless ``pagination.page`` is set
    """
    plan = base
    if filters:
        plan = with_filters(plan, filters)
    if search is not None:
        plan = with_search(plan, search)

    narrowed = plan

    if sorting:
        plan = with_sorting(plan, sorting)

    total = None
    if pagination is not None:
        plan = with_pagination(plan, pagination)
        if pagination.wants_total:
            total = narrowed.counting(count_column)

    return ComposedQuery(records=plan, total=total)
