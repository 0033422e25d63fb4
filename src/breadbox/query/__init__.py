"""
Query

Browse specs, immutable query plans and the composer that joins them.
"""

from breadbox.query.composer import ComposedQuery, compose
from breadbox.query.plan import CountPlan, SelectPlan, select_all
from breadbox.query.specs import Filter, Pagination, Search, Sort

__all__ = [
    "ComposedQuery",
    "CountPlan",
    "Filter",
    "Pagination",
    "Search",
    "SelectPlan",
    "Sort",
    "compose",
    "select_all",
]
