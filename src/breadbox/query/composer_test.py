"""Tests for browse query composition."""

from breadbox.query.composer import (
    compose,
    with_filters,
    with_pagination,
    with_search,
    with_sorting,
)
from breadbox.query.plan import (
    AnyContains,
    Comparison,
    CountPlan,
    Membership,
    Order,
    SelectPlan,
    select_all,
)
from breadbox.query.specs import Filter, Pagination, Search, Sort

BASE = select_all("people")


class TestWithFilters:
    """Tests for with_filters()"""

    def test_each_filter_is_a_conjunct(self):
        plan = with_filters(BASE, (Filter("direction", "left"), Filter("id", 3, ">")))

        assert plan.where == (
            Comparison("direction", "=", "left"),
            Comparison("id", ">", 3),
        )

    def test_collection_becomes_membership(self):
        plan = with_filters(BASE, (Filter("id", [1, 2], "<"),))

        assert plan.where == (Membership("id", (1, 2)),)

    def test_base_plan_is_unchanged(self):
        with_filters(BASE, (Filter("id", 1),))

        assert BASE == SelectPlan("people")


class TestWithSearch:
    """Tests for with_search()"""

    def test_fields_form_one_or_group(self):
        plan = with_search(BASE, Search("foobar", ("name", "description")))

        assert plan.where == (AnyContains(("name", "description"), "foobar"),)

    def test_search_is_anded_after_filters(self):
        plan = with_filters(BASE, (Filter("direction", "left"),))
        plan = with_search(plan, Search("foo", ("name",)))

        assert plan.where == (
            Comparison("direction", "=", "left"),
            AnyContains(("name",), "foo"),
        )


class TestWithSortingAndPagination:
    """Tests for with_sorting() and with_pagination()"""

    def test_sort_order_is_preserved(self):
        plan = with_sorting(BASE, (Sort("direction"), Sort("id", "desc")))

        assert plan.order_by == (Order("direction", False), Order("id", True))

    def test_count_only_limits_without_offset(self):
        plan = with_pagination(BASE, Pagination(5))

        assert plan.limit == 5
        assert plan.offset is None

    def test_page_sets_offset(self):
        plan = with_pagination(BASE, Pagination(5, 3))

        assert (plan.limit, plan.offset) == (5, 10)


class TestCompose:
    """Tests for compose()"""

    def test_no_specs_selects_everything(self):
        composed = compose(BASE, "id")

        assert composed.records == BASE
        assert composed.total is None

    def test_count_only_pagination_skips_total(self):
        composed = compose(BASE, "id", pagination=Pagination(5))

        assert composed.records.limit == 5
        assert composed.total is None

    def test_total_keeps_filters_and_search_only(self):
        composed = compose(
            BASE,
            "id",
            filters=(Filter("direction", "left"),),
            search=Search("foobar", ("name", "description")),
            sorting=(Sort("id", "desc"),),
            pagination=Pagination(1, 2),
        )

        assert composed.total == CountPlan(
            table="people",
            column="id",
            where=(
                Comparison("direction", "=", "left"),
                AnyContains(("name", "description"), "foobar"),
            ),
        )
        assert composed.records.where == composed.total.where
        assert composed.records.order_by == (Order("id", True),)
        assert (composed.records.limit, composed.records.offset) == (1, 1)

    def test_total_counts_requested_column(self):
        composed = compose(BASE, "person_id", pagination=Pagination(2, 1))

        assert composed.total.column == "person_id"

    def test_specs_are_not_mutated(self):
        filters = (Filter("id", [1, 2]),)
        search = Search("x", ("name",))
        sorting = (Sort("id"),)
        pagination = Pagination(3, 2)

        compose(BASE, "id", filters=filters, search=search, sorting=sorting, pagination=pagination)

        assert filters == (Filter("id", (1, 2)),)
        assert search == Search("x", ("name",))
        assert sorting == (Sort("id", "asc"),)
        assert pagination == Pagination(3, 2)

    def test_composition_is_deterministic(self):
        kwargs = dict(
            filters=(Filter("id", {5, 1, 3}),),
            sorting=(Sort("name"),),
            pagination=Pagination(2, 2),
        )

        assert compose(BASE, "id", **kwargs) == compose(BASE, "id", **kwargs)
