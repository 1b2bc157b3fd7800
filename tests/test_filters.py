import itertools

import pytest

from policyboard.filters import (
    DEFAULT_FILTERS,
    FilterState,
    FilterStore,
    FilterStoreError,
    build_query,
    build_resource_url,
    filter_provider,
    use_filters,
)


def test_defaults() -> None:
    store = FilterStore()

    assert store.get_filters() == FilterState("last_6_months", (), "all", "all")
    assert store.active_filter_count == 0


def test_update_filter_replaces_one_field_and_notifies() -> None:
    store = FilterStore()
    seen = []
    store.subscribe(seen.append)

    store.update_filter("product", "Health")

    assert store.filters == FilterState(product="Health")
    assert seen == [FilterState(product="Health")]


def test_brokers_are_stored_as_tuple() -> None:
    store = FilterStore()
    store.update_filter("brokers", ["Acme"])

    assert store.filters.brokers == ("Acme",)
    assert store.active_filter_count == 1


def test_single_broker_string_is_rejected() -> None:
    store = FilterStore()
    with pytest.raises(ValueError):
        store.update_filter("brokers", "Acme")

    assert store.filters.brokers == ()
    assert build_resource_url("/api/brokers/performance", store.filters) == (
        "/api/brokers/performance?date_range=last_6_months"
    )


def test_at_most_one_broker_can_be_selected() -> None:
    store = FilterStore()
    with pytest.raises(ValueError):
        store.update_filter("brokers", ["Acme", "Zenith"])

    assert store.filters == DEFAULT_FILTERS


def test_clearing_brokers_with_empty_list() -> None:
    store = FilterStore()
    store.update_filter("brokers", ["Acme"])
    store.update_filter("brokers", [])

    assert store.filters.brokers == ()


@pytest.mark.parametrize(
    "key, value",
    [("region", "north"), ("date_range", "last_week")],
)
def test_update_filter_rejects_unknown_input(key: str, value: str) -> None:
    store = FilterStore()
    with pytest.raises(ValueError):
        store.update_filter(key, value)
    assert store.filters == DEFAULT_FILTERS


def test_reset_is_a_single_notification() -> None:
    store = FilterStore()
    store.update_filter("date_range", "all_time")
    store.update_filter("brokers", ["Acme"])
    store.update_filter("product", "Health")
    store.update_filter("state", "KARNATAKA")
    assert store.active_filter_count == 4

    seen = []
    store.subscribe(seen.append)
    store.reset_filters()

    assert seen == [DEFAULT_FILTERS]
    assert store.active_filter_count == 0


def test_unchanged_value_does_not_notify() -> None:
    store = FilterStore()
    seen = []
    store.subscribe(seen.append)

    store.update_filter("state", "all")
    store.reset_filters()

    assert seen == []


def test_unsubscribe_stops_notifications() -> None:
    store = FilterStore()
    seen = []
    unsubscribe = store.subscribe(seen.append)
    unsubscribe()

    store.update_filter("product", "Health")

    assert seen == []


@pytest.mark.parametrize(
    "date_range, brokers, product, state",
    itertools.product(
        ["last_6_months", "last_30_days"],
        [(), ("Acme",)],
        ["all", "Health"],
        ["all", "KERALA"],
    ),
)
def test_active_count_matches_non_default_fields(date_range, brokers, product, state) -> None:
    filters = FilterState(date_range, brokers, product, state)
    expected = sum(
        [date_range != "last_6_months", bool(brokers), product != "all", state != "all"]
    )

    assert filters.active_count == expected
    query = build_query(filters)
    assert query.startswith(f"date_range={date_range}")
    assert ("broker=" in query) == bool(brokers)
    assert ("product=" in query) == (product != "all")
    assert ("state=" in query) == (state != "all")


def test_query_parameter_order_is_stable() -> None:
    filters = FilterState("all_time", ("Acme", "Zenith"), "Private Car", "TAMIL NADU")

    assert build_query(filters) == "date_range=all_time&broker=Acme&product=Private+Car&state=TAMIL+NADU"


def test_resource_url_for_single_broker_scenario() -> None:
    filters = FilterState(date_range="last_30_days", brokers=("Acme",))

    assert build_resource_url("/api/brokers/performance", filters) == (
        "/api/brokers/performance?date_range=last_30_days&broker=Acme"
    )


def test_resource_url_without_parameters() -> None:
    filters = FilterState(date_range="")

    assert build_resource_url("/api/executive/kpis", filters) == "/api/executive/kpis"


def test_use_filters_requires_provider() -> None:
    with pytest.raises(FilterStoreError):
        use_filters()


def test_provider_exposes_store_and_restores_context() -> None:
    store = FilterStore()
    with filter_provider(store) as provided:
        assert provided is store
        assert use_filters() is store
    with pytest.raises(FilterStoreError):
        use_filters()
