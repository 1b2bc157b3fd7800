from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Iterator, List, Optional, Tuple
from urllib.parse import urlencode

from .config import ALL, DATE_RANGES, DEFAULT_DATE_RANGE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterState:
    """Snapshot of the four filter dimensions shared by every page."""

    date_range: str = DEFAULT_DATE_RANGE
    brokers: Tuple[str, ...] = ()
    product: str = ALL
    state: str = ALL

    @property
    def active_count(self) -> int:
        return sum(
            [
                self.date_range != DEFAULT_DATE_RANGE,
                len(self.brokers) > 0,
                self.product != ALL,
                self.state != ALL,
            ]
        )


DEFAULT_FILTERS = FilterState()
FILTER_KEYS = tuple(f.name for f in fields(FilterState))

FilterListener = Callable[[FilterState], None]


class FilterStoreError(RuntimeError):
    """Raised when filter state is read outside of ``filter_provider``."""


class FilterStore:
    """Session-wide filter state with synchronous change notification."""

    def __init__(self, initial: Optional[FilterState] = None) -> None:
        self._filters = initial or DEFAULT_FILTERS
        self._listeners: List[FilterListener] = []

    def get_filters(self) -> FilterState:
        return self._filters

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def active_filter_count(self) -> int:
        return self._filters.active_count

    def subscribe(self, listener: FilterListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update_filter(self, key: str, value: Any) -> None:
        """Replace exactly one filter field."""
        if key not in FILTER_KEYS:
            raise ValueError(f"Unknown filter {key!r}; expected one of {', '.join(FILTER_KEYS)}")
        if key == "brokers":
            if isinstance(value, str):
                raise ValueError("brokers must be a sequence of broker names, not a single string")
            value = tuple(value or ())
            if len(value) > 1:
                raise ValueError("At most one broker can be selected")
        elif key == "date_range" and value not in DATE_RANGES:
            raise ValueError(f"Unknown date range {value!r}")
        self.set_filters(replace(self._filters, **{key: value}))

    def reset_filters(self) -> None:
        self.set_filters(DEFAULT_FILTERS)

    def set_filters(self, filters: FilterState) -> None:
        if filters == self._filters:
            return
        self._filters = filters
        logger.debug("Filters changed: %s", filters)
        for listener in list(self._listeners):
            listener(filters)


_current_store: ContextVar[Optional[FilterStore]] = ContextVar("policyboard_filter_store", default=None)


@contextmanager
def filter_provider(store: Optional[FilterStore] = None) -> Iterator[FilterStore]:
    """Make ``store`` (or a fresh one) visible to ``use_filters`` within the block."""
    store = store or FilterStore()
    token = _current_store.set(store)
    try:
        yield store
    finally:
        _current_store.reset(token)


def use_filters() -> FilterStore:
    store = _current_store.get()
    if store is None:
        raise FilterStoreError("use_filters must be called within filter_provider()")
    return store


def build_query(filters: FilterState) -> str:
    """Map filter state to a query string, omitting dimensions left at their default.

    Only the first selected broker is sent; the backend filters on a single broker.
    """
    params: List[Tuple[str, str]] = []
    if filters.date_range:
        params.append(("date_range", filters.date_range))
    if filters.brokers:
        params.append(("broker", filters.brokers[0]))
    if filters.product and filters.product != ALL:
        params.append(("product", filters.product))
    if filters.state and filters.state != ALL:
        params.append(("state", filters.state))
    return urlencode(params)


def build_resource_url(base_resource: str, filters: FilterState) -> str:
    query = build_query(filters)
    return f"{base_resource}?{query}" if query else base_resource


__all__ = [
    "DEFAULT_FILTERS",
    "FILTER_KEYS",
    "FilterState",
    "FilterStore",
    "FilterStoreError",
    "build_query",
    "build_resource_url",
    "filter_provider",
    "use_filters",
]
