"""NiceGUI dashboard for PolicyBoard.

Insurance-distribution KPIs, broker scorecard and premium trends, all
re-queried whenever the shared filters change and refreshed every few
minutes.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable, List, Optional

from nicegui import ui

from policyboard.api_client import AnalyticsClient
from policyboard.charts import build_bar_chart, build_trend_chart, create_placeholder_chart
from policyboard.config import (
    ALL,
    API_BASE_URL,
    DATE_RANGE_LABELS,
    LOG_LEVEL,
    PRODUCT_OPTIONS,
    REFRESH_INTERVAL,
    REQUEST_TIMEOUT,
    STORAGE_SECRET,
    TABLE_PAGE_SIZE,
    storage_secret_warning,
)
from policyboard.data_services import (
    DEFAULT_BROKER_OPTIONS,
    DEFAULT_STATE_OPTIONS,
    coerce_numeric,
    fetch_filter_options_async,
    pivot_rows,
    rows_to_frame,
    state_premium_frame,
)
from policyboard.fetching import FetchState, FilteredFetcher, close_when_deleted
from policyboard.filters import FilterState, FilterStore, filter_provider, use_filters
from policyboard.table import Column, TableEngine, use_system_collation
from policyboard.utils import format_inr, format_number, format_percent, status_color, to_number

logger = logging.getLogger("policyboard")

ALIGN_CLASSES = {"left": "text-left", "center": "text-center", "right": "text-right"}


BROKER_COLUMNS = [
    Column("broker_name", "Broker"),
    Column("tier", "Tier"),
    Column("total_policies", "Policies", align="right", formatter=lambda v, _r: format_number(v)),
    Column("total_premium", "Premium", align="right", formatter=lambda v, _r: format_inr(v)),
    Column("total_quotes", "Quotes", align="right", formatter=lambda v, _r: format_number(v)),
    Column("active_months", "Active Months", align="right", formatter=lambda v, _r: format_number(v)),
    Column("conversion_rate", "Conv. Rate", align="right", formatter=lambda v, _r: format_percent(v)),
]

KPI_CARDS = [
    ("Policies (MTD)", "total_policies", format_number),
    ("Premium (MTD)", "total_premium", format_inr),
    ("Active Agents", "active_agents", format_number),
    ("Avg Ticket Size", "avg_ticket", format_inr),
    ("Quote-to-Policy", "conversion_rate", format_percent),
    ("MoM Growth", "policies_mom_pct", format_percent),
]

TIER_STATUS = {"Platinum": "green", "Gold": "yellow"}


# ============================================================================
# Filter bar
# ============================================================================

def render_filter_bar(store: FilterStore, client: AnalyticsClient) -> None:
    """Selects for the four filter dimensions plus the active-count badge."""
    with ui.row().classes("filter-bar w-full items-center gap-3 px-4 py-2 border-b border-slate-200 bg-white"):
        ui.icon("tune").classes("text-slate-500")
        ui.label("Filters").classes("text-xs font-medium text-slate-500")
        badge = ui.badge("0").classes("active-filter-badge")

        date_select = ui.select(
            DATE_RANGE_LABELS,
            value=store.filters.date_range,
            on_change=lambda e: store.update_filter("date_range", e.value),
        ).classes("date-range-select w-40")
        broker_select = ui.select(
            dict(DEFAULT_BROKER_OPTIONS),
            value=ALL,
            on_change=lambda e: store.update_filter("brokers", [] if e.value in (None, ALL) else [e.value]),
        ).classes("broker-select w-48")
        product_select = ui.select(
            PRODUCT_OPTIONS,
            value=store.filters.product,
            on_change=lambda e: store.update_filter("product", e.value or ALL),
        ).classes("product-select w-40")
        state_select = ui.select(
            dict(DEFAULT_STATE_OPTIONS),
            value=store.filters.state,
            on_change=lambda e: store.update_filter("state", e.value or ALL),
        ).classes("state-select w-40")
        clear_button = ui.button("Clear", icon="close", on_click=store.reset_filters).props("flat dense size=sm")

    def sync(filters: FilterState) -> None:
        date_select.value = filters.date_range
        broker_select.value = filters.brokers[0] if filters.brokers else ALL
        product_select.value = filters.product
        state_select.value = filters.state
        badge.text = str(filters.active_count)
        badge.set_visibility(filters.active_count > 0)
        clear_button.set_visibility(filters.active_count > 0)

    store.subscribe(sync)
    sync(store.filters)

    async def load_options() -> None:
        states, brokers = await fetch_filter_options_async(client)
        state_select.options = states
        state_select.update()
        broker_select.options = brokers
        broker_select.update()

    asyncio.create_task(load_options())


# ============================================================================
# Widgets
# ============================================================================

def render_card(title: str, subtitle: str, fetcher: FilteredFetcher, body: Callable[[Any], None]) -> None:
    """Card that shows a spinner while loading and falls back to "no data"."""
    with ui.card().classes("chart-card w-full"):
        ui.label(title).classes("text-base font-semibold text-slate-900")
        ui.label(subtitle).classes("text-xs text-slate-500")

        @ui.refreshable
        def content() -> None:
            state = fetcher.state
            if state.loading:
                ui.spinner(size="lg").classes("self-center my-8")
            elif not state.data:
                ui.label("No data available").classes("text-sm text-slate-400 self-center py-12")
            else:
                body(state.data)

        content()

    fetcher.subscribe(lambda _state: content.refresh())


def render_kpis(data: Any) -> None:
    kpi = data if isinstance(data, dict) else {}
    with ui.grid(columns=3).classes("w-full gap-4"):
        for title, key, formatter in KPI_CARDS:
            with ui.card().classes("kpi-card"):
                ui.label(title).classes("text-xs uppercase tracking-wider text-slate-500")
                ui.label(formatter(kpi.get(key))).classes("text-2xl font-bold text-slate-900")
                if key == "policies_mom_pct" and kpi.get(key) is not None:
                    delta = to_number(kpi.get(key))
                    colour = "text-emerald-600" if delta >= 0 else "text-red-600"
                    ui.label(f"{'+' if delta >= 0 else ''}{delta:.1f}%").classes(f"text-sm font-semibold {colour}")


def render_growth(data: Any) -> None:
    df = coerce_numeric(rows_to_frame(data), ["policies", "total_premium"])
    ui.plotly(build_bar_chart(df, x="month", y="total_premium")).classes("w-full")


def render_states(data: Any) -> None:
    ui.plotly(build_bar_chart(state_premium_frame(data), x="state", y="total_premium")).classes("w-full")


def render_trend(index: str, columns: str, values: str, top_n: Optional[int] = None) -> Callable[[Any], None]:
    def body(data: Any) -> None:
        records, series = pivot_rows(data if isinstance(data, list) else [], index, columns, values, top_n=top_n)
        if not records:
            ui.plotly(create_placeholder_chart("No data available")).classes("w-full")
            return
        ui.plotly(build_trend_chart(records, index, series)).classes("w-full")

    return body


def render_data_table(engine: TableEngine, fetcher: FilteredFetcher) -> None:
    """Sortable, paged table over the fetcher's rows."""

    @ui.refreshable
    def table_view() -> None:
        with ui.element("table").classes("data-table w-full text-sm"):
            with ui.element("thead"):
                with ui.element("tr").classes("border-b border-slate-200"):
                    for column in engine.columns:
                        header = ui.element("th").classes(
                            f"px-3 py-3 text-xs font-semibold uppercase text-slate-500 bg-slate-50 cursor-pointer "
                            f"{ALIGN_CLASSES.get(column.align, 'text-left')}"
                        )
                        with header:
                            ui.label(f"{column.label} {engine.sort_indicator(column.key)}".strip())
                        header.on("click", lambda _e, key=column.key: sort_by(key))
            with ui.element("tbody"):
                if not engine.page_rows:
                    with ui.element("tr"):
                        with ui.element("td").props(f"colspan={len(engine.columns)}").classes(
                            "px-3 py-8 text-center text-slate-400"
                        ):
                            ui.label(engine.render_body()[0][0])
                for row, cells in zip(engine.page_rows, engine.render_body()):
                    with ui.element("tr").classes("border-b border-slate-100 hover:bg-slate-50"):
                        for column, cell in zip(engine.columns, cells):
                            with ui.element("td").classes(f"px-3 py-2 {ALIGN_CLASSES.get(column.align, 'text-left')}"):
                                if column.key == "tier":
                                    ui.label(cell).classes(
                                        f"rounded-full px-2 text-xs {status_color(TIER_STATUS.get(cell, 'red'))}"
                                    )
                                else:
                                    ui.label(cell)
        if engine.total_pages > 1:
            with ui.row().classes("w-full items-center justify-between mt-3"):
                ui.label(engine.range_label).classes("text-xs text-slate-500")
                with ui.row().classes("items-center gap-1"):
                    previous = ui.button(icon="chevron_left", on_click=lambda: go(engine.previous_page))
                    previous.props("flat dense").set_enabled(engine.has_previous)
                    ui.label(f"{engine.page_index + 1} / {engine.total_pages}").classes("text-xs text-slate-600")
                    following = ui.button(icon="chevron_right", on_click=lambda: go(engine.next_page))
                    following.props("flat dense").set_enabled(engine.has_next)

    def sort_by(key: str) -> None:
        engine.toggle_sort(key)
        table_view.refresh()

    def go(move: Callable[[], None]) -> None:
        move()
        table_view.refresh()

    last_payload: List[Any] = [None]

    def on_state(state: FetchState) -> None:
        if state.data is not last_payload[0]:
            last_payload[0] = state.data
            engine.set_rows(state.data if isinstance(state.data, list) else [], source=fetcher.resource)
            table_view.refresh()

    with ui.card().classes("chart-card w-full"):
        ui.label("Broker Scorecard").classes("text-base font-semibold text-slate-900")
        ui.label("Performance rankings with tier badges").classes("text-xs text-slate-500")
        table_view()

    fetcher.subscribe(on_state)


def build_dashboard(client: AnalyticsClient) -> List[FilteredFetcher]:
    """Lay out every widget; each gets its own filter-bound fetcher."""
    store = use_filters()

    def fetcher(resource: str) -> FilteredFetcher:
        return FilteredFetcher(resource, client.fetch_json, refresh_interval=REFRESH_INTERVAL, store=store)

    kpis = fetcher("/api/executive/kpis")
    growth = fetcher("/api/executive/growth")
    brokers = fetcher("/api/brokers/performance")
    broker_trend = fetcher("/api/brokers/trend")
    product_trend = fetcher("/api/products/trend")
    states = fetcher("/api/geographic/states")

    with ui.column().classes("w-full max-w-6xl mx-auto gap-6 p-4"):
        render_card("Executive Summary", "Headline KPIs for the selected filters", kpis, render_kpis)
        render_card("12-Month Sales Trend", "Premium by month", growth, render_growth)
        render_card("Geographic Distribution", "Premium by policy-holder state", states, render_states)
        render_data_table(TableEngine(BROKER_COLUMNS, page_size=TABLE_PAGE_SIZE), brokers)
        with ui.grid(columns=2).classes("w-full gap-6"):
            render_card(
                "Broker Premium Trend",
                "Monthly premium by broker",
                broker_trend,
                render_trend("sold_month", "broker_name", "total_premium", top_n=5),
            )
            render_card(
                "Product Premium Trend",
                "Monthly premium by product",
                product_trend,
                render_trend("sold_month", "product_type", "total_premium"),
            )

    return [kpis, growth, brokers, broker_trend, product_trend, states]


# ============================================================================
# Main UI
# ============================================================================

@ui.page("/")
async def index_page() -> None:
    """Main dashboard page."""
    ui.page_title("PolicyBoard · Distribution Dashboard")
    ui.query("body").classes("bg-slate-50 text-slate-900")

    client = AnalyticsClient(API_BASE_URL, timeout=REQUEST_TIMEOUT)

    with filter_provider() as store:
        with ui.header().classes("bg-white text-slate-900 shadow-sm"):
            ui.label("PolicyBoard").classes("text-lg font-bold")
        render_filter_bar(store, client)
        fetchers = build_dashboard(client)

    close_when_deleted(ui.context.client, fetchers)

    for item in fetchers:
        item.start()


@ui.page("/health")
def healthcheck() -> None:
    """Health check endpoint."""
    ui.label("ok")


if __name__ in {"__main__", "__mp_main__"}:
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    use_system_collation()
    secret_warning = storage_secret_warning()
    if secret_warning:
        logger.warning(secret_warning)

    port = int(os.environ.get("PORT", "8080"))
    reload_enabled = os.environ.get("NICEGUI_RELOAD", "false").lower() in {"1", "true", "yes"}

    ui.run(
        title="PolicyBoard",
        host="0.0.0.0",
        port=port,
        reload=reload_enabled,
        storage_secret=STORAGE_SECRET,
    )
