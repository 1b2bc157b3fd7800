from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd
import requests

from .api_client import AnalyticsClient, ApiError
from .config import ALL, BROKERS_RESOURCE, STATES_RESOURCE

logger = logging.getLogger(__name__)

DEFAULT_STATE_OPTIONS = {ALL: "All States"}
DEFAULT_BROKER_OPTIONS = {ALL: "All Brokers"}


def rows_to_frame(payload: Any) -> pd.DataFrame:
    """Turn an API payload (record or list of records) into a dataframe."""
    if isinstance(payload, dict):
        return pd.DataFrame([payload])
    if isinstance(payload, list) and all(isinstance(row, dict) for row in payload):
        return pd.DataFrame(payload)
    return pd.DataFrame()


def coerce_numeric(df: pd.DataFrame, columns: Iterable[str]) -> pd.DataFrame:
    """Cast numeric-as-string columns to floats; nulls and junk become 0."""
    df = df.copy()
    for column in columns:
        if column in df.columns:
            df[column] = pd.to_numeric(df[column], errors="coerce").fillna(0.0)
    return df


def pivot_rows(
    rows: Optional[List[Dict[str, Any]]],
    index: str,
    columns: str,
    values: str,
    top_n: Optional[int] = None,
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Reshape flat ``(period, category, value)`` rows into one record per period.

    Returns the wide records sorted by period and the series keys. Series keep
    first-seen order unless ``top_n`` is given, in which case only the ``top_n``
    largest series by total are kept, largest first.
    """
    df = rows_to_frame(rows)
    if df.empty or not {index, columns, values} <= set(df.columns):
        return [], []

    df = coerce_numeric(df, [values])
    df[columns] = df[columns].astype(str)
    series = list(dict.fromkeys(df[columns]))
    if top_n is not None:
        totals = df.groupby(columns, sort=False)[values].sum()
        series = list(totals.sort_values(ascending=False, kind="stable").index[:top_n])
        df = df[df[columns].isin(series)]

    wide = df.pivot_table(index=index, columns=columns, values=values, aggfunc="sum").sort_index()
    records = []
    for period, row in wide.iterrows():
        record: Dict[str, Any] = {index: period}
        record.update({key: float(row[key]) for key in series if key in row and pd.notna(row[key])})
        records.append(record)
    return records, series


def title_case(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.split(" "))


def state_premium_frame(payload: Any) -> pd.DataFrame:
    """States ranked by premium, names title-cased for display."""
    df = rows_to_frame(payload)
    if df.empty or "state" not in df.columns:
        return pd.DataFrame(columns=["state", "policies", "total_premium"])
    df = coerce_numeric(df, ["policies", "total_premium"])
    df = df[df["state"].notna()].copy()
    df["state"] = df["state"].astype(str).str.strip().map(title_case)
    df = df[df["state"] != ""]
    return df.sort_values("total_premium", ascending=False, kind="stable").reset_index(drop=True)


def _options_from(payload: Any, field: str, defaults: Dict[str, str], titled: bool) -> Dict[str, str]:
    if not isinstance(payload, list):
        return dict(defaults)
    options = dict(defaults)
    for row in payload:
        if not isinstance(row, dict):
            continue
        value = str(row.get(field) or "").strip()
        if value:
            options[value] = title_case(value) if titled else value
    return options


def fetch_filter_options(client: AnalyticsClient) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Return (state options, broker options) for the filter bar.

    Each lookup is independent; a failing lookup keeps its "all" placeholder.
    """
    params = {"date_range": "all_time"}

    try:
        states = _options_from(
            client.get_payload(STATES_RESOURCE, params=params), "state", DEFAULT_STATE_OPTIONS, titled=True
        )
    except (requests.RequestException, ApiError, ValueError) as exc:
        logger.warning("State lookup failed, keeping defaults: %s", exc)
        states = dict(DEFAULT_STATE_OPTIONS)

    try:
        brokers = _options_from(
            client.get_payload(BROKERS_RESOURCE, params=params), "broker_name", DEFAULT_BROKER_OPTIONS, titled=False
        )
    except (requests.RequestException, ApiError, ValueError) as exc:
        logger.warning("Broker lookup failed, keeping defaults: %s", exc)
        brokers = dict(DEFAULT_BROKER_OPTIONS)

    return states, brokers


async def fetch_filter_options_async(client: AnalyticsClient) -> Tuple[Dict[str, str], Dict[str, str]]:
    """Allow awaiting the blocking lookups."""
    return await asyncio.to_thread(fetch_filter_options, client)


__all__ = [
    "DEFAULT_BROKER_OPTIONS",
    "DEFAULT_STATE_OPTIONS",
    "coerce_numeric",
    "fetch_filter_options",
    "fetch_filter_options_async",
    "pivot_rows",
    "rows_to_frame",
    "state_premium_frame",
    "title_case",
]
