from __future__ import annotations

import os
from secrets import token_hex
from typing import Optional


def _int_from_env(name: str, default: int) -> int:
    """Best-effort conversion for optional integer environment settings."""
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


# Analytics backend
API_BASE_URL = os.environ.get("POLICYBOARD_API_URL", "http://localhost:3001")
REQUEST_TIMEOUT = _int_from_env("REQUEST_TIMEOUT", 30)
REFRESH_INTERVAL = _int_from_env("REFRESH_INTERVAL", 300)
TABLE_PAGE_SIZE = _int_from_env("TABLE_PAGE_SIZE", 10)
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

_RAW_STORAGE_SECRET = os.environ.get("STORAGE_SECRET")
if _RAW_STORAGE_SECRET:
    STORAGE_SECRET = _RAW_STORAGE_SECRET
    STORAGE_SECRET_FROM_ENV = True
else:
    STORAGE_SECRET = token_hex(32)
    STORAGE_SECRET_FROM_ENV = False


def storage_secret_warning() -> Optional[str]:
    """Startup warning when the session secret was generated rather than configured."""
    if STORAGE_SECRET_FROM_ENV:
        return None
    return "STORAGE_SECRET is not set; a random secret was generated and sessions will not survive a restart"


# Filter dimensions
ALL = "all"
DATE_RANGES = (
    "last_30_days",
    "last_3_months",
    "last_6_months",
    "last_12_months",
    "all_time",
)
DEFAULT_DATE_RANGE = "last_6_months"

DATE_RANGE_LABELS = {
    "last_30_days": "Last 30 Days",
    "last_3_months": "Last 3 Months",
    "last_6_months": "Last 6 Months",
    "last_12_months": "Last 12 Months",
    "all_time": "All Time",
}

PRODUCT_OPTIONS = {
    ALL: "All Products",
    "Private Car": "Private Car",
    "Two Wheeler": "Two Wheeler",
    "Health": "Health",
}

# Lookup endpoints used to populate the filter bar
STATES_RESOURCE = "/api/geographic/states"
BROKERS_RESOURCE = "/api/brokers/performance"

# Palette
CHART_COLORS = [
    "#3B82F6",
    "#10B981",
    "#F59E0B",
    "#EF4444",
    "#8B5CF6",
    "#EC4899",
    "#06B6D4",
    "#84CC16",
]

__all__ = [
    "API_BASE_URL",
    "REQUEST_TIMEOUT",
    "REFRESH_INTERVAL",
    "TABLE_PAGE_SIZE",
    "LOG_LEVEL",
    "STORAGE_SECRET",
    "STORAGE_SECRET_FROM_ENV",
    "storage_secret_warning",
    "ALL",
    "DATE_RANGES",
    "DEFAULT_DATE_RANGE",
    "DATE_RANGE_LABELS",
    "PRODUCT_OPTIONS",
    "STATES_RESOURCE",
    "BROKERS_RESOURCE",
    "CHART_COLORS",
]
