from __future__ import annotations

import math
from typing import Any

CRORE = 10_000_000
LAKH = 100_000
RUPEE = "₹"


def to_number(value: Any) -> float:
    """Coerce an API value (often a numeric string) to a float, 0 for null or junk."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(number) else number


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_number(value: Any) -> str:
    """Indian digit grouping (12,34,567), at most three decimals."""
    number = to_number(value)
    sign = "-" if number < 0 else ""
    text = f"{abs(number):.3f}".rstrip("0").rstrip(".")
    integer, _, fraction = text.partition(".")
    grouped = _group_indian(integer)
    return f"{sign}{grouped}.{fraction}" if fraction else f"{sign}{grouped}"


def format_inr(amount: Any) -> str:
    """Compact rupee amount using K, L (lakh) and Cr (crore) suffixes."""
    value = to_number(amount)
    if value == 0:
        return f"{RUPEE}0"
    magnitude = abs(value)
    sign = "-" if value < 0 else ""
    if magnitude >= CRORE:
        crores = magnitude / CRORE
        return f"{sign}{RUPEE}{crores:.{2 if crores < 10 else 1}f}Cr"
    if magnitude >= LAKH:
        lakhs = magnitude / LAKH
        return f"{sign}{RUPEE}{lakhs:.{2 if lakhs < 10 else 1}f}L"
    if magnitude >= 1_000:
        thousands = magnitude / 1_000
        return f"{sign}{RUPEE}{thousands:.{1 if thousands < 10 else 0}f}K"
    return f"{sign}{RUPEE}{magnitude:.0f}"


def format_percent(value: Any) -> str:
    return f"{to_number(value):.1f}%"


def abbreviate_number(value: Any) -> str:
    number = to_number(value)
    if number == 0:
        return "0"
    magnitude = abs(number)
    sign = "-" if number < 0 else ""
    if magnitude >= CRORE:
        return f"{sign}{magnitude / CRORE:.1f}Cr"
    if magnitude >= LAKH:
        return f"{sign}{magnitude / LAKH:.1f}L"
    if magnitude >= 1_000:
        return f"{sign}{magnitude / 1_000:.1f}K"
    return f"{sign}{magnitude:g}"


STATUS_COLORS = {
    "green": ("bg-emerald-100 text-emerald-800", {"green", "ok", "good"}),
    "yellow": ("bg-amber-100 text-amber-800", {"yellow", "warning", "warn"}),
    "red": ("bg-red-100 text-red-800", {"red", "critical", "danger"}),
}


def status_color(status: str) -> str:
    """Tailwind badge classes for a traffic-light status word."""
    normalized = status.lower()
    for classes, aliases in STATUS_COLORS.values():
        if normalized in aliases:
            return classes
    return "bg-slate-100 text-slate-800"
