from __future__ import annotations

import locale
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .config import TABLE_PAGE_SIZE

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Formatter = Callable[[Any, Row], str]

NO_DATA_LABEL = "No data available"


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    align: str = "left"
    sortable: bool = True
    formatter: Optional[Formatter] = None

    def render(self, row: Row) -> str:
        value = row.get(self.key)
        if self.formatter is not None:
            return self.formatter(value, row)
        return "" if value is None else str(value)


def _as_number(value: Any) -> Optional[float]:
    """Numeric view of a cell; the backend sends numbers as strings."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


def use_system_collation() -> None:
    """Adopt the environment's collation order for text columns."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        logger.warning("Falling back to default collation: %s", exc)


def text_sort_key(value: Any) -> Tuple[str, str]:
    """Case-insensitive collation key with the raw text as tie-break."""
    text = str(value)
    return locale.strxfrm(text.casefold()), text


def sort_rows(rows: Sequence[Row], key: str, descending: bool = False) -> List[Row]:
    """Stable sort on ``key`` with missing values always placed last.

    The column sorts numerically only when every present value is numeric;
    otherwise every value is compared as text.
    """
    present = [row for row in rows if row.get(key) is not None]
    missing = [row for row in rows if row.get(key) is None]
    if all(_as_number(row[key]) is not None for row in present):
        present.sort(key=lambda row: _as_number(row[key]), reverse=descending)
    else:
        present.sort(key=lambda row: text_sort_key(row[key]), reverse=descending)
    return present + missing


class TableEngine:
    """Sort and page state for one table over read-only rows."""

    def __init__(
        self,
        columns: Sequence[Column],
        rows: Optional[Sequence[Row]] = None,
        page_size: int = TABLE_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.columns = list(columns)
        self.page_size = page_size
        self._rows: List[Row] = list(rows or [])
        self._source: Optional[str] = None
        self.sort_key: Optional[str] = None
        self.sort_direction = "asc"
        self._page = 0

    @property
    def rows(self) -> List[Row]:
        return self._rows

    def set_rows(self, rows: Optional[Sequence[Row]], source: Optional[str] = None) -> None:
        """Replace the rows, keeping the page unless ``source`` (the query they came from) changed."""
        self._rows = list(rows or [])
        if source is not None and source != self._source:
            self._source = source
            self._page = 0

    def _column(self, key: str) -> Column:
        for column in self.columns:
            if column.key == key:
                return column
        raise KeyError(key)

    def toggle_sort(self, key: str) -> None:
        """Header click: flip direction on the active column, else sort ascending by ``key``."""
        if not self._column(key).sortable:
            return
        if self.sort_key == key:
            self.sort_direction = "desc" if self.sort_direction == "asc" else "asc"
        else:
            self.sort_key = key
            self.sort_direction = "asc"
        self._page = 0

    def sort_indicator(self, key: str) -> str:
        if self.sort_key != key:
            return ""
        return "▲" if self.sort_direction == "asc" else "▼"

    @property
    def sorted_rows(self) -> List[Row]:
        if self.sort_key is None:
            return list(self._rows)
        return sort_rows(self._rows, self.sort_key, descending=self.sort_direction == "desc")

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(len(self._rows) / self.page_size))

    @property
    def page_index(self) -> int:
        return max(0, min(self._page, self.total_pages - 1))

    def set_page(self, index: int) -> None:
        self._page = max(0, index)

    def next_page(self) -> None:
        if self.has_next:
            self._page = self.page_index + 1

    def previous_page(self) -> None:
        if self.has_previous:
            self._page = self.page_index - 1

    @property
    def has_previous(self) -> bool:
        return self.page_index > 0

    @property
    def has_next(self) -> bool:
        return self.page_index < self.total_pages - 1

    @property
    def page_rows(self) -> List[Row]:
        start = self.page_index * self.page_size
        return self.sorted_rows[start : start + self.page_size]

    @property
    def range_label(self) -> str:
        total = len(self._rows)
        if total == 0:
            return "Showing 0 of 0"
        start = self.page_index * self.page_size
        return f"Showing {start + 1}-{min(start + self.page_size, total)} of {total}"

    def render_body(self) -> List[List[str]]:
        """Formatted cells for the current page, or a single placeholder row."""
        rows = self.page_rows
        if not rows:
            return [[NO_DATA_LABEL]]
        return [[column.render(row) for column in self.columns] for row in rows]


__all__ = ["Column", "NO_DATA_LABEL", "TableEngine", "sort_rows", "text_sort_key", "use_system_collation"]
