import pandas as pd
import pytest

from policyboard.charts import CHART_THEMES, build_bar_chart, build_trend_chart, create_placeholder_chart


@pytest.fixture
def trend_records() -> list:
    return [
        {"sold_month": "2025-01", "Acme": 1200.0, "Zenith": 800.0},
        {"sold_month": "2025-02", "Acme": 1500.0},
    ]


@pytest.fixture
def growth_df() -> pd.DataFrame:
    return pd.DataFrame({"month": ["2025-01", "2025-02", "2025-03"], "total_premium": [10.0, 12.5, 9.0]})


@pytest.mark.parametrize("theme", ["dark", "light"])
def test_trend_chart_respects_palette(theme: str, trend_records: list) -> None:
    fig = build_trend_chart(trend_records, "sold_month", ["Acme", "Zenith"], theme=theme)
    palette = CHART_THEMES[theme]

    assert fig.layout.paper_bgcolor == palette["paper_bg"]
    assert fig.layout.plot_bgcolor == palette["plot_bg"]
    assert fig.layout.font.color == palette["font_color"]
    assert fig.layout.xaxis.gridcolor == palette["grid_color"]


def test_trend_chart_has_one_trace_per_series(trend_records: list) -> None:
    fig = build_trend_chart(trend_records, "sold_month", ["Acme", "Zenith"])

    assert [trace.name for trace in fig.data] == ["Acme", "Zenith"]
    assert list(fig.data[1].y) == [800.0, None]


@pytest.mark.parametrize("theme", ["dark", "light"])
def test_bar_chart_respects_palette(theme: str, growth_df: pd.DataFrame) -> None:
    fig = build_bar_chart(growth_df, x="month", y="total_premium", theme=theme)
    palette = CHART_THEMES[theme]

    assert fig.layout.paper_bgcolor == palette["paper_bg"]
    assert fig.layout.yaxis.gridcolor == palette["grid_color"]
    assert fig.layout.font.color == palette["font_color"]


def test_empty_inputs_fall_back_to_placeholder() -> None:
    assert build_trend_chart([], "sold_month", []).layout.title.text == "No data available"
    assert build_bar_chart(pd.DataFrame(), x="month", y="total_premium").layout.title.text == "No data available"


@pytest.mark.parametrize("theme", ["dark", "light"])
def test_placeholder_chart_uses_theme_colors(theme: str) -> None:
    fig = create_placeholder_chart("Theme Test", height=120, theme=theme)
    palette = CHART_THEMES[theme]

    assert fig.layout.title.font.color == palette["muted_text"]
    assert fig.layout.paper_bgcolor == palette["paper_bg"]
