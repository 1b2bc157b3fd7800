from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .config import CHART_COLORS

ChartTheme = Dict[str, str]

CHART_THEMES: Dict[str, ChartTheme] = {
    "light": {
        "template": "plotly_white",
        "paper_bg": "#ffffff",
        "plot_bg": "#ffffff",
        "font_color": "#0f172a",
        "grid_color": "#e2e8f0",
        "muted_text": "#64748b",
        "legend_bg": "rgba(255, 255, 255, 0.9)",
    },
    "dark": {
        "template": "plotly_dark",
        "paper_bg": "#1f2335",
        "plot_bg": "#252a3f",
        "font_color": "#f1f5f9",
        "grid_color": "#343c55",
        "muted_text": "#cbd5f5",
        "legend_bg": "rgba(28, 32, 48, 0.92)",
    },
}

FONT_FAMILY = "Inter, Segoe UI, sans-serif"


def _get_chart_theme(theme: str) -> ChartTheme:
    return CHART_THEMES.get(theme, CHART_THEMES["light"])


def _apply_layout(fig: go.Figure, palette: ChartTheme, height: int) -> None:
    fig.update_layout(
        template=palette["template"],
        paper_bgcolor=palette["paper_bg"],
        plot_bgcolor=palette["plot_bg"],
        font=dict(color=palette["font_color"], family=FONT_FAMILY, size=11),
        legend=dict(bgcolor=palette["legend_bg"], orientation="h", y=-0.2),
        hovermode="x unified",
        height=height,
        margin=dict(t=30, r=20, b=40, l=60),
    )
    fig.update_xaxes(title=None, gridcolor=palette["grid_color"])
    fig.update_yaxes(title=None, gridcolor=palette["grid_color"])


def create_placeholder_chart(title: str = "Loading...", height: int = 320, theme: str = "light") -> go.Figure:
    palette = _get_chart_theme(theme)
    fig = go.Figure()
    fig.update_layout(
        template=palette["template"],
        paper_bgcolor=palette["paper_bg"],
        plot_bgcolor=palette["plot_bg"],
        font=dict(color=palette["font_color"], family=FONT_FAMILY, size=11),
        title=dict(text=title, font=dict(size=14, color=palette["muted_text"])),
        xaxis=dict(showgrid=True, gridcolor=palette["grid_color"], showticklabels=False),
        yaxis=dict(showgrid=True, gridcolor=palette["grid_color"], showticklabels=False),
        height=height,
        margin=dict(t=60, r=20, b=40, l=50),
    )
    return fig


def build_trend_chart(
    records: List[Dict[str, Any]],
    x_key: str,
    series: Sequence[str],
    theme: str = "light",
    height: int = 320,
) -> go.Figure:
    """Multi-line chart over pivoted records, one trace per series key."""
    if not records or not series:
        return create_placeholder_chart("No data available", height=height, theme=theme)

    palette = _get_chart_theme(theme)
    fig = go.Figure()
    for index, key in enumerate(series):
        fig.add_trace(
            go.Scatter(
                x=[record[x_key] for record in records],
                y=[record.get(key) for record in records],
                mode="lines+markers",
                name=key,
                line=dict(color=CHART_COLORS[index % len(CHART_COLORS)], width=2),
                connectgaps=False,
            )
        )
    _apply_layout(fig, palette, height)
    return fig


def build_bar_chart(
    df: pd.DataFrame,
    x: str,
    y: str,
    theme: str = "light",
    height: int = 320,
) -> go.Figure:
    if df.empty or x not in df.columns or y not in df.columns:
        return create_placeholder_chart("No data available", height=height, theme=theme)

    palette = _get_chart_theme(theme)
    fig = px.bar(df, x=x, y=y, color_discrete_sequence=CHART_COLORS)
    _apply_layout(fig, palette, height)
    fig.update_layout(showlegend=False)
    return fig


__all__ = ["CHART_THEMES", "build_bar_chart", "build_trend_chart", "create_placeholder_chart"]
