"""
Plotly chart factory functions with consistent styling for the dashboard.
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from mzo_dashboard.data.aggregation import AggregateResult

DEFAULT_TEMPLATE = "plotly_white"
DEFAULT_COLOR_SEQUENCE = [
    "#2563eb",  # blue
    "#f97316",  # orange
    "#10b981",  # emerald
    "#e11d48",  # rose, delays / warnings
    "#8b5cf6",
    "#64748b",
]


def _configure_layout(
    fig: go.Figure,
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    yaxis_tickformat: Optional[str] = None,
    legend_title: Optional[str] = None,
) -> go.Figure:
    fig.update_layout(
        template=DEFAULT_TEMPLATE,
        colorway=DEFAULT_COLOR_SEQUENCE,
        title=title,
        legend_title=legend_title,
        hovermode="x unified",
        margin=dict(l=40, r=20, t=60, b=40),
    )
    if yaxis_title:
        fig.update_yaxes(title=yaxis_title)
    if yaxis_tickformat:
        fig.update_yaxes(tickformat=yaxis_tickformat)
    fig.update_xaxes(showgrid=False)
    fig.update_yaxes(showgrid=True, zeroline=True)
    return fig


def render_plotly(fig: go.Figure) -> None:
    st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False})


def line_chart(
    df: pd.DataFrame,
    x: str,
    y,
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    markers: bool = True,
) -> go.Figure:
    fig = px.line(df, x=x, y=y, markers=markers)
    return _configure_layout(fig, title, yaxis_title)


def bar_chart(
    df: pd.DataFrame,
    x: str,
    y: str,
    color: Optional[str] = None,
    orientation: str = "v",
    title: Optional[str] = None,
    yaxis_title: Optional[str] = None,
    category_orders: Optional[Dict[str, List[str]]] = None,
    text_auto: bool = False,
) -> go.Figure:
    fig = px.bar(
        df,
        x=x,
        y=y,
        color=color,
        orientation=orientation,
        category_orders=category_orders,
        text_auto=text_auto,
    )
    fig = _configure_layout(fig, title, yaxis_title)
    if text_auto:
        fig.update_traces(textposition="outside", cliponaxis=False)
    return fig


def donut_chart(df: pd.DataFrame, names: str, values: str, title: Optional[str] = None) -> go.Figure:
    fig = px.pie(df, names=names, values=values, hole=0.55)
    fig.update_traces(textinfo="percent+label", sort=False)
    fig.update_layout(
        template=DEFAULT_TEMPLATE,
        colorway=DEFAULT_COLOR_SEQUENCE,
        title=title,
        showlegend=False,
        margin=dict(l=20, r=20, t=60, b=20),
    )
    return fig


def breakdown_bar(result: AggregateResult, value: str = "Count", title: Optional[str] = None) -> go.Figure:
    """Horizontal bars in the breakdown's own ranking, top entry first."""
    frame = result.to_frame()
    return bar_chart(
        frame,
        x=value,
        y="Label",
        orientation="h",
        title=title or result.name,
        category_orders={"Label": frame["Label"].tolist()},
        text_auto=True,
    )


def breakdown_donut(result: AggregateResult, value: str = "Count", title: Optional[str] = None) -> go.Figure:
    return donut_chart(result.to_frame(), names="Label", values=value, title=title or result.name)
