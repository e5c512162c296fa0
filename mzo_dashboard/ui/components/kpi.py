from __future__ import annotations

from typing import Optional, Sequence

import streamlit as st

from mzo_dashboard.data.aggregation import Kpi
from mzo_dashboard.ui.components.formatting import format_percent


def _format_delta(kpi: Kpi) -> Optional[str]:
    if not kpi.trend:
        return None
    return format_percent(kpi.trend)


def render_kpi_cards(kpis: Sequence[Kpi], columns: int = 4) -> None:
    """
    Render KPI cards in a responsive grid using Streamlit columns.
    """
    kpis = list(kpis)
    if not kpis:
        st.info("No KPIs available for the current filters.")
        return

    columns = max(columns, 1)
    for idx in range(0, len(kpis), columns):
        row = kpis[idx: idx + columns]
        cols = st.columns(len(row))
        for col, kpi in zip(cols, row):
            with col:
                st.metric(label=kpi.label, value=kpi.value, delta=_format_delta(kpi))
