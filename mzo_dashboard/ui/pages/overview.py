from __future__ import annotations

import streamlit as st

from mzo_dashboard.data.aggregation import daily_trend, open_dockets_kpi, performance_kpis, to_frame
from mzo_dashboard.data.filters import HierarchyFilters, filter_records
from mzo_dashboard.data.scope import scope_records
from mzo_dashboard.ui.components.charts import line_chart, render_plotly
from mzo_dashboard.ui.components.kpi import render_kpi_cards
from mzo_dashboard.ui.components.tables import render_table
from mzo_dashboard.ui.layout import render_report_header, sidebar_filters_ui
from mzo_dashboard.ui.pages.context import PageContext, load_datasets, office_directory


def render(context: PageContext) -> None:
    loaded = load_datasets(context, context.service.performance(), context.service.dockets())
    if loaded is None:
        return
    metrics, dockets = loaded

    scoped = scope_records(metrics, context.user)
    filters = sidebar_filters_ui(scoped, context.user, HierarchyFilters, [], key_prefix="revenue")
    filtered = filter_records(scoped, context.user, filters)
    open_dockets = filter_records(dockets, context.user, HierarchyFilters(
        zone=filters.zone, region=filters.region, division=filters.division, ccc=filters.ccc,
    ))

    render_report_header("Revenue Performance", office_directory(context.service).header_label(context.user, filtered))
    render_kpi_cards(performance_kpis(filtered) + [open_dockets_kpi(open_dockets)], columns=5)

    trend = daily_trend(filtered)
    if trend.empty:
        st.info("No performance data for the current filters.")
        return

    col_left, col_right = st.columns(2)
    with col_left:
        render_plotly(line_chart(trend, x="date", y="revenue", title="Revenue (last 7 days)", yaxis_title="₹"))
    with col_right:
        render_plotly(line_chart(trend, x="date", y="orders", title="Orders (last 7 days)"))

    st.subheader("Daily Metrics")
    render_table(
        to_frame(filtered),
        column_config={
            "revenue": {"type": "rupees"},
            "efficiency": {"type": "percent", "decimals": 1},
        },
        export_file_name="performance.csv",
    )
