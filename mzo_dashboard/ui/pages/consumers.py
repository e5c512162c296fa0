from __future__ import annotations

import streamlit as st

from mzo_dashboard.data.aggregation import (
    consumer_category_breakdown,
    consumer_kpis,
    consumer_phase_breakdown,
    consumer_status_breakdown,
    to_frame,
)
from mzo_dashboard.data.filters import ConsumerFilters, filter_records
from mzo_dashboard.data.scope import scope_records
from mzo_dashboard.ui.components.charts import breakdown_bar, breakdown_donut, render_plotly
from mzo_dashboard.ui.components.kpi import render_kpi_cards
from mzo_dashboard.ui.components.tables import render_table
from mzo_dashboard.ui.layout import render_report_header, sidebar_filters_ui
from mzo_dashboard.ui.pages.context import PageContext, load_datasets, office_directory

FILTER_FIELDS = [
    ("conn_stat", "Connection Status"),
    ("base_class", "Base Class"),
    ("category", "Category"),
    ("conn_phase", "Phase"),
    ("type_of_meter", "Meter Type"),
    ("govt_stat", "Govt Status"),
]


def render(context: PageContext) -> None:
    loaded = load_datasets(context, context.service.consumers())
    if loaded is None:
        return
    (buckets,) = loaded

    scoped = scope_records(buckets, context.user)
    filters = sidebar_filters_ui(
        scoped,
        context.user,
        ConsumerFilters,
        FILTER_FIELDS,
        key_prefix="consumers",
        search_placeholder="Category or status",
    )
    filtered = filter_records(scoped, context.user, filters)

    render_report_header("Consumers Summary", office_directory(context.service).header_label(context.user, filtered))
    render_kpi_cards(consumer_kpis(filtered))

    if not filtered:
        st.info("No consumer data for the current filters.")
        return

    col_left, col_right = st.columns(2)
    with col_left:
        render_plotly(breakdown_donut(consumer_category_breakdown(filtered), title="Top Categories"))
    with col_right:
        render_plotly(breakdown_bar(consumer_status_breakdown(filtered), title="Connection Status"))

    render_plotly(breakdown_bar(consumer_phase_breakdown(filtered), title="Connection Phase"))

    st.subheader("Consumer Buckets")
    render_table(
        to_frame(filtered),
        column_config={
            "count": {"type": "number"},
            "load": {"type": "number", "decimals": 2},
            "sd_lakh": {"type": "number", "decimals": 2},
            "osd_lakh": {"type": "number", "decimals": 2},
        },
        export_file_name="consumers.csv",
    )
