from __future__ import annotations

import streamlit as st

from mzo_dashboard.data.aggregation import (
    collection_kpis,
    collection_mode_breakdown,
    collection_rollups,
    rollup_frame,
    to_frame,
)
from mzo_dashboard.data.filters import CollectionFilters, filter_records
from mzo_dashboard.data.scope import scope_records
from mzo_dashboard.ui.components.charts import bar_chart, breakdown_donut, render_plotly
from mzo_dashboard.ui.components.kpi import render_kpi_cards
from mzo_dashboard.ui.components.tables import render_breakdown_table, render_table
from mzo_dashboard.ui.layout import render_report_header, sidebar_filters_ui
from mzo_dashboard.ui.pages.context import PageContext, load_datasets, office_directory

GRANULARITIES = ["FY", "Monthly", "Weekly", "Daily"]


def render(context: PageContext) -> None:
    loaded = load_datasets(context, context.service.collections())
    if loaded is None:
        return
    (transactions,) = loaded

    scoped = scope_records(transactions, context.user)
    filters = sidebar_filters_ui(
        scoped,
        context.user,
        CollectionFilters,
        [("mode", "Payment Mode")],
        key_prefix="collections",
        search_placeholder="Mode or CCC code",
    )
    filtered = filter_records(scoped, context.user, filters)

    render_report_header("Billing & Collection", office_directory(context.service).header_label(context.user, filtered))

    if not filtered:
        st.info("No collection data for the current filters.")
        return

    render_kpi_cards(collection_kpis(filtered))

    granularity = st.radio("Period", GRANULARITIES, horizontal=True, key="collections_granularity")
    periods = rollup_frame(collection_rollups(filtered).for_granularity(granularity))
    if periods.empty:
        st.warning("No transactions carry a valid payment date.")
    else:
        render_plotly(bar_chart(periods, x="key", y="amount", title=f"Collection by {granularity} period",
                                yaxis_title="Amount (₹)"))
        render_table(
            periods.rename(columns={"key": "Period", "count": "Count", "amount": "Amount"}),
            column_config={"Count": {"type": "number"}, "Amount": {"type": "rupees", "decimals": 2, "compact": True}},
            height=300,
            export_file_name=f"collection_{granularity.lower()}.csv",
        )

    modes = collection_mode_breakdown(filtered)
    col_left, col_right = st.columns(2)
    with col_left:
        render_plotly(breakdown_donut(modes, value="Amount", title="Amount by Payment Mode"))
    with col_right:
        render_breakdown_table(modes, average_label="Avg / Trans", show_amount=True)

    with st.expander("Transactions", expanded=False):
        render_table(
            to_frame(filtered),
            column_config={"amount_paid": {"type": "rupees"}},
            export_file_name="collections.csv",
        )
