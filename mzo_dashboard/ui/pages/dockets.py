from __future__ import annotations

import streamlit as st

from mzo_dashboard.data.aggregation import docket_category, docket_kpis, docket_problem_breakdown, to_frame
from mzo_dashboard.data.filters import DocketFilters, filter_records
from mzo_dashboard.data.scope import scope_records
from mzo_dashboard.ui.components.charts import breakdown_bar, render_plotly
from mzo_dashboard.ui.components.kpi import render_kpi_cards
from mzo_dashboard.ui.components.tables import render_breakdown_table, render_table
from mzo_dashboard.ui.layout import render_report_header, sidebar_filters_ui
from mzo_dashboard.ui.pages.context import PageContext, load_datasets, office_directory

TABLE_COLUMNS = [
    "doc_no", "party_name", "con_id", "mob_no", "prob_type", "category",
    "description", "addr", "doc_crn_dt", "ccc_code",
]


def render(context: PageContext) -> None:
    loaded = load_datasets(context, context.service.dockets())
    if loaded is None:
        return
    (dockets,) = loaded

    scoped = scope_records(dockets, context.user)
    filters = sidebar_filters_ui(
        scoped,
        context.user,
        DocketFilters,
        [("prob_type", "Problem Type")],
        key_prefix="dockets",
        search_placeholder="Docket no, party name or consumer id",
    )
    filtered = filter_records(scoped, context.user, filters)

    render_report_header("Docket Monitoring", office_directory(context.service).header_label(context.user, filtered))
    render_kpi_cards(docket_kpis(filtered))

    if not filtered:
        st.info("No dockets found. Try adjusting your filters.")
        return

    problems = docket_problem_breakdown(filtered)
    render_plotly(breakdown_bar(problems, title="Dockets by Problem Type"))
    render_breakdown_table(problems)

    st.subheader("Dockets")
    frame = to_frame(filtered)
    frame["category"] = frame["prob_type"].map(docket_category)
    render_table(frame, columns=TABLE_COLUMNS, export_file_name="dockets.csv")
