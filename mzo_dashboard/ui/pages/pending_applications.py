from __future__ import annotations

import streamlit as st

from mzo_dashboard.data.aggregation import (
    applicant_type_breakdown,
    delay_range_breakdown,
    pending_application_kpis,
    to_frame,
)
from mzo_dashboard.data.filters import PendingApplicationFilters, filter_records
from mzo_dashboard.data.scope import scope_records
from mzo_dashboard.ui.components.charts import breakdown_bar, render_plotly
from mzo_dashboard.ui.components.kpi import render_kpi_cards
from mzo_dashboard.ui.components.tables import render_breakdown_table, render_table
from mzo_dashboard.ui.layout import render_report_header, sidebar_filters_ui
from mzo_dashboard.ui.pages.context import PageContext, load_datasets, office_directory

FILTER_FIELDS = [
    ("delay_range", "Delay Range"),
    ("pole_non_pole", "Pole / Non-Pole"),
    ("applicant_type", "Applicant Type"),
    ("scn_status", "SCN Status"),
    ("applied_phase", "Applied Phase"),
    ("no_of_poles", "No. of Poles"),
    ("load_watts", "Load (Watts)"),
]

TABLE_COLUMNS = [
    "appl_no", "name", "phone_no", "supply_office", "applicant_type", "delay_range",
    "delay_in_sc", "delay_in_wo", "delay_in_qtn", "scn_status", "wo_issued", "creation_date",
]


def render(context: PageContext) -> None:
    loaded = load_datasets(context, context.service.pending_applications())
    if loaded is None:
        return
    (applications,) = loaded

    scoped = scope_records(applications, context.user)
    filters = sidebar_filters_ui(
        scoped,
        context.user,
        PendingApplicationFilters,
        FILTER_FIELDS,
        key_prefix="nsc",
        search_placeholder="Appl no, name or phone",
    )
    filtered = filter_records(scoped, context.user, filters)

    render_report_header("Pending NSC Status", office_directory(context.service).header_label(context.user, filtered))
    render_kpi_cards(pending_application_kpis(filtered))

    if not filtered:
        st.info("No applications found. Try adjusting your filters.")
        return

    delays = delay_range_breakdown(filtered)
    applicants = applicant_type_breakdown(filtered)

    col_left, col_right = st.columns(2)
    with col_left:
        render_plotly(breakdown_bar(delays, title="Applications by Delay Range"))
        render_breakdown_table(delays, average_label="Avg SC Delay (days)")
    with col_right:
        render_plotly(breakdown_bar(applicants, value="Average", title="Avg SC Delay by Applicant Type"))
        render_breakdown_table(applicants, average_label="Avg SC Delay (days)")

    st.subheader("Applications")
    render_table(
        to_frame(filtered),
        columns=TABLE_COLUMNS,
        column_config={
            "delay_in_sc": {"type": "number", "decimals": 0},
            "delay_in_wo": {"type": "number", "decimals": 0},
            "delay_in_qtn": {"type": "number", "decimals": 0},
        },
        export_file_name="pending_nsc.csv",
    )
