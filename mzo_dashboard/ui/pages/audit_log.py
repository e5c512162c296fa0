from __future__ import annotations

import streamlit as st

from mzo_dashboard.data.aggregation import audit_kpis, audit_status_breakdown, to_frame
from mzo_dashboard.data.filters import AuditLogFilters, filter_records
from mzo_dashboard.ui.components.charts import breakdown_donut, render_plotly
from mzo_dashboard.ui.components.kpi import render_kpi_cards
from mzo_dashboard.ui.components.tables import render_breakdown_table, render_table
from mzo_dashboard.ui.layout import render_report_header, sidebar_filters_ui
from mzo_dashboard.ui.pages.context import PageContext, load_datasets, office_directory

TABLE_COLUMNS = ["timestamp", "user_id", "action", "office", "status", "details"]


def render(context: PageContext) -> None:
    loaded = load_datasets(context, context.service.audit_log())
    if loaded is None:
        return
    (entries,) = loaded

    filters = sidebar_filters_ui(
        entries,
        context.user,
        AuditLogFilters,
        [("action", "Action"), ("status", "Status")],
        key_prefix="audit",
        search_placeholder="User, action, office or details",
    )
    filtered = filter_records(entries, context.user, filters)

    render_report_header("System Audit Log", office_directory(context.service).header_label(context.user))
    render_kpi_cards(audit_kpis(filtered))

    if not filtered:
        st.info("No activity recorded. System logs will appear here as they occur.")
        return

    statuses = audit_status_breakdown(filtered)
    col_left, col_right = st.columns(2)
    with col_left:
        render_plotly(breakdown_donut(statuses, title="Events by Status"))
    with col_right:
        render_breakdown_table(statuses)

    st.subheader("Activity")
    render_table(to_frame(filtered), columns=TABLE_COLUMNS, export_file_name="audit_log.csv")
