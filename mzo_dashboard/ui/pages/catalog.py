from __future__ import annotations

from typing import Optional

import streamlit as st

from mzo_dashboard.data.catalog import ALL_CATEGORIES, CATEGORIES, available_reports
from mzo_dashboard.data.models import User


def render(user: User, office_label: str) -> Optional[str]:
    """Report picker. Returns the id of the report the user opened, if any."""
    st.title("Reports")
    st.caption(f"{user.full_name} · {office_label}")

    search = st.text_input("Search reports", key="catalog_search", placeholder="Search by name or description")
    category = st.radio(
        "Category",
        [ALL_CATEGORIES] + CATEGORIES,
        horizontal=True,
        key="catalog_category",
        label_visibility="collapsed",
    )

    reports = available_reports(user, search, category)
    if not reports:
        st.info("No reports found. Try changing your search term.")
        return None

    chosen = None
    for report in reports:
        with st.container(border=True):
            col_text, col_button = st.columns([5, 1])
            with col_text:
                st.markdown(f"**{report.name}**  \n{report.description}")
                st.caption(report.category)
            with col_button:
                if st.button("Open", key=f"open_{report.id}"):
                    chosen = report.id
    return chosen
