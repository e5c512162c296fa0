"""
Layout helpers for the Streamlit application (page setup, report header, sidebar filters).
"""

from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional, Sequence, Tuple, Type

import pandas as pd
import streamlit as st

from mzo_dashboard.data.filters import DateRange, HierarchyFilters, distinct_values
from mzo_dashboard.data.models import Role, User, parse_text

DATE_PRESETS = ["All", "7D", "30D", "90D", "Custom"]
PRESET_DAYS = {"7D": 7, "30D": 30, "90D": 90}

# (role, filter attribute, record attribute, label)
HIERARCHY_LEVELS = [
    (Role.ZONE, "zone", "zone_code", "Zone"),
    (Role.REGION, "region", "region_code", "Region"),
    (Role.DIVISION, "division", "division_code", "Division"),
    (Role.CCC, "ccc", "ccc_code", "CCC"),
]


def setup_page() -> None:
    """Set Streamlit page configuration."""
    st.set_page_config(
        page_title="MZO Reports",
        layout="wide",
        page_icon=":zap:",
    )


def render_report_header(title: str, office_label: str) -> None:
    st.title(title)
    st.caption(f":round_pushpin: {office_label.upper()}")


def _multiselect_with_counts(
    label: str,
    key: str,
    options: List[str],
    values: Sequence[str],
) -> List[str]:
    if not options:
        return []
    counts = pd.Series(list(values), dtype=str).value_counts().to_dict()
    selected = st.sidebar.multiselect(
        label=label,
        options=options,
        key=key,
        format_func=lambda v: f"{v} ({int(counts.get(v, 0))})",
        placeholder="All",
    )
    # Everything ticked is the same as nothing ticked.
    if selected and len(selected) == len(options):
        return []
    return selected


def _derive_date_range(dates: Sequence[str], key_prefix: str) -> Optional[DateRange]:
    parsed = pd.to_datetime(pd.Series(list(dates), dtype=str), errors="coerce").dropna()
    if parsed.empty:
        return None

    start_default = parsed.min().date()
    end_default = parsed.max().date()

    preset = st.sidebar.selectbox(
        "Date Preset",
        DATE_PRESETS,
        index=0,
        key=f"{key_prefix}_date_preset",
        help="Choose a preset or select Custom to pick the range.",
    )
    if preset == "All":
        return None

    if preset == "Custom":
        col_start, col_end = st.sidebar.columns(2)
        with col_start:
            start = st.date_input("Start", value=start_default, key=f"{key_prefix}_date_start")
        with col_end:
            end = st.date_input("End", value=end_default, key=f"{key_prefix}_date_end")
    else:
        end = end_default
        start = end - dt.timedelta(days=PRESET_DAYS[preset] - 1)

    if start > end:
        st.sidebar.warning("Start date must be before or equal to End date. Adjusting range.")
        start, end = end, start

    return DateRange(start=start.isoformat(), end=end.isoformat())


def sidebar_filters_ui(
    records: Sequence[Any],
    user: User,
    filter_cls: Type[HierarchyFilters],
    fields: Sequence[Tuple[str, str]],
    key_prefix: str,
    search_placeholder: str = "",
) -> HierarchyFilters:
    """
    Render the sidebar filter controls for one report and return the filter dataclass.

    Hierarchy multi-selects are offered only for levels below the user's own
    role. `fields` lists the report-specific (attribute, label) pairs.
    """
    st.sidebar.header("Filters")
    values = {}

    for role, filter_attr, record_attr, label in HIERARCHY_LEVELS:
        if role.level >= user.role.level:
            continue
        if records and record_attr not in getattr(records[0], "HIERARCHY_FIELDS", ()):
            continue
        column = [parse_text(getattr(r, record_attr)) for r in records]
        values[filter_attr] = _multiselect_with_counts(
            label,
            key=f"{key_prefix}_{filter_attr}",
            options=distinct_values(records, record_attr),
            values=column,
        )

    for attr, label in fields:
        column = [parse_text(getattr(r, attr)) for r in records]
        values[attr] = _multiselect_with_counts(
            label,
            key=f"{key_prefix}_{attr}",
            options=distinct_values(records, attr),
            values=column,
        )

    search_query = ""
    if records and getattr(records[0], "SEARCH_FIELDS", ()):
        search_query = st.sidebar.text_input(
            "Search",
            key=f"{key_prefix}_search",
            placeholder=search_placeholder,
        ).strip()

    date_range = _derive_date_range([getattr(r, "date", "") for r in records], key_prefix)

    if st.sidebar.button("Reset Filters", key=f"{key_prefix}_reset", type="primary"):
        _clear_state_prefixes([f"{key_prefix}_"])
        st.rerun()

    return filter_cls(search_query=search_query, date_range=date_range, **values)


def _clear_state_prefixes(prefixes: List[str]) -> None:
    for prefix in prefixes:
        for key in list(st.session_state.keys()):
            if key.startswith(prefix):
                del st.session_state[key]
