"""
Reusable helpers for rendering data tables with consistent configuration.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from mzo_dashboard.data.aggregation import AggregateResult
from mzo_dashboard.ui.components.formatting import format_number, format_percent, format_rupees


def render_table(
    df: pd.DataFrame,
    column_config: Optional[Dict[str, Dict[str, Any]]] = None,
    height: int = 400,
    show_index: bool = False,
    export_file_name: str = "export.csv",
    columns: Optional[List[str]] = None,
) -> None:
    if df.empty:
        st.info("No records to display.")
        return

    if columns:
        df = df[[c for c in columns if c in df.columns]]

    formatted_df = df.copy()
    if column_config:
        for column, config in column_config.items():
            if column not in formatted_df.columns:
                continue
            fmt_type = config.get("type")
            decimals = int(config.get("decimals", 0))
            if fmt_type == "rupees":
                formatted_df[column] = formatted_df[column].apply(
                    lambda v: format_rupees(v, decimals=decimals, compact=bool(config.get("compact", False)))
                )
            elif fmt_type == "percent":
                formatted_df[column] = formatted_df[column].apply(
                    lambda v: format_percent(v, decimals=int(config.get("decimals", 1)))
                )
            elif fmt_type == "number":
                formatted_df[column] = formatted_df[column].apply(
                    lambda v: format_number(v, decimals=decimals)
                )

    st.dataframe(
        formatted_df,
        use_container_width=True,
        height=height,
        hide_index=not show_index,
    )

    csv_bytes = df.to_csv(index=show_index).encode("utf-8")
    st.download_button(
        "Download CSV",
        data=csv_bytes,
        file_name=export_file_name,
        mime="text/csv",
        key=f"download_{export_file_name}",
    )


def render_breakdown_table(result: AggregateResult, average_label: str = "Average", show_amount: bool = False) -> None:
    frame = result.to_frame().rename(columns={"Label": result.name or "Label", "Average": average_label})
    config = {
        "Share": {"type": "percent", "decimals": 1},
        average_label: {"type": "number", "decimals": 1},
        "Count": {"type": "number"},
    }
    if show_amount:
        config["Amount"] = {"type": "rupees", "decimals": 2, "compact": True}
    else:
        frame = frame.drop(columns=["Amount"])
    file_stub = (result.name or "breakdown").lower().replace(" ", "_")
    render_table(frame, column_config=config, height=300, export_file_name=f"{file_stub}.csv")
