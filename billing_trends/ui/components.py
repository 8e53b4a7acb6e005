"""
Reusable UI components and blocks.
"""
import streamlit as st
import pandas as pd
from typing import Optional, Dict, Any

from billing_trends.config import config
from billing_trends.data.loader import get_data_status, load_billing_records
from billing_trends.ui.formatting import kpi_value, format_metric_df
from billing_trends.ui.state import get_state, set_state


def kpi_strip(metrics: Dict[str, Any],
              format_map: Optional[Dict[str, str]] = None,
              deltas: Optional[Dict[str, Optional[str]]] = None):
    """
    Render horizontal strip of KPI cards.

    Args:
        metrics: Dict of {label: value}
        format_map: Dict of {label: format_type} where format_type is
                    'currency', 'hours', 'percent', 'rate', 'count', 'days'
        deltas: Dict of {label: delta label} shown under the value
    """
    format_map = format_map or {}
    deltas = deltas or {}

    cols = st.columns(len(metrics))
    for i, (label, value) in enumerate(metrics.items()):
        with cols[i]:
            st.metric(
                label=label,
                value=kpi_value(value, format_map.get(label, "currency")),
                delta=deltas.get(label),
            )


def empty_state(message: str, icon: str = "📭"):
    """
    Render empty state.
    """
    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown(f"### {icon}")
        st.markdown(f"**{message}**")


def metric_table(df: pd.DataFrame, columns: Dict[str, str], empty_message: str = "No rows"):
    """Render a formatted table with display column names."""
    if len(df) == 0:
        st.info(empty_message)
        return
    keep = [c for c in columns if c in df.columns]
    display = format_metric_df(df[keep]).rename(columns=columns)
    st.dataframe(display, use_container_width=True, hide_index=True)


def source_sidebar() -> Optional[str]:
    """Sidebar controls for the export source; returns the chosen source."""
    status = get_data_status()
    with st.sidebar:
        st.header("Data Source")
        source = st.text_input(
            "Billing export (path or URL)",
            value=get_state("billing_source") or "",
            help=f"Leave blank to use BILLING_CSV_URL or the newest CSV in {config.raw_dir}",
        )
        set_state("billing_source", source or None)

        if status["remote_url"]:
            st.caption("Default: remote export (BILLING_CSV_URL)")
        elif status["raw_export"]:
            st.caption(f"Default: {status['raw_export']}")

        if st.button("Reload data"):
            load_billing_records.clear()

    return get_state("billing_source")


def load_records_or_stop(source: Optional[str]) -> pd.DataFrame:
    """Load records for a page, rendering an error or empty state and stopping when unavailable."""
    with st.spinner("Loading billing data..."):
        try:
            records = load_billing_records(source)
        except Exception as e:
            st.error(f"Error loading billing export: {e}")
            st.stop()

    if len(records) == 0:
        empty_state("No valid billing records found. Check the export source.")
        st.stop()

    return records
