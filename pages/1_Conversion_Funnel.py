"""
Assessment Conversion Funnel

Tracks clients from their assessment sessions toward the recurring service
and shows which leads need follow-up.
"""

from __future__ import annotations

from pathlib import Path
import sys

import streamlit as st

st.set_page_config(
    page_title="Conversion Funnel",
    page_icon="🧭",
    layout="wide",
)

sys.path.insert(0, str(Path(__file__).parent.parent))

from billing_trends.config import DEFAULT_CODES, config, configure_logging
from billing_trends.data.loader import load_client_annotations
from billing_trends.exports import export_conversion_leads_csv, export_funnel_summary_json
from billing_trends.metrics.funnel import build_funnel
from billing_trends.ui.charts import cohort_bar, funnel_chart
from billing_trends.ui.components import kpi_strip, load_records_or_stop, metric_table, source_sidebar
from billing_trends.ui.state import init_state

init_state()

LEAD_COLUMNS = {
    "client_name": "Client",
    "last_assessment_date": "Last Assessment",
    "days_since_last_assessment": "Days Since",
    "assessment_sessions": "Assessment Sessions",
    "not_viable_reason": "Reason",
    "notes": "Notes",
}

CONVERTED_COLUMNS = {
    "client_name": "Client",
    "last_assessment_date": "Last Assessment",
    "first_recurring_date": "Service Start",
    "days_to_conversion": "Days to Convert",
    "recurring_sessions": "Service Sessions",
}


def main():
    configure_logging()

    st.title("🧭 Assessment Conversion Funnel")
    st.caption(
        f"Assessment codes {', '.join(DEFAULT_CODES.assessment_codes)} → "
        f"service codes {', '.join(DEFAULT_CODES.recurring_codes)}"
    )

    source = source_sidebar()
    records = load_records_or_stop(source)

    with st.sidebar:
        as_of = st.date_input("As of", value=None, help="Reference date (defaults to today)")

    overrides, notes = load_client_annotations()
    result = build_funnel(records, overrides=overrides, notes=notes, now=as_of, codes=DEFAULT_CODES)

    if result.total_with_assessment == 0 and result.status_counts.get("stale", 0) == 0:
        st.info("No clients with assessment sessions in this export.")
        return

    kpi_strip(
        {
            "Clients in Funnel": result.total_with_assessment,
            "Converted": result.converted_total,
            "Conversion Rate": result.conversion_rate,
            "Avg Days to Convert": result.avg_days_to_conversion,
        },
        format_map={
            "Clients in Funnel": "count",
            "Converted": "count",
            "Conversion Rate": "percent",
            "Avg Days to Convert": "days",
        },
    )

    col1, col2 = st.columns(2)
    with col1:
        st.plotly_chart(
            funnel_chart(
                ["Assessed", "Still in pipeline", "Converted"],
                [result.total_with_assessment, result.pipeline_total, result.converted_total],
            ),
            use_container_width=True,
        )
    with col2:
        st.plotly_chart(cohort_bar(result.cohorts), use_container_width=True)

    st.caption(
        f"Active: up to {config.at_risk_after_days} days since last assessment · "
        f"At risk: {config.at_risk_after_days + 1}-{config.stale_after_days} days · "
        f"older leads are treated as stale ({result.status_counts.get('stale', 0)} hidden)"
    )

    st.divider()

    tab_active, tab_risk, tab_converted, tab_not_viable = st.tabs([
        f"Active Leads ({len(result.active_leads)})",
        f"At Risk ({len(result.at_risk)})",
        f"Recently Converted ({result.converted_total})",
        f"Not Viable ({len(result.not_viable)})",
    ])

    with tab_active:
        metric_table(result.active_leads, LEAD_COLUMNS, empty_message="No active leads")
    with tab_risk:
        metric_table(result.at_risk, LEAD_COLUMNS, empty_message="No at-risk leads")
    with tab_converted:
        metric_table(result.converted, CONVERTED_COLUMNS, empty_message="No conversions yet")
        if result.converted_total > len(result.converted):
            st.caption(f"Showing the {len(result.converted)} most recent conversions")
    with tab_not_viable:
        metric_table(result.not_viable, LEAD_COLUMNS, empty_message="No leads marked not viable")

    st.divider()
    st.markdown("### Export")
    st.caption(f"Override reasons and notes are read from {config.annotations_path}")

    c1, c2 = st.columns(2)
    with c1:
        csv_bytes, filename = export_conversion_leads_csv(result)
        st.download_button("Download conversion leads (CSV)", csv_bytes, file_name=filename, mime="text/csv")
    with c2:
        json_bytes, filename = export_funnel_summary_json(result)
        st.download_button("Download funnel summary (JSON)", json_bytes, file_name=filename,
                           mime="application/json")


if __name__ == "__main__":
    main()
