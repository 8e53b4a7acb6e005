"""
Weekly Billing Trends

Main entry point for Streamlit app.
"""
import streamlit as st
from pathlib import Path

# Page config must be first Streamlit command
st.set_page_config(
    page_title="Weekly Billing Trends",
    page_icon="📊",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Add package root to path
import sys
sys.path.insert(0, str(Path(__file__).parent))

from billing_trends.config import DEFAULT_CODES, configure_logging
from billing_trends.data.schema import record_date_span
from billing_trends.exports import export_dataframe_csv
from billing_trends.metrics.client_changes import (
    compute_latest_week_clients,
    detect_latest_client_changes,
)
from billing_trends.metrics.weekly import compute_weekly_metrics, weekly_kpi_summary
from billing_trends.ui.charts import WEEKLY_METRICS, weekly_trend
from billing_trends.ui.components import (
    kpi_strip,
    load_records_or_stop,
    metric_table,
    source_sidebar,
)
from billing_trends.ui.formatting import fmt_date, kpi_delta_pct
from billing_trends.ui.state import init_state, get_state, set_state


WEEKLY_TABLE_COLUMNS = {
    "week_start": "Week of",
    "agreed_revenue": "Agreed Revenue",
    "total_hours": "Billable Hours",
    "session_count": "Sessions",
    "client_count": "Clients",
    "avg_session_length": "Avg Session",
    "avg_revenue_per_hour": "Revenue / Hour",
    "revenue_change_pct": "Revenue Δ",
    "hours_change_pct": "Hours Δ",
}

CHANGE_TABLE_COLUMNS = {
    "client_name": "Client",
    "previous_hours": "Previous Week",
    "latest_hours": "Latest Week",
    "percent_change": "Change",
}


def main():
    """Main app entry point."""
    configure_logging()
    init_state()

    st.title("Weekly Billing Trends")
    st.caption(f"Agreed revenue, billable hours and {DEFAULT_CODES.anchor_code} client activity by week")

    source = source_sidebar()
    records = load_records_or_stop(source)

    weekly = compute_weekly_metrics(records, DEFAULT_CODES)
    summary = weekly_kpi_summary(weekly)

    start, end = record_date_span(records)
    st.caption(
        f"{len(records):,} sessions from {fmt_date(start)} to {fmt_date(end)} "
        f"· latest week of {fmt_date(summary['latest_week'])}"
    )

    # Headline KPIs
    kpi_strip(
        {
            "Agreed Revenue": summary["agreed_revenue"],
            "Billable Hours": summary["total_hours"],
            "Active Clients": summary["client_count"],
            "Revenue / Hour": summary["avg_revenue_per_hour"],
        },
        format_map={
            "Agreed Revenue": "currency",
            "Billable Hours": "hours",
            "Active Clients": "count",
            "Revenue / Hour": "rate",
        },
        deltas={
            "Agreed Revenue": kpi_delta_pct(summary["revenue_change_pct"]),
            "Billable Hours": kpi_delta_pct(summary["hours_change_pct"]),
        },
    )

    st.markdown("---")

    # Trend chart
    metric_keys = list(WEEKLY_METRICS.keys())
    selected = st.radio(
        "Metric",
        metric_keys,
        index=metric_keys.index(get_state("selected_metric")),
        format_func=lambda key: WEEKLY_METRICS[key][0],
        horizontal=True,
    )
    set_state("selected_metric", selected)
    st.plotly_chart(weekly_trend(weekly, selected), use_container_width=True)

    with st.expander("Weekly detail", expanded=False):
        metric_table(weekly, WEEKLY_TABLE_COLUMNS)
        csv_bytes, filename = export_dataframe_csv(weekly, "weekly_metrics.csv")
        st.download_button("Download CSV", csv_bytes, file_name=filename, mime="text/csv")

    st.markdown("---")

    col1, col2 = st.columns(2)

    with col1:
        st.markdown(f"### Top {DEFAULT_CODES.anchor_code} Clients This Week")
        metric_table(
            compute_latest_week_clients(records, DEFAULT_CODES),
            {
                "client_name": "Client",
                "total_revenue": "Revenue",
                "total_hours": "Hours",
                "session_count": "Sessions",
            },
            empty_message=f"No {DEFAULT_CODES.anchor_code} sessions in the latest week",
        )

    with col2:
        st.markdown("### Client Hours: Week over Week")
        changes = detect_latest_client_changes(records, DEFAULT_CODES)
        if len(changes) > 0:
            changes = changes.copy()
            changes["client_name"] = changes.apply(
                lambda r: f"{r['client_name']} (new)" if r["is_new"]
                else f"{r['client_name']} (stopped)" if r["is_gone"]
                else r["client_name"],
                axis=1,
            )
        metric_table(
            changes,
            CHANGE_TABLE_COLUMNS,
            empty_message="No significant client changes (needs two weeks of data)",
        )

    st.page_link("pages/1_Conversion_Funnel.py", label="Assessment Conversion Funnel", icon="🧭")


if __name__ == "__main__":
    main()
