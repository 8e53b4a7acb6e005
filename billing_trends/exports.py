"""
Export utilities for tables and funnel reports.
"""
import json
import numpy as np
import pandas as pd
from datetime import datetime
from typing import Optional

from billing_trends.metrics.funnel import FunnelResult, conversion_leads


def _iso_date(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).strftime("%Y-%m-%d")


def _finite_or_none(value):
    """JSON-safe number: NaN and inf become None."""
    if value is None:
        return None
    value = float(value)
    return value if np.isfinite(value) else None


def export_dataframe_csv(df: pd.DataFrame, filename: Optional[str] = None) -> tuple:
    """
    Export dataframe to CSV bytes. Dates are written as YYYY-MM-DD.

    Returns: (csv_bytes, filename)
    """
    if filename is None:
        filename = f"export_{datetime.now().strftime('%Y%m%d_%H%M%S')}.csv"

    csv_bytes = df.to_csv(index=False, date_format="%Y-%m-%d").encode("utf-8")

    return csv_bytes, filename


def conversion_leads_table(result: FunnelResult) -> pd.DataFrame:
    """Pipeline clients in the layout used for CRM import."""
    leads = conversion_leads(result)
    rows = []
    for _, lead in leads.iterrows():
        first_name, _, last_name = str(lead["client_name"]).partition(" ")
        reason = lead["not_viable_reason"]
        reason = reason if isinstance(reason, str) and reason else None
        rows.append({
            "First Name": first_name,
            "Last Name": last_name,
            "Last Assessment Date": _iso_date(lead["last_assessment_date"]),
            "Days Since Assessment": int(lead["days_since_last_assessment"]),
            "Assessment Sessions": int(lead["assessment_sessions"]),
            "Status": "Not Viable" if reason else "Active Conversion Lead",
            "Not Viable Reason": reason if reason else "Active Lead",
        })
    return pd.DataFrame(rows, columns=[
        "First Name", "Last Name", "Last Assessment Date", "Days Since Assessment",
        "Assessment Sessions", "Status", "Not Viable Reason",
    ])


def export_conversion_leads_csv(result: FunnelResult) -> tuple:
    """
    Export conversion leads to CSV.

    Returns: (csv_bytes, filename)
    """
    filename = f"conversion-leads-{result.as_of.strftime('%Y-%m-%d')}.csv"
    csv_bytes = conversion_leads_table(result).to_csv(index=False).encode("utf-8")
    return csv_bytes, filename


def funnel_summary_dict(result: FunnelResult) -> dict:
    """Summary statistics and cohorts as plain JSON-ready values."""
    return {
        "as_of": _iso_date(result.as_of),
        "total_with_assessment": result.total_with_assessment,
        "converted_total": result.converted_total,
        "conversion_rate": _finite_or_none(result.conversion_rate),
        "avg_days_to_conversion": _finite_or_none(result.avg_days_to_conversion),
        "status_counts": result.status_counts,
        "cohorts": [
            {
                "cohort": row["cohort"],
                "active": int(row["active"]),
                "at_risk": int(row["at_risk"]),
                "not_viable": int(row["not_viable"]),
            }
            for _, row in result.cohorts.iterrows()
        ],
    }


def export_funnel_summary_json(result: FunnelResult) -> tuple:
    """
    Export funnel summary to JSON.

    Returns: (json_bytes, filename)
    """
    filename = f"funnel-summary-{result.as_of.strftime('%Y-%m-%d')}.json"
    json_bytes = json.dumps(funnel_summary_dict(result), indent=2).encode("utf-8")
    return json_bytes, filename
