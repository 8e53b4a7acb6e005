"""
Weekly billing metrics with week-over-week deltas.
"""
import numpy as np
import pandas as pd
from typing import Any, Dict, List

from billing_trends.config import BillingCodes, DEFAULT_CODES
from billing_trends.data.cohorts import add_week_start
from billing_trends.data.client_history import qualifying_hours


WEEKLY_COLUMNS = [
    "week_start",
    "week_key",
    "agreed_revenue",
    "total_units",
    "total_hours",
    "session_count",
    "client_count",
    "avg_session_length",
    "avg_revenue_per_hour",
    "revenue_change_pct",
    "hours_change_pct",
]


def empty_weekly() -> pd.DataFrame:
    return pd.DataFrame({
        "week_start": pd.Series([], dtype="datetime64[ns]"),
        "week_key": pd.Series([], dtype="object"),
        "agreed_revenue": pd.Series([], dtype="float64"),
        "total_units": pd.Series([], dtype="float64"),
        "total_hours": pd.Series([], dtype="float64"),
        "session_count": pd.Series([], dtype="int64"),
        "client_count": pd.Series([], dtype="int64"),
        "avg_session_length": pd.Series([], dtype="float64"),
        "avg_revenue_per_hour": pd.Series([], dtype="float64"),
        "revenue_change_pct": pd.Series([], dtype="float64"),
        "hours_change_pct": pd.Series([], dtype="float64"),
    })


def pct_change_vs_previous(values: pd.Series) -> pd.Series:
    """
    Percent change against the previous row, rounded to one decimal.

    The first row, and any row whose previous value is not positive, is 0.
    """
    previous = values.shift(1)
    change = np.where(
        previous > 0,
        (values - previous) / previous * 100,
        0.0,
    )
    return pd.Series(change, index=values.index).round(1)


def compute_weekly_metrics(records: pd.DataFrame,
                           codes: BillingCodes = DEFAULT_CODES) -> pd.DataFrame:
    """
    Aggregate records into one row per Monday-start week.

    - agreed_revenue, total_units and session_count include every record
    - total_hours only counts records with a positive agreed charge
    - client_count is distinct named clients billed under the anchor code
    - averages are NaN when their denominator is zero

    Returns:
        DataFrame with WEEKLY_COLUMNS sorted by week_start
    """
    if len(records) == 0:
        return empty_weekly()

    df = add_week_start(records)
    df["qualifying_hours"] = qualifying_hours(df)
    df["anchor_client"] = df["client_name"].where(
        (df["procedure_code"] == codes.anchor_code) & (df["client_name"] != "")
    )

    weekly = df.groupby(["week_start", "week_key"], sort=True).agg(
        agreed_revenue=("agreed_charge", "sum"),
        total_units=("units_of_service", "sum"),
        total_hours=("qualifying_hours", "sum"),
        session_count=("agreed_charge", "size"),
        client_count=("anchor_client", "nunique"),
    ).reset_index()

    # Every week bucket has at least one session
    weekly["avg_session_length"] = weekly["total_hours"] / weekly["session_count"]
    weekly["avg_revenue_per_hour"] = np.where(
        weekly["total_hours"] > 0,
        weekly["agreed_revenue"] / weekly["total_hours"].where(weekly["total_hours"] > 0, 1),
        np.nan,
    )

    weekly["revenue_change_pct"] = pct_change_vs_previous(weekly["agreed_revenue"])
    weekly["hours_change_pct"] = pct_change_vs_previous(weekly["total_hours"])

    weekly["session_count"] = weekly["session_count"].astype("int64")
    weekly["client_count"] = weekly["client_count"].astype("int64")

    return weekly[WEEKLY_COLUMNS]


def latest_week_keys(weekly: pd.DataFrame, n: int = 2) -> List[str]:
    """The last n week keys, oldest first."""
    if len(weekly) == 0:
        return []
    return weekly["week_key"].tolist()[-n:]


def weekly_kpi_summary(weekly: pd.DataFrame) -> Dict[str, Any]:
    """
    Latest vs previous week figures for headline KPI cards.

    Missing weeks are reported as NaN so the caller can choose an empty state.
    """
    metrics = ["agreed_revenue", "total_hours", "client_count", "avg_revenue_per_hour"]
    summary: Dict[str, Any] = {
        "latest_week": None,
        "previous_week": None,
        "weeks": len(weekly),
    }

    latest = weekly.iloc[-1] if len(weekly) >= 1 else None
    previous = weekly.iloc[-2] if len(weekly) >= 2 else None

    if latest is not None:
        summary["latest_week"] = latest["week_key"]
    if previous is not None:
        summary["previous_week"] = previous["week_key"]

    for metric in metrics:
        latest_value = latest[metric] if latest is not None else np.nan
        previous_value = previous[metric] if previous is not None else np.nan
        summary[metric] = latest_value
        summary[f"{metric}_previous"] = previous_value

    summary["revenue_change_pct"] = latest["revenue_change_pct"] if latest is not None else np.nan
    summary["hours_change_pct"] = latest["hours_change_pct"] if latest is not None else np.nan

    return summary
