"""
Anchor-code client views: latest-week client ranking and week-over-week
hour changes per client.
"""
import numpy as np
import pandas as pd

from billing_trends.config import BillingCodes, DEFAULT_CODES, config
from billing_trends.data.cohorts import add_week_start
from billing_trends.data.client_history import build_anchor_histories
from billing_trends.metrics.weekly import compute_weekly_metrics, latest_week_keys


CHANGE_COLUMNS = [
    "client_name",
    "latest_hours",
    "previous_hours",
    "change",
    "percent_change",
    "is_new",
    "is_gone",
]

LATEST_CLIENT_COLUMNS = ["client_name", "total_revenue", "total_hours", "session_count"]


def _records_in_week(records: pd.DataFrame, week: str) -> pd.DataFrame:
    if len(records) == 0:
        return records
    df = add_week_start(records)
    return df[df["week_key"] == week]


def anchor_hours_by_client(records: pd.DataFrame, week: str, anchor_code: str) -> pd.Series:
    """Qualifying anchor-code hours per named client for one week."""
    histories = build_anchor_histories(_records_in_week(records, week), anchor_code)
    return histories.set_index("client_name")["total_hours"]


def compute_client_week_changes(records: pd.DataFrame,
                                latest_week: str,
                                previous_week: str,
                                anchor_code: str = DEFAULT_CODES.anchor_code,
                                threshold_pct: float = config.change_threshold_pct) -> pd.DataFrame:
    """
    Per-client change in anchor-code hours between two weeks.

    A client with no hours in either week is left out. percent_change is
    relative to the previous week, or 100 for a client with no previous
    hours. Only clients past the threshold, new, or gone are returned,
    largest absolute change first.
    """
    latest = anchor_hours_by_client(records, latest_week, anchor_code)
    previous = anchor_hours_by_client(records, previous_week, anchor_code)

    df = pd.concat(
        [latest.rename("latest_hours"), previous.rename("previous_hours")],
        axis=1,
    ).fillna(0.0)
    df.index.name = "client_name"
    df = df.reset_index()

    df = df[(df["latest_hours"] != 0) | (df["previous_hours"] != 0)].copy()
    if len(df) == 0:
        return pd.DataFrame(columns=CHANGE_COLUMNS)

    df["change"] = df["latest_hours"] - df["previous_hours"]
    df["percent_change"] = np.where(
        df["previous_hours"] > 0,
        df["change"] / df["previous_hours"].where(df["previous_hours"] > 0, 1) * 100,
        np.where(df["latest_hours"] > 0, 100.0, 0.0),
    )
    df["is_new"] = (df["previous_hours"] == 0) & (df["latest_hours"] > 0)
    df["is_gone"] = (df["previous_hours"] > 0) & (df["latest_hours"] == 0)

    df["abs_change"] = df["percent_change"].abs()
    flagged = df[(df["abs_change"] >= threshold_pct) | df["is_new"] | df["is_gone"]]
    flagged = flagged.sort_values(["abs_change", "client_name"], ascending=[False, True])

    return flagged[CHANGE_COLUMNS].reset_index(drop=True)


def detect_latest_client_changes(records: pd.DataFrame,
                                 codes: BillingCodes = DEFAULT_CODES,
                                 threshold_pct: float = config.change_threshold_pct) -> pd.DataFrame:
    """
    Client changes between the two most recent weeks in the data.

    Weeks come from all records, not only anchor-code ones. With fewer than
    two weeks the result is empty.
    """
    weeks = latest_week_keys(compute_weekly_metrics(records, codes), n=2)
    if len(weeks) < 2:
        return pd.DataFrame(columns=CHANGE_COLUMNS)
    previous_week, latest_week = weeks
    return compute_client_week_changes(
        records, latest_week, previous_week,
        anchor_code=codes.anchor_code,
        threshold_pct=threshold_pct,
    )


def compute_latest_week_clients(records: pd.DataFrame,
                                codes: BillingCodes = DEFAULT_CODES) -> pd.DataFrame:
    """Anchor-code clients in the most recent week, highest revenue first."""
    weeks = latest_week_keys(compute_weekly_metrics(records, codes), n=1)
    if not weeks:
        return pd.DataFrame(columns=LATEST_CLIENT_COLUMNS)

    histories = build_anchor_histories(_records_in_week(records, weeks[0]), codes.anchor_code)
    if len(histories) == 0:
        return pd.DataFrame(columns=LATEST_CLIENT_COLUMNS)

    histories = histories.rename(columns={"recurring_sessions": "session_count"})
    histories = histories.sort_values(["total_revenue", "client_name"], ascending=[False, True])
    return histories[LATEST_CLIENT_COLUMNS].reset_index(drop=True)
