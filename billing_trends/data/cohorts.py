"""
Calendar week bucketing and days-since-assessment cohort definitions.
"""
import pandas as pd
from datetime import date, datetime
from typing import List, Optional, Union

from billing_trends.config import COHORT_RANGES

DateLike = Union[date, datetime, pd.Timestamp, str]


# =============================================================================
# WEEK BUCKETS
# =============================================================================
# Weeks start on Monday. Every component buckets through week_start /
# add_week_start so that week keys agree across views.

def to_calendar_date(value: DateLike) -> pd.Timestamp:
    """Timestamp at midnight for any date-like value (time of day dropped)."""
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.normalize()


def week_start(value: DateLike) -> pd.Timestamp:
    """
    Monday on or before the given date.

    Monday is weekday 0, so Sunday (weekday 6) maps back six days.
    """
    ts = to_calendar_date(value)
    return ts - pd.Timedelta(days=ts.weekday())


def week_key(value: DateLike) -> str:
    """ISO (YYYY-MM-DD) key of the week containing the date."""
    return week_start(value).strftime("%Y-%m-%d")


def add_week_start(df: pd.DataFrame, date_col: str = "service_date") -> pd.DataFrame:
    """
    Return a copy with week_start (Timestamp) and week_key (str) columns.
    """
    df = df.copy()
    dates = pd.to_datetime(df[date_col]).dt.normalize()
    df["week_start"] = dates - pd.to_timedelta(dates.dt.weekday, unit="D")
    df["week_key"] = df["week_start"].dt.strftime("%Y-%m-%d")
    return df


def get_available_weeks(df: pd.DataFrame, date_col: str = "service_date") -> List[str]:
    """Sorted list of week keys present in a records frame."""
    if date_col not in df.columns or len(df) == 0:
        return []
    return sorted(add_week_start(df, date_col)["week_key"].unique().tolist())


# =============================================================================
# DAY COUNTS
# =============================================================================

def days_between(later: Optional[DateLike], earlier: Optional[DateLike]) -> Optional[int]:
    """Whole calendar days from earlier to later (negative if reversed)."""
    if later is None or earlier is None or pd.isna(later) or pd.isna(earlier):
        return None
    return int((to_calendar_date(later) - to_calendar_date(earlier)).days)


# =============================================================================
# ASSESSMENT COHORTS
# =============================================================================

COHORT_LABELS = [label for label, _, _ in COHORT_RANGES]


def cohort_label(days_since_assessment: int) -> str:
    """
    Cohort for a days-since-last-assessment value.

    Values below the first range fall in the first cohort and values past
    the last range fall in the last one, so every pipeline client is counted.
    """
    for label, _, upper in COHORT_RANGES:
        if days_since_assessment <= upper:
            return label
    return COHORT_LABELS[-1]
