"""
Consistent number and display formatting.
"""
import pandas as pd
from typing import Optional, Union

from billing_trends.config import NOT_VIABLE_REASONS


# =============================================================================
# NUMBER FORMATTERS
# =============================================================================

def _missing(value) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value)) or value in (float("inf"), float("-inf"))
    except (TypeError, ValueError):
        return False


def fmt_currency(value: Union[float, int, None], decimals: int = 0) -> str:
    """Format as currency: $1,234 or $1,234.56"""
    if _missing(value):
        return "—"
    if decimals == 0:
        return f"${value:,.0f}"
    return f"${value:,.{decimals}f}"


def fmt_hours(value: Union[float, int, None]) -> str:
    """Format hours: 1,234.5h"""
    if _missing(value):
        return "—"
    return f"{value:,.1f}h"


def fmt_rate(value: Union[float, int, None]) -> str:
    """Format hourly rate: $123/hr"""
    if _missing(value):
        return "—"
    return f"${value:,.0f}/hr"


def fmt_percent(value: Union[float, int, None], decimals: int = 1) -> str:
    """Format percentage: 12.3%"""
    if _missing(value):
        return "—"
    return f"{value:,.{decimals}f}%"


def fmt_count(value: Union[float, int, None]) -> str:
    """Format count: 1,234"""
    if _missing(value):
        return "—"
    return f"{int(value):,}"


def fmt_days(value: Union[float, int, None]) -> str:
    """Format a day count: 12.5 days"""
    if _missing(value):
        return "—"
    return f"{value:,.1f} days"


def fmt_variance(value: Union[float, int, None], is_percent: bool = False) -> str:
    """Format variance with +/- sign."""
    if _missing(value):
        return "—"

    sign = "+" if value > 0 else ""
    if is_percent:
        return f"{sign}{value:,.1f}%"
    return f"{sign}{value:,.1f}"


def fmt_date(value) -> str:
    """Format a calendar date: Jan 6, 2025"""
    if _missing(value):
        return "—"
    ts = pd.Timestamp(value)
    return f"{ts.strftime('%b')} {ts.day}, {ts.year}"


def fmt_reason(reason) -> str:
    """Display label for a not-viable reason code."""
    if _missing(reason) or not reason:
        return ""
    return NOT_VIABLE_REASONS.get(reason, str(reason))


# =============================================================================
# DATAFRAME FORMATTERS
# =============================================================================

def format_metric_df(df: pd.DataFrame) -> pd.DataFrame:
    """
    Format a metrics dataframe for display.

    Applies appropriate formatting to known column types.
    """
    df = df.copy()

    currency_cols = ["agreed_revenue", "total_revenue", "agreed_charge"]
    hours_cols = [
        "total_hours", "avg_session_length", "latest_hours",
        "previous_hours", "hours_worked",
    ]
    rate_cols = ["avg_revenue_per_hour"]
    percent_cols = ["revenue_change_pct", "hours_change_pct", "percent_change"]
    count_cols = [
        "session_count", "client_count", "assessment_sessions",
        "recurring_sessions", "total_units",
    ]
    date_cols = [
        "week_start", "first_assessment_date", "last_assessment_date",
        "first_recurring_date", "last_recurring_date",
    ]

    for col in df.columns:
        if col in currency_cols:
            df[col] = df[col].apply(fmt_currency)
        elif col in hours_cols:
            df[col] = df[col].apply(fmt_hours)
        elif col in rate_cols:
            df[col] = df[col].apply(fmt_rate)
        elif col in percent_cols:
            df[col] = df[col].apply(fmt_variance, is_percent=True)
        elif col in count_cols:
            df[col] = df[col].apply(fmt_count)
        elif col in date_cols:
            df[col] = df[col].apply(fmt_date)
        elif col == "not_viable_reason":
            df[col] = df[col].apply(fmt_reason)

    return df


# =============================================================================
# KPI CARD HELPERS
# =============================================================================

def kpi_value(value: Union[float, int, None], format_type: str = "currency") -> str:
    """
    Format a KPI value for card display.

    Args:
        value: The value to format
        format_type: One of 'currency', 'hours', 'rate', 'percent', 'count', 'days'
    """
    if format_type == "currency":
        return fmt_currency(value)
    elif format_type == "hours":
        return fmt_hours(value)
    elif format_type == "rate":
        return fmt_rate(value)
    elif format_type == "percent":
        return fmt_percent(value)
    elif format_type == "count":
        return fmt_count(value)
    elif format_type == "days":
        return fmt_days(value)
    else:
        return str(value) if value is not None else "—"


def kpi_delta_pct(change_pct) -> Optional[str]:
    """Week-over-week delta label for st.metric, e.g. '+12.5% vs last week'."""
    if _missing(change_pct):
        return None
    sign = "+" if change_pct > 0 else ""
    return f"{sign}{change_pct:.1f}% vs last week"
