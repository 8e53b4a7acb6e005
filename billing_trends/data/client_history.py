"""
Per-client service histories folded from the records frame.

A history tracks two categories of procedure codes: assessment codes (the
initial evaluation) and recurring codes (the ongoing service a client may
convert to). The same fold serves the conversion funnel, which passes the
full code sets, and the anchor-code views, which pass only the anchor code
as the recurring set.
"""
import pandas as pd
from typing import Iterable

from billing_trends.data.schema import RECORD_COLUMNS


HISTORY_COLUMNS = [
    "client_name",
    "first_assessment_date",
    "last_assessment_date",
    "first_recurring_date",
    "last_recurring_date",
    "assessment_sessions",
    "recurring_sessions",
    "total_revenue",
    "total_hours",
    "assessment_codes",
]


def empty_histories() -> pd.DataFrame:
    return pd.DataFrame({
        "client_name": pd.Series([], dtype="object"),
        "first_assessment_date": pd.Series([], dtype="datetime64[ns]"),
        "last_assessment_date": pd.Series([], dtype="datetime64[ns]"),
        "first_recurring_date": pd.Series([], dtype="datetime64[ns]"),
        "last_recurring_date": pd.Series([], dtype="datetime64[ns]"),
        "assessment_sessions": pd.Series([], dtype="int64"),
        "recurring_sessions": pd.Series([], dtype="int64"),
        "total_revenue": pd.Series([], dtype="float64"),
        "total_hours": pd.Series([], dtype="float64"),
        "assessment_codes": pd.Series([], dtype="object"),
    })


def qualifying_hours(df: pd.DataFrame) -> pd.Series:
    """Hours that count toward billable totals (rows with a positive agreed charge)."""
    return df["hours_worked"].where(df["agreed_charge"] > 0, 0.0)


def build_client_histories(records: pd.DataFrame,
                           assessment_codes: Iterable[str],
                           recurring_codes: Iterable[str]) -> pd.DataFrame:
    """
    Fold records into one history row per client.

    Rows with an empty client name, or a procedure code in neither set, are
    ignored. The two code sets are expected to be disjoint.

    Args:
        records: Records frame (see data.schema.RECORD_COLUMNS)
        assessment_codes: Codes for the assessment category
        recurring_codes: Codes for the recurring-service category

    Returns:
        DataFrame with HISTORY_COLUMNS, sorted by client_name
    """
    assessment = set(assessment_codes)
    recurring = set(recurring_codes)

    if len(records) == 0:
        return empty_histories()

    mask = (records["client_name"] != "") & records["procedure_code"].isin(assessment | recurring)
    df = records.loc[mask, RECORD_COLUMNS].copy()
    if len(df) == 0:
        return empty_histories()

    is_assessment = df["procedure_code"].isin(assessment)
    is_recurring = df["procedure_code"].isin(recurring)

    df["assessment_date"] = df["service_date"].where(is_assessment)
    df["recurring_date"] = df["service_date"].where(is_recurring)
    df["is_assessment"] = is_assessment.astype(int)
    df["is_recurring"] = is_recurring.astype(int)
    df["qualifying_hours"] = qualifying_hours(df)

    histories = df.groupby("client_name", sort=True).agg(
        first_assessment_date=("assessment_date", "min"),
        last_assessment_date=("assessment_date", "max"),
        first_recurring_date=("recurring_date", "min"),
        last_recurring_date=("recurring_date", "max"),
        assessment_sessions=("is_assessment", "sum"),
        recurring_sessions=("is_recurring", "sum"),
        total_revenue=("agreed_charge", "sum"),
        total_hours=("qualifying_hours", "sum"),
    )

    # Distinct assessment codes in the order they first appear
    codes = (
        df[is_assessment]
        .groupby("client_name")["procedure_code"]
        .agg(lambda s: tuple(pd.unique(s)))
    )
    histories["assessment_codes"] = pd.Series(
        [codes[name] if name in codes.index else () for name in histories.index],
        index=histories.index,
        dtype="object",
    )

    return histories.reset_index()[HISTORY_COLUMNS]


def build_anchor_histories(records: pd.DataFrame, anchor_code: str) -> pd.DataFrame:
    """Histories restricted to the anchor code (treated as the recurring category)."""
    return build_client_histories(records, assessment_codes=(), recurring_codes=(anchor_code,))
