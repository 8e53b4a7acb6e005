"""
Billing export parsing: raw CSV text to a typed records frame.

The export is a flat sheet with one row per billed session. Parsing is
best-effort: a row whose service date cannot be read is dropped, and any
numeric or name column that is missing or unreadable falls back to 0 / "".
"""
import io
import logging
import warnings
from typing import Dict, List, Optional, Union

import pandas as pd

from billing_trends.config import SOURCE_COLUMNS
from billing_trends.data.schema import RECORD_COLUMNS, empty_records_frame

logger = logging.getLogger(__name__)

# Shortest plausible date string ("1/6/25" is rejected, "01/06/25" is kept)
MIN_DATE_LENGTH = 8

# Spreadsheet error cells (#REF!, #VALUE!, ...) contain this marker
ERROR_MARKER = "#"


def _clean_text(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip().strip('"').strip()


def parse_service_date(value, header_literal: str = SOURCE_COLUMNS["service_date"]) -> Optional[pd.Timestamp]:
    """
    Parse a service date cell to a midnight Timestamp.

    Accepts M/D/Y (2- or 4-digit year, 2-digit years are 20YY), hyphenated
    ISO-like dates, and anything else pandas can read. A time-of-day after
    the first space is ignored. Returns None for unusable cells.
    """
    text = _clean_text(value)
    if len(text) < MIN_DATE_LENGTH or text == header_literal or ERROR_MARKER in text:
        return None

    date_part = text.split(" ")[0]

    if "/" in date_part:
        parts = date_part.split("/")
        if len(parts) != 3:
            return None
        try:
            month, day, year = (int(p) for p in parts)
        except ValueError:
            return None
        if year < 100:
            year += 2000
        try:
            return pd.Timestamp(year=year, month=month, day=day)
        except ValueError:
            return None

    if "-" in date_part:
        parsed = pd.to_datetime(date_part, errors="coerce")
    else:
        parsed = pd.to_datetime(text, errors="coerce")

    if pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_localize(None)
    return parsed.normalize()


def parse_amount(value) -> float:
    """Parse a numeric cell; blanks and unreadable values become 0.0."""
    text = _clean_text(value).replace("$", "").replace(",", "")
    parsed = pd.to_numeric(text, errors="coerce")
    return 0.0 if pd.isna(parsed) else float(parsed)


def _column_or_default(raw: pd.DataFrame, header: str) -> pd.Series:
    if header in raw.columns:
        return raw[header]
    return pd.Series("", index=raw.index, dtype="object")


def normalize_billing_frame(raw: pd.DataFrame,
                            columns: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """
    Convert a raw export table (all values as strings) to a records frame.

    Args:
        raw: Table as read from the export, headers in the first row
        columns: Canonical column -> export header mapping (default SOURCE_COLUMNS)

    Returns:
        Records frame with RECORD_COLUMNS; rows with unusable dates removed
    """
    columns = columns or SOURCE_COLUMNS

    if len(raw) == 0:
        return empty_records_frame()

    raw = raw.copy()
    raw.columns = [_clean_text(c) for c in raw.columns]

    date_header = columns["service_date"]
    dates = _column_or_default(raw, date_header).map(
        lambda v: parse_service_date(v, header_literal=date_header)
    )

    first = _column_or_default(raw, columns["client_first_name"]).map(_clean_text)
    last = _column_or_default(raw, columns["client_last_name"]).map(_clean_text)

    df = pd.DataFrame({
        "service_date": pd.to_datetime(dates, errors="coerce"),
        "agreed_charge": _column_or_default(raw, columns["agreed_charge"]).map(parse_amount),
        "units_of_service": _column_or_default(raw, columns["units_of_service"]).map(parse_amount),
        "hours_worked": _column_or_default(raw, columns["hours_worked"]).map(parse_amount),
        "client_name": (first + " " + last).str.strip(),
        "procedure_code": _column_or_default(raw, columns["procedure_code"]).map(_clean_text),
    })

    kept = df["service_date"].notna()
    dropped = int((~kept).sum())
    if dropped:
        logger.debug(f"Dropped {dropped} rows with missing or unreadable {date_header}")

    df = df[kept].reset_index(drop=True)
    df["service_date"] = df["service_date"].astype("datetime64[ns]")
    logger.info(f"Parsed billing export: {len(df)} records kept, {dropped} rows dropped")

    return df[RECORD_COLUMNS]


def read_raw_export(source: Union[str, io.IOBase]) -> pd.DataFrame:
    """
    Read an export into a string-valued table.

    Quoted fields may contain the delimiter. Blank lines are skipped. Fields
    are matched to headers by position: a row with more fields than the
    header (e.g. a trailing delimiter) keeps its leading fields and loses
    only the extras, and the first column is never taken as an index.
    """
    long_rows = []

    def _keep_long_row(fields: List[str]) -> List[str]:
        # The parser drops fields past the header width
        long_rows.append(fields)
        return fields

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            raw = pd.read_csv(
                source,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                index_col=False,
                engine="python",
                on_bad_lines=_keep_long_row,
            )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()

    if long_rows:
        logger.debug(f"Truncated {len(long_rows)} rows with more fields than the header")
    return raw


def parse_billing_csv(text: str, columns: Optional[Dict[str, str]] = None) -> pd.DataFrame:
    """Parse raw CSV text (header row first) into a records frame."""
    if not text or not text.strip():
        return empty_records_frame()
    raw = read_raw_export(io.StringIO(text.strip()))
    return normalize_billing_frame(raw, columns=columns)
