"""
Record schema, header validation, and typed record frames.
"""
import pandas as pd
from dataclasses import dataclass, asdict
from datetime import date
from typing import Dict, Iterable, Mapping, Sequence, Tuple, Union

from billing_trends.config import REQUIRED_HEADERS, OPTIONAL_HEADERS


RECORD_COLUMNS = [
    "service_date",
    "agreed_charge",
    "units_of_service",
    "hours_worked",
    "client_name",
    "procedure_code",
]

NUMERIC_COLUMNS = ["agreed_charge", "units_of_service", "hours_worked"]
TEXT_COLUMNS = ["client_name", "procedure_code"]


class SchemaValidationError(Exception):
    """Raised when required export headers are missing."""
    pass


@dataclass(frozen=True)
class SessionRecord:
    """One billed unit of service."""
    service_date: date
    agreed_charge: float = 0.0
    units_of_service: float = 0.0
    hours_worked: float = 0.0
    client_name: str = ""
    procedure_code: str = ""


def empty_records_frame() -> pd.DataFrame:
    """Records frame with canonical columns and no rows."""
    return pd.DataFrame({
        "service_date": pd.Series([], dtype="datetime64[ns]"),
        "agreed_charge": pd.Series([], dtype="float64"),
        "units_of_service": pd.Series([], dtype="float64"),
        "hours_worked": pd.Series([], dtype="float64"),
        "client_name": pd.Series([], dtype="object"),
        "procedure_code": pd.Series([], dtype="object"),
    })


def ensure_record_types(df: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce a frame to canonical record columns and dtypes.

    Rows whose service_date cannot be parsed are dropped. Missing numeric
    values become 0 and missing text becomes "".
    """
    if len(df) == 0:
        return empty_records_frame()

    df = df.copy()
    for col in RECORD_COLUMNS:
        if col not in df.columns:
            df[col] = "" if col in TEXT_COLUMNS else 0.0

    dates = pd.to_datetime(df["service_date"], errors="coerce").dt.normalize()
    df["service_date"] = dates.astype("datetime64[ns]")
    df = df[df["service_date"].notna()]

    for col in NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)

    for col in TEXT_COLUMNS:
        df[col] = df[col].fillna("").astype(str).str.strip()

    return df[RECORD_COLUMNS].reset_index(drop=True)


def records_frame(rows: Iterable[Union[SessionRecord, Mapping]]) -> pd.DataFrame:
    """Build a records frame from SessionRecord instances or plain mappings."""
    data = [asdict(r) if isinstance(r, SessionRecord) else dict(r) for r in rows]
    if not data:
        return empty_records_frame()
    return ensure_record_types(pd.DataFrame(data))


def validate_headers(headers: Sequence[str], strict: bool = True) -> Dict:
    """
    Check an export's header row against required and optional headers.

    Args:
        headers: Header names as they appear in the export
        strict: If True, raise on missing required headers

    Returns:
        Dict with validation results
    """
    present = {str(h).strip().strip('"') for h in headers}
    missing_required = [h for h in REQUIRED_HEADERS if h not in present]
    missing_optional = [h for h in OPTIONAL_HEADERS if h not in present]

    result = {
        "is_valid": len(missing_required) == 0,
        "missing_required": missing_required,
        "missing_optional": missing_optional,
        "total_columns": len(present),
    }

    if strict and not result["is_valid"]:
        raise SchemaValidationError(
            f"Missing required headers in billing export: {missing_required}"
        )

    return result


def record_date_span(df: pd.DataFrame) -> Tuple:
    """(min, max) service date of a records frame, or (None, None) when empty."""
    if len(df) == 0:
        return None, None
    return df["service_date"].min(), df["service_date"].max()
