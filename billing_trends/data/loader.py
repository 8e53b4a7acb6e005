"""
Data loading utilities with Streamlit caching.
"""
import logging
import pandas as pd
import streamlit as st
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

from billing_trends.config import config
from billing_trends.data.parsing import normalize_billing_frame, read_raw_export
from billing_trends.data.schema import empty_records_frame

logger = logging.getLogger(__name__)

ANNOTATION_COLUMNS = ["client_name", "not_viable_reason", "notes"]


def _latest_raw_export(raw_dir: Path) -> Optional[Path]:
    """Most recently modified CSV in the raw directory."""
    if not raw_dir.exists():
        return None
    candidates = sorted(raw_dir.glob("*.csv"), key=lambda p: p.stat().st_mtime)
    return candidates[-1] if candidates else None


def resolve_billing_source(source: Optional[str] = None) -> Optional[str]:
    """
    Pick the export to load: explicit source, then BILLING_CSV_URL, then the
    newest CSV in the raw data directory.
    """
    if source:
        return str(source)
    if config.billing_csv_url:
        return config.billing_csv_url
    latest = _latest_raw_export(config.raw_dir)
    return str(latest) if latest is not None else None


def read_billing_export(source: str) -> pd.DataFrame:
    """Read and normalize a billing export from a path or URL (uncached)."""
    logger.info(f"Loading billing export from {source}")
    raw = read_raw_export(source)
    return normalize_billing_frame(raw)


@st.cache_data(ttl=config.cache_ttl_seconds)
def load_billing_records(source: Optional[str] = None) -> pd.DataFrame:
    """Load the billing export as a records frame (empty if none is available)."""
    resolved = resolve_billing_source(source)
    if resolved is None:
        return empty_records_frame()
    return read_billing_export(resolved)


def parse_annotations(df: pd.DataFrame) -> Tuple[Dict[str, Optional[str]], Dict[str, str]]:
    """
    Split an annotation table into override and notes maps.

    Blank reasons map to None; blank notes are left out.
    """
    overrides: Dict[str, Optional[str]] = {}
    notes: Dict[str, str] = {}

    if "client_name" not in df.columns:
        return overrides, notes

    df = df.fillna("")
    for _, row in df.iterrows():
        name = str(row["client_name"]).strip()
        if not name:
            continue
        reason = str(row.get("not_viable_reason", "")).strip()
        overrides[name] = reason or None
        note = str(row.get("notes", "")).strip()
        if note:
            notes[name] = note

    return overrides, notes


@st.cache_data(ttl=config.cache_ttl_seconds)
def load_client_annotations(path: Optional[str] = None) -> Tuple[Dict[str, Optional[str]], Dict[str, str]]:
    """Load override reasons and notes maintained outside the engine."""
    filepath = Path(path) if path else config.annotations_path
    if not filepath.exists():
        return {}, {}
    df = pd.read_csv(filepath, dtype=str, keep_default_na=False)
    return parse_annotations(df)


def get_data_status() -> Dict[str, Any]:
    """Get status of the billing export and annotation files."""
    latest = _latest_raw_export(config.raw_dir)
    return {
        "remote_url": config.billing_csv_url,
        "raw_export": str(latest) if latest is not None else None,
        "raw_export_exists": latest is not None,
        "annotations_exists": config.annotations_path.exists(),
        "has_source": bool(config.billing_csv_url) or latest is not None,
    }
