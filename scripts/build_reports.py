#!/usr/bin/env python
"""
Build weekly, client, and funnel report tables from a billing export.

Usage:
    python scripts/build_reports.py
    python scripts/build_reports.py --file export.csv --out reports/ --now 2025-03-10
"""
import argparse
import logging
import sys
from pathlib import Path

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from billing_trends.config import config, DEFAULT_CODES, configure_logging
from billing_trends.data.client_history import build_client_histories
from billing_trends.data.loader import (
    load_client_annotations,
    read_billing_export,
    resolve_billing_source,
)
from billing_trends.exports import export_funnel_summary_json
from billing_trends.metrics.client_changes import detect_latest_client_changes
from billing_trends.metrics.funnel import classify_funnel
from billing_trends.metrics.weekly import compute_weekly_metrics

logger = logging.getLogger("build_reports")


def _flatten_codes(df):
    """Tuple-valued code columns as space-separated text for CSV output."""
    if "assessment_codes" not in df.columns:
        return df
    return df.assign(assessment_codes=df["assessment_codes"].map(" ".join))


def main():
    parser = argparse.ArgumentParser(description="Build report tables")
    parser.add_argument(
        "--file",
        type=str,
        default=None,
        help="Export path or URL (defaults to BILLING_CSV_URL or the newest raw CSV)"
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output directory (defaults to DATA_DIR/reports)"
    )
    parser.add_argument(
        "--now",
        type=str,
        default=None,
        help="Reference date for the funnel (YYYY-MM-DD, defaults to today)"
    )
    parser.add_argument(
        "--annotations",
        type=str,
        default=None,
        help="Override/notes CSV (defaults to DATA_DIR/client_annotations.csv)"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args()
    configure_logging("DEBUG" if args.verbose else None)

    source = resolve_billing_source(args.file)
    if source is None:
        print("ERROR: No billing export found (pass --file or set BILLING_CSV_URL)")
        sys.exit(1)

    out_dir = Path(args.out) if args.out else config.reports_dir
    out_dir.mkdir(parents=True, exist_ok=True)

    print("Building reports...")
    print(f"  Source: {source}")
    print(f"  Output: {out_dir}")
    print()

    records = read_billing_export(source)
    if len(records) == 0:
        print("ERROR: Export contains no usable records")
        sys.exit(1)

    overrides, notes = load_client_annotations(args.annotations)

    weekly = compute_weekly_metrics(records, DEFAULT_CODES)
    histories = build_client_histories(
        records, DEFAULT_CODES.assessment_codes, DEFAULT_CODES.recurring_codes
    )
    funnel = classify_funnel(histories, overrides=overrides, notes=notes, now=args.now)
    changes = detect_latest_client_changes(records, DEFAULT_CODES)

    outputs = {
        "weekly_metrics.csv": weekly,
        "client_histories.csv": histories,
        "funnel_clients.csv": funnel.clients,
        "client_changes.csv": changes,
    }
    for filename, df in outputs.items():
        _flatten_codes(df).to_csv(out_dir / filename, index=False, date_format="%Y-%m-%d")
        logger.info(f"Wrote {len(df)} rows to {filename}")
        print(f"  ✓ {filename} ({len(df):,} rows)")

    json_bytes, _ = export_funnel_summary_json(funnel)
    (out_dir / "funnel_summary.json").write_bytes(json_bytes)
    print("  ✓ funnel_summary.json")

    print()
    print(f"Weeks: {len(weekly)} | Clients in funnel: {funnel.total_with_assessment} | "
          f"Conversion rate: {funnel.conversion_rate}%")


if __name__ == "__main__":
    main()
