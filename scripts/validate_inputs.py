#!/usr/bin/env python
"""
Validate a billing export against header requirements.

Usage:
    python scripts/validate_inputs.py
    python scripts/validate_inputs.py --file /path/to/export.csv
"""
import argparse
import sys
from pathlib import Path

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from billing_trends.config import DEFAULT_CODES, configure_logging
from billing_trends.data.loader import resolve_billing_source
from billing_trends.data.parsing import normalize_billing_frame, read_raw_export
from billing_trends.data.cohorts import get_available_weeks
from billing_trends.data.schema import validate_headers, record_date_span


def validate_file(source: str) -> dict:
    """Validate a single export."""
    result = {
        "rows": 0,
        "records": 0,
        "dropped": 0,
        "valid": False,
        "missing_required": [],
        "missing_optional": [],
        "date_span": (None, None),
        "weeks": 0,
        "tracked_records": 0,
        "errors": [],
    }

    try:
        raw = read_raw_export(source)
    except Exception as e:
        result["errors"].append(f"Failed to load: {e}")
        return result

    schema_result = validate_headers(raw.columns, strict=False)
    result["valid"] = schema_result["is_valid"]
    result["missing_required"] = schema_result["missing_required"]
    result["missing_optional"] = schema_result["missing_optional"]

    records = normalize_billing_frame(raw)
    result["rows"] = len(raw)
    result["records"] = len(records)
    result["dropped"] = len(raw) - len(records)
    result["date_span"] = record_date_span(records)
    result["weeks"] = len(get_available_weeks(records))
    result["tracked_records"] = int(records["procedure_code"].isin(DEFAULT_CODES.all_codes).sum())

    return result


def main():
    parser = argparse.ArgumentParser(description="Validate a billing export")
    parser.add_argument(
        "--file",
        type=str,
        default=None,
        help="Export path or URL (defaults to BILLING_CSV_URL or the newest raw CSV)"
    )

    args = parser.parse_args()
    configure_logging("WARNING")

    source = resolve_billing_source(args.file)

    print("=" * 60)
    print("Billing Export Validation")
    print("=" * 60)

    if source is None:
        print("✗ No export found (pass --file or set BILLING_CSV_URL)")
        sys.exit(1)

    print(f"Source: {source}")
    print()

    all_valid = True
    result = validate_file(source)

    if result["errors"]:
        for err in result["errors"]:
            print(f"  ✗ Error: {err}")
        sys.exit(1)

    print(f"  Rows: {result['rows']:,}")
    print(f"  Usable records: {result['records']:,}")
    print(f"  Dropped rows (bad or missing date): {result['dropped']:,}")
    start, end = result["date_span"]
    if start is not None:
        print(f"  Service dates: {start:%Y-%m-%d} to {end:%Y-%m-%d}")
        print(f"  Weeks covered: {result['weeks']}")
    print(f"  Assessment / recurring-code records: {result['tracked_records']:,}")

    if result["valid"]:
        print("  ✓ Headers valid")
    else:
        print("  ✗ Headers invalid")
        print(f"    Missing required: {result['missing_required']}")
        all_valid = False

    if result["missing_optional"]:
        print(f"  ⚠ Missing optional (defaults to 0 / blank): {result['missing_optional']}")

    if result["records"] == 0:
        print("  ✗ No usable records")
        all_valid = False

    overlap = DEFAULT_CODES.overlapping()
    if overlap:
        print(f"  ✗ Codes in both assessment and recurring sets: {list(overlap)}")
        all_valid = False

    print()
    print("=" * 60)
    if all_valid:
        print("✓ All validations passed")
        sys.exit(0)
    else:
        print("✗ Validation failed - see errors above")
        sys.exit(1)


if __name__ == "__main__":
    main()
