"""
Tests for schema validation.
"""
import pytest
import pandas as pd
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from billing_trends.data.schema import (
    validate_headers,
    records_frame,
    ensure_record_types,
    record_date_span,
    SessionRecord,
    SchemaValidationError,
    RECORD_COLUMNS,
)
from billing_trends.data.parsing import parse_billing_csv
from billing_trends.config import REQUIRED_HEADERS, OPTIONAL_HEADERS


class TestValidateHeaders:
    """Tests for export header validation."""

    def test_all_headers_present(self):
        result = validate_headers(REQUIRED_HEADERS + OPTIONAL_HEADERS)

        assert result["is_valid"] is True
        assert result["missing_required"] == []
        assert result["missing_optional"] == []
        assert result["total_columns"] == 7

    def test_missing_optional_is_still_valid(self):
        result = validate_headers(REQUIRED_HEADERS)

        assert result["is_valid"] is True
        assert "TimeWorkedInHours" in result["missing_optional"]

    def test_missing_required_strict_raises(self):
        with pytest.raises(SchemaValidationError):
            validate_headers(["ClientChargesAgreedTotal", "ProcedureCode"])

    def test_missing_required_non_strict(self):
        result = validate_headers(["ClientChargesAgreedTotal", "ProcedureCode"], strict=False)

        assert result["is_valid"] is False
        assert result["missing_required"] == ["DateOfService"]

    def test_headers_trimmed_and_unquoted(self):
        result = validate_headers([' "DateOfService" ', "ClientChargesAgreedTotal ", "ProcedureCode"])

        assert result["is_valid"] is True


class TestRecordsFrame:
    """Tests for typed record frames."""

    def test_from_session_records(self):
        df = records_frame([
            SessionRecord(service_date=date(2025, 1, 6), agreed_charge=100.0,
                          client_name="Jane Doe", procedure_code="90791"),
        ])

        assert list(df.columns) == RECORD_COLUMNS
        assert df["service_date"].iloc[0] == pd.Timestamp("2025-01-06")
        assert df["hours_worked"].iloc[0] == 0.0

    def test_dtypes(self):
        df = records_frame([{"service_date": "2025-01-06 15:00", "agreed_charge": "12.5",
                             "procedure_code": 97153}])

        assert str(df["service_date"].dtype) == "datetime64[ns]"
        assert df["service_date"].iloc[0] == pd.Timestamp("2025-01-06")
        assert df["agreed_charge"].iloc[0] == 12.5
        assert df["procedure_code"].iloc[0] == "97153"
        assert df["client_name"].iloc[0] == ""

    def test_date_dtype_matches_parsed_export(self):
        """Typed frames and parsed exports carry the same date resolution."""
        built = records_frame([
            SessionRecord(service_date=date(2025, 1, 6), procedure_code="90791"),
        ])
        parsed = parse_billing_csv(
            "DateOfService,ClientChargesAgreedTotal,ProcedureCode\n01/06/2025,0,90791"
        )

        assert built["service_date"].dtype == parsed["service_date"].dtype
        assert str(built["service_date"].dtype) == "datetime64[ns]"

    def test_drops_undated_rows(self):
        df = records_frame([
            {"service_date": None, "agreed_charge": 1},
            {"service_date": "2025-01-06", "agreed_charge": 2},
        ])

        assert len(df) == 1
        assert df["agreed_charge"].iloc[0] == 2

    def test_empty(self):
        df = records_frame([])

        assert len(df) == 0
        assert list(df.columns) == RECORD_COLUMNS

    def test_ensure_types_does_not_mutate(self):
        raw = pd.DataFrame({"service_date": ["2025-01-06"], "agreed_charge": ["5"]})
        before = raw.copy()

        ensure_record_types(raw)

        pd.testing.assert_frame_equal(raw, before)


class TestRecordDateSpan:
    """Tests for record date span."""

    def test_span(self):
        df = records_frame([
            {"service_date": "2025-02-01"},
            {"service_date": "2025-01-06"},
        ])

        assert record_date_span(df) == (pd.Timestamp("2025-01-06"), pd.Timestamp("2025-02-01"))

    def test_empty(self):
        assert record_date_span(records_frame([])) == (None, None)
