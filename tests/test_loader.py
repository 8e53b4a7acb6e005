"""
Tests for billing export and annotation loading.
"""
import os
import pytest
import pandas as pd
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from billing_trends.config import config
from billing_trends.data.loader import (
    parse_annotations,
    read_billing_export,
    resolve_billing_source,
    get_data_status,
)


EXPORT = "\n".join([
    "DateOfService,ClientChargesAgreedTotal,UnitsOfService,TimeWorkedInHours,"
    "ClientFirstName,ClientLastName,ProcedureCode",
    "01/06/2025,100,4,1,Jane,Doe,90791",
    "03/01/2025,200,8,2,Jane,Doe,97153",
])


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "data_dir", tmp_path)
    monkeypatch.setattr(config, "billing_csv_url", None)
    return tmp_path


class TestParseAnnotations:
    """Tests for override and notes maps."""

    def test_overrides_and_notes(self):
        df = pd.DataFrame({
            "client_name": ["Jane Doe", "Sam Lee", "Ann Roe"],
            "not_viable_reason": ["insurance", "", "other"],
            "notes": ["Called twice", "", None],
        })

        overrides, notes = parse_annotations(df)

        assert overrides == {"Jane Doe": "insurance", "Sam Lee": None, "Ann Roe": "other"}
        assert notes == {"Jane Doe": "Called twice"}

    def test_blank_names_skipped(self):
        df = pd.DataFrame({"client_name": ["", "  "], "not_viable_reason": ["other", "other"]})

        overrides, notes = parse_annotations(df)

        assert overrides == {}
        assert notes == {}

    def test_missing_client_column(self):
        assert parse_annotations(pd.DataFrame({"x": [1]})) == ({}, {})


class TestResolveBillingSource:
    """Tests for export source selection."""

    def test_explicit_source_wins(self, data_dir, monkeypatch):
        monkeypatch.setattr(config, "billing_csv_url", "https://example.com/export.csv")

        assert resolve_billing_source("local.csv") == "local.csv"

    def test_remote_url_before_raw_dir(self, data_dir, monkeypatch):
        (data_dir / "raw").mkdir()
        (data_dir / "raw" / "export.csv").write_text(EXPORT)
        monkeypatch.setattr(config, "billing_csv_url", "https://example.com/export.csv")

        assert resolve_billing_source() == "https://example.com/export.csv"

    def test_newest_raw_export(self, data_dir):
        raw = data_dir / "raw"
        raw.mkdir()
        older = raw / "older.csv"
        newer = raw / "newer.csv"
        older.write_text(EXPORT)
        newer.write_text(EXPORT)
        os.utime(older, (1_000_000, 1_000_000))
        os.utime(newer, (2_000_000, 2_000_000))

        assert resolve_billing_source() == str(newer)

    def test_no_source(self, data_dir):
        assert resolve_billing_source() is None
        assert get_data_status()["has_source"] is False


class TestReadBillingExport:
    """Tests for reading an export file."""

    def test_reads_file(self, tmp_path):
        path = tmp_path / "export.csv"
        path.write_text(EXPORT)

        df = read_billing_export(str(path))

        assert len(df) == 2
        assert df["client_name"].unique().tolist() == ["Jane Doe"]
        assert df["agreed_charge"].sum() == 300
