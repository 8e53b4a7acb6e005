"""
Tests for billing export parsing.
"""
import pytest
import pandas as pd
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from billing_trends.data.parsing import (
    parse_service_date,
    parse_amount,
    parse_billing_csv,
    normalize_billing_frame,
)
from billing_trends.data.schema import RECORD_COLUMNS


HEADER = (
    "DateOfService,ClientChargesAgreedTotal,UnitsOfService,TimeWorkedInHours,"
    "ClientFirstName,ClientLastName,ProcedureCode"
)


def make_csv(*rows: str) -> str:
    return "\n".join([HEADER, *rows])


class TestParseServiceDate:
    """Tests for date cell parsing."""

    def test_slash_four_digit_year(self):
        assert parse_service_date("01/06/2025") == pd.Timestamp("2025-01-06")

    def test_slash_two_digit_year(self):
        """Two-digit years are read as 20YY."""
        assert parse_service_date("03/01/25") == pd.Timestamp("2025-03-01")

    def test_slash_with_time_of_day(self):
        """Time after the first space is discarded."""
        assert parse_service_date("1/6/2025 14:30:00") == pd.Timestamp("2025-01-06")

    def test_iso_date(self):
        assert parse_service_date("2025-02-14") == pd.Timestamp("2025-02-14")

    def test_iso_date_with_time(self):
        assert parse_service_date("2025-02-14 09:15:00") == pd.Timestamp("2025-02-14")

    def test_generic_fallback(self):
        """Dates without slashes or hyphens go through the generic parser."""
        assert parse_service_date("January 6 2025") == pd.Timestamp("2025-01-06")

    def test_strips_quotes(self):
        assert parse_service_date('"01/06/2025"') == pd.Timestamp("2025-01-06")

    @pytest.mark.parametrize("value", [
        None,
        "",
        "   ",
        "1/6/25",          # too short to be a date
        "DateOfService",   # repeated header row
        "#REF!",
        "#VALUE!0000",
        "13/45/2025",      # impossible calendar date
        "02/30/2025",
        "pending review",
        "1/2",
    ])
    def test_rejects_unusable_values(self, value):
        assert parse_service_date(value) is None

    def test_result_has_no_time_component(self):
        parsed = parse_service_date("2025-02-14 23:59:59")
        assert parsed == parsed.normalize()


class TestParseAmount:
    """Tests for numeric cell parsing."""

    def test_plain_number(self):
        assert parse_amount("125.50") == 125.5

    def test_blank_is_zero(self):
        assert parse_amount("") == 0.0
        assert parse_amount(None) == 0.0

    def test_unparseable_is_zero(self):
        assert parse_amount("n/a") == 0.0

    def test_currency_formatting(self):
        assert parse_amount('"$1,200.00"') == 1200.0


class TestParseBillingCsv:
    """Tests for full export parsing."""

    def test_basic_rows(self):
        text = make_csv(
            "01/06/2025,100,4,1,Jane,Doe,90791",
            "01/07/2025,200,8,2,John,Smith,97153",
        )

        df = parse_billing_csv(text)

        assert list(df.columns) == RECORD_COLUMNS
        assert len(df) == 2
        assert df["client_name"].tolist() == ["Jane Doe", "John Smith"]
        assert df["agreed_charge"].sum() == 300
        assert df["hours_worked"].sum() == 3
        assert df["units_of_service"].sum() == 12
        assert df["procedure_code"].tolist() == ["90791", "97153"]
        assert df["service_date"].iloc[0] == pd.Timestamp("2025-01-06")

    def test_quoted_field_with_delimiter(self):
        """A comma inside a quoted field does not split the field."""
        text = make_csv('01/06/2025,"1,000",4,1,"Mary Ann","Smith, Jr.",97153')

        df = parse_billing_csv(text)

        assert len(df) == 1
        assert df["client_name"].iloc[0] == "Mary Ann Smith, Jr."
        assert df["agreed_charge"].iloc[0] == 1000.0
        assert df["procedure_code"].iloc[0] == "97153"

    def test_drops_bad_date_rows(self):
        """Rows with missing or error dates are dropped, others kept."""
        text = make_csv(
            "01/06/2025,100,4,1,Jane,Doe,90791",
            ",100,4,1,No,Date,90791",
            "#N/A,100,4,1,Err,Row,90791",
            "DateOfService,0,0,0,Header,Again,",
            "01/08/2025,50,2,1,Sam,Lee,97153",
        )

        df = parse_billing_csv(text)

        assert len(df) == 2
        assert df["client_name"].tolist() == ["Jane Doe", "Sam Lee"]

    def test_skips_blank_lines(self):
        text = make_csv("01/06/2025,100,4,1,Jane,Doe,90791", "", "01/07/2025,10,1,1,Jo,Ray,97153")
        assert len(parse_billing_csv(text)) == 2

    def test_missing_optional_column_defaults(self):
        """Missing hours column falls back to zero rather than failing."""
        text = "\n".join([
            "DateOfService,ClientChargesAgreedTotal,ClientFirstName,ClientLastName,ProcedureCode",
            "01/06/2025,100,Jane,Doe,90791",
        ])

        df = parse_billing_csv(text)

        assert len(df) == 1
        assert df["hours_worked"].iloc[0] == 0.0
        assert df["units_of_service"].iloc[0] == 0.0

    def test_missing_name_columns_give_empty_client(self):
        text = "\n".join([
            "DateOfService,ClientChargesAgreedTotal,ProcedureCode",
            "01/06/2025,100,90791",
        ])

        df = parse_billing_csv(text)

        assert df["client_name"].iloc[0] == ""

    def test_missing_date_column_yields_empty(self):
        text = "\n".join([
            "ClientChargesAgreedTotal,ProcedureCode",
            "100,90791",
        ])

        assert len(parse_billing_csv(text)) == 0

    def test_unparseable_charge_is_zero(self):
        text = make_csv("01/06/2025,abc,4,1,Jane,Doe,90791")
        assert parse_billing_csv(text)["agreed_charge"].iloc[0] == 0.0

    def test_header_whitespace_and_quotes(self):
        text = "\n".join([
            ' "DateOfService" , ClientChargesAgreedTotal ,ProcedureCode',
            "2025-01-06,100,90791",
        ])

        df = parse_billing_csv(text)

        assert len(df) == 1
        assert df["agreed_charge"].iloc[0] == 100.0

    def test_empty_input(self):
        assert len(parse_billing_csv("")) == 0
        assert list(parse_billing_csv("").columns) == RECORD_COLUMNS

    def test_trailing_delimiter_on_every_row(self):
        """A trailing comma does not shift fields or turn the date into an index."""
        text = make_csv(
            "01/06/2025,100,4,1,Jane,Doe,97153,",
            "01/07/2025,200,4,2,John,Roe,97153,",
        )

        df = parse_billing_csv(text)

        assert len(df) == 2
        assert df["service_date"].tolist() == [pd.Timestamp("2025-01-06"), pd.Timestamp("2025-01-07")]
        assert df["agreed_charge"].tolist() == [100.0, 200.0]
        assert df["client_name"].tolist() == ["Jane Doe", "John Roe"]
        assert df["procedure_code"].tolist() == ["97153", "97153"]

    def test_extra_field_on_one_row_keeps_row(self):
        """Extra fields are dropped, the row and its charge are kept."""
        text = make_csv(
            "01/06/2025,100,4,1,Jane,Doe,97153,extra",
            "01/07/2025,200,4,2,John,Roe,97153",
        )

        df = parse_billing_csv(text)

        assert len(df) == 2
        assert df["agreed_charge"].sum() == 300
        assert df["procedure_code"].tolist() == ["97153", "97153"]

    def test_header_only_input(self):
        df = parse_billing_csv(HEADER)
        assert len(df) == 0
        assert list(df.columns) == RECORD_COLUMNS

    def test_mixed_date_formats(self):
        text = make_csv(
            "01/06/2025,100,4,1,Jane,Doe,90791",
            "2025-01-07,100,4,1,Jane,Doe,90791",
            "1/8/25 10:00,100,4,1,Jane,Doe,90791",
        )

        df = parse_billing_csv(text)

        assert df["service_date"].tolist() == [
            pd.Timestamp("2025-01-06"),
            pd.Timestamp("2025-01-07"),
            pd.Timestamp("2025-01-08"),
        ]


class TestNormalizeBillingFrame:
    """Tests for normalizing an already-read table."""

    def test_does_not_mutate_input(self):
        raw = pd.DataFrame({
            " DateOfService ": ["01/06/2025"],
            "ClientChargesAgreedTotal": ["100"],
        })
        before = raw.copy()

        normalize_billing_frame(raw)

        pd.testing.assert_frame_equal(raw, before)

    def test_custom_column_mapping(self):
        raw = pd.DataFrame({
            "Date": ["2025-01-06"],
            "Charge": ["75"],
            "Units": ["1"],
            "Hours": ["1.5"],
            "First": ["Ann"],
            "Last": ["Lee"],
            "Code": ["97153"],
        })
        columns = {
            "service_date": "Date",
            "agreed_charge": "Charge",
            "units_of_service": "Units",
            "hours_worked": "Hours",
            "client_first_name": "First",
            "client_last_name": "Last",
            "procedure_code": "Code",
        }

        df = normalize_billing_frame(raw, columns=columns)

        assert df["client_name"].iloc[0] == "Ann Lee"
        assert df["hours_worked"].iloc[0] == 1.5
