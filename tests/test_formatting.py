"""
Tests for display formatting.
"""
import pytest
import numpy as np
import pandas as pd
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from billing_trends.ui.formatting import (
    fmt_currency,
    fmt_hours,
    fmt_date,
    fmt_reason,
    kpi_value,
    kpi_delta_pct,
    format_metric_df,
)


class TestFormatters:

    def test_currency(self):
        assert fmt_currency(1234.4) == "$1,234"
        assert fmt_currency(1234.5, decimals=2) == "$1,234.50"

    def test_missing_values_render_dash(self):
        assert fmt_currency(None) == "—"
        assert fmt_hours(np.nan) == "—"
        assert kpi_value(float("nan"), "rate") == "—"
        assert fmt_date(pd.NaT) == "—"

    def test_date(self):
        assert fmt_date(pd.Timestamp("2025-01-06")) == "Jan 6, 2025"

    def test_reason_labels(self):
        assert fmt_reason("insurance") == "Insurance issue"
        assert fmt_reason("custom-reason") == "custom-reason"
        assert fmt_reason(None) == ""

    def test_days(self):
        assert kpi_value(54, "days") == "54.0 days"

    def test_delta(self):
        assert kpi_delta_pct(12.5) == "+12.5% vs last week"
        assert kpi_delta_pct(-3.0) == "-3.0% vs last week"
        assert kpi_delta_pct(np.nan) is None


class TestFormatMetricDf:

    def test_known_columns(self):
        df = pd.DataFrame({
            "week_start": [pd.Timestamp("2025-01-06")],
            "agreed_revenue": [1500.0],
            "total_hours": [12.3],
            "revenue_change_pct": [25.0],
            "avg_revenue_per_hour": [np.nan],
        })

        result = format_metric_df(df)

        assert result.iloc[0].tolist() == ["Jan 6, 2025", "$1,500", "12.3h", "+25.0%", "—"]
        # input untouched
        assert df["agreed_revenue"].iloc[0] == 1500.0
