"""
Application configuration management.
"""
import logging
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Tuple


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir:
        return Path(env_dir)
    return Path("./data")


@dataclass
class AppConfig:
    """Application configuration with environment overrides."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Remote billing export (e.g. a published spreadsheet CSV link)
    billing_csv_url: Optional[str] = field(default_factory=lambda: os.getenv("BILLING_CSV_URL") or None)

    # Cache settings
    cache_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "3600")))

    # Funnel thresholds (days since last assessment)
    at_risk_after_days: int = field(default_factory=lambda: int(os.getenv("AT_RISK_AFTER_DAYS", "45")))
    stale_after_days: int = field(default_factory=lambda: int(os.getenv("STALE_AFTER_DAYS", "75")))

    # Display limits
    converted_display_limit: int = 20

    # Client week-over-week change threshold
    change_threshold_pct: float = 25.0

    @property
    def raw_dir(self) -> Path:
        return self.data_dir / "raw"

    @property
    def reports_dir(self) -> Path:
        return self.data_dir / "reports"

    @property
    def annotations_path(self) -> Path:
        return self.data_dir / "client_annotations.csv"


@dataclass(frozen=True)
class BillingCodes:
    """
    Procedure-code taxonomy used by every aggregation.

    Precondition: assessment_codes and recurring_codes are disjoint. The engine
    does not check this; scripts/validate_inputs.py reports any overlap.
    """

    anchor_code: str = "97153"
    assessment_codes: Tuple[str, ...] = ("90791", "96130", "96131", "96136", "96137")
    recurring_codes: Tuple[str, ...] = ("97155", "97153")

    @property
    def all_codes(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(self.assessment_codes + self.recurring_codes))

    def overlapping(self) -> Tuple[str, ...]:
        """Codes present in both the assessment and recurring sets."""
        return tuple(c for c in self.assessment_codes if c in self.recurring_codes)


# Global config instance
config = AppConfig()

DEFAULT_CODES = BillingCodes()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for scripts and the app."""
    logging.basicConfig(
        level=(level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Canonical record column -> billing export header
SOURCE_COLUMNS = {
    "service_date": "DateOfService",
    "agreed_charge": "ClientChargesAgreedTotal",
    "units_of_service": "UnitsOfService",
    "hours_worked": "TimeWorkedInHours",
    "client_first_name": "ClientFirstName",
    "client_last_name": "ClientLastName",
    "procedure_code": "ProcedureCode",
}

# Headers the export cannot be used without (hard fail in strict validation)
REQUIRED_HEADERS = [
    SOURCE_COLUMNS["service_date"],
    SOURCE_COLUMNS["agreed_charge"],
    SOURCE_COLUMNS["procedure_code"],
]

# Headers that degrade gracefully to zero / empty defaults
OPTIONAL_HEADERS = [
    SOURCE_COLUMNS["units_of_service"],
    SOURCE_COLUMNS["hours_worked"],
    SOURCE_COLUMNS["client_first_name"],
    SOURCE_COLUMNS["client_last_name"],
]

# Manual "not viable" override reasons
NOT_VIABLE_REASONS = {
    "insurance": "Insurance issue",
    "no-response": "No response",
    "competitor": "Went to competitor",
    "center-based": "Needs center-based care",
    "financial": "Financial",
    "service-area": "Outside service area",
    "age": "Age out of range",
    "other": "Other",
}

# Funnel states in precedence order
FUNNEL_STATES = ["converted", "not-viable", "at-risk", "active", "stale"]

# Cohort ranges (label, lower bound, upper bound) in days since last assessment
COHORT_RANGES = [
    ("0-14", 0, 14),
    ("15-30", 15, 30),
    ("31-45", 31, 45),
    ("46-60", 46, 60),
    ("61-75", 61, 75),
]

