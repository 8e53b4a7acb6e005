"""
Assessment-to-recurring-service conversion funnel.

Each client with an assessment on record gets exactly one state, checked in
this order:

    converted   - has at least one recurring-service session
    not-viable  - has a manual override reason
    at-risk     - last assessment more than at_risk_after_days ago, up to
                  stale_after_days
    active      - last assessment at most at_risk_after_days ago
    stale       - everything else

States are recomputed from histories, overrides and the reference date on
every call; nothing is persisted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

import pandas as pd

from billing_trends.config import (
    AppConfig,
    BillingCodes,
    DEFAULT_CODES,
    FUNNEL_STATES,
    config as default_config,
)
from billing_trends.data.client_history import HISTORY_COLUMNS, build_client_histories
from billing_trends.data.cohorts import COHORT_LABELS, DateLike, cohort_label, to_calendar_date


FUNNEL_COLUMNS = HISTORY_COLUMNS + [
    "days_since_first_assessment",
    "days_since_last_assessment",
    "days_to_conversion",
    "not_viable_reason",
    "notes",
    "status",
]

COHORT_COLUMNS = ["cohort", "active", "at_risk", "not_viable"]

PIPELINE_STATES = ["active", "at-risk", "not-viable"]


@dataclass
class FunnelResult:
    """Classified clients, display lists, cohorts, and conversion statistics."""
    as_of: pd.Timestamp
    clients: pd.DataFrame
    active_leads: pd.DataFrame
    at_risk: pd.DataFrame
    converted: pd.DataFrame
    not_viable: pd.DataFrame
    cohorts: pd.DataFrame
    total_with_assessment: int = 0
    converted_total: int = 0
    conversion_rate: float = 0.0
    avg_days_to_conversion: float = 0.0
    status_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def pipeline_total(self) -> int:
        return len(self.active_leads) + len(self.at_risk) + len(self.not_viable)


def _override_reason(value) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    reason = str(value).strip()
    return reason or None


def empty_cohorts() -> pd.DataFrame:
    return pd.DataFrame({
        "cohort": COHORT_LABELS,
        "active": [0] * len(COHORT_LABELS),
        "at_risk": [0] * len(COHORT_LABELS),
        "not_viable": [0] * len(COHORT_LABELS),
    })


def classify_status(has_conversion: bool, reason: Optional[str], days_since_last: int,
                    cfg: AppConfig = default_config) -> str:
    """Funnel state for a single client."""
    if has_conversion:
        return "converted"
    if reason:
        return "not-viable"
    if cfg.at_risk_after_days < days_since_last <= cfg.stale_after_days:
        return "at-risk"
    if days_since_last <= cfg.at_risk_after_days:
        return "active"
    return "stale"


def compute_cohorts(clients: pd.DataFrame) -> pd.DataFrame:
    """
    Count pipeline clients (active, at-risk, not-viable) per days-since-assessment cohort.

    Converted and stale clients are not counted.
    """
    cohorts = empty_cohorts().set_index("cohort")
    pipeline = clients[clients["status"].isin(PIPELINE_STATES)]
    if len(pipeline) == 0:
        return cohorts.reset_index()

    labels = pipeline["days_since_last_assessment"].map(cohort_label)
    counts = pd.crosstab(labels, pipeline["status"])
    for status in PIPELINE_STATES:
        if status in counts.columns:
            column = status.replace("-", "_")
            cohorts[column] = counts[status].reindex(cohorts.index, fill_value=0).astype(int)

    return cohorts.reset_index()[COHORT_COLUMNS]


def classify_funnel(histories: pd.DataFrame,
                    overrides: Optional[Mapping[str, Optional[str]]] = None,
                    notes: Optional[Mapping[str, str]] = None,
                    now: Optional[DateLike] = None,
                    cfg: AppConfig = default_config) -> FunnelResult:
    """
    Assign funnel states and compute cohorts and conversion statistics.

    Args:
        histories: Output of build_client_histories over the full code sets
        overrides: client name -> not-viable reason (None / "" means no override)
        notes: client name -> free text
        now: Reference date (defaults to today)
        cfg: Thresholds and display limits

    Returns:
        FunnelResult. Statistics use every converted client; the converted
        display list is capped at cfg.converted_display_limit.
    """
    overrides = overrides or {}
    notes = notes or {}
    as_of = to_calendar_date(now if now is not None else pd.Timestamp.today())

    df = histories[histories["first_assessment_date"].notna()].copy()

    if len(df) == 0:
        clients = pd.DataFrame(columns=FUNNEL_COLUMNS)
        return FunnelResult(
            as_of=as_of,
            clients=clients,
            active_leads=clients.copy(),
            at_risk=clients.copy(),
            converted=clients.copy(),
            not_viable=clients.copy(),
            cohorts=empty_cohorts(),
            status_counts={state: 0 for state in FUNNEL_STATES},
        )

    df["days_since_first_assessment"] = (as_of - df["first_assessment_date"]).dt.days.astype(int)
    df["days_since_last_assessment"] = (as_of - df["last_assessment_date"]).dt.days.astype(int)
    # Negative when the first recurring session predates the last assessment
    df["days_to_conversion"] = (df["first_recurring_date"] - df["last_assessment_date"]).dt.days
    df["not_viable_reason"] = df["client_name"].map(lambda name: _override_reason(overrides.get(name)))
    df["notes"] = df["client_name"].map(lambda name: notes.get(name) or "")

    df["status"] = df.apply(
        lambda row: classify_status(
            has_conversion=pd.notna(row["first_recurring_date"]),
            reason=_override_reason(row["not_viable_reason"]),
            days_since_last=row["days_since_last_assessment"],
            cfg=cfg,
        ),
        axis=1,
    )
    clients = df[FUNNEL_COLUMNS].reset_index(drop=True)

    active_leads = clients[clients["status"] == "active"].sort_values(
        ["days_since_last_assessment", "client_name"], ascending=[True, True]
    )
    not_viable = clients[clients["status"] == "not-viable"].sort_values(
        ["days_since_last_assessment", "client_name"], ascending=[True, True]
    )
    at_risk = clients[clients["status"] == "at-risk"].sort_values(
        ["days_since_last_assessment", "client_name"], ascending=[False, True]
    )
    converted_all = clients[clients["status"] == "converted"].sort_values(
        ["first_recurring_date", "client_name"], ascending=[False, True]
    )

    total = len(active_leads) + len(at_risk) + len(converted_all) + len(not_viable)
    conversion_rate = round(len(converted_all) / total * 100, 1) if total > 0 else 0.0

    valid = converted_all["days_to_conversion"]
    valid = valid[valid >= 0]
    avg_days = round(float(valid.mean()), 1) if len(valid) > 0 else 0.0

    status_counts = clients["status"].value_counts().reindex(FUNNEL_STATES, fill_value=0)

    return FunnelResult(
        as_of=as_of,
        clients=clients,
        active_leads=active_leads.reset_index(drop=True),
        at_risk=at_risk.reset_index(drop=True),
        converted=converted_all.head(cfg.converted_display_limit).reset_index(drop=True),
        not_viable=not_viable.reset_index(drop=True),
        cohorts=compute_cohorts(clients),
        total_with_assessment=total,
        converted_total=len(converted_all),
        conversion_rate=conversion_rate,
        avg_days_to_conversion=avg_days,
        status_counts={state: int(n) for state, n in status_counts.items()},
    )


def build_funnel(records: pd.DataFrame,
                 overrides: Optional[Mapping[str, Optional[str]]] = None,
                 notes: Optional[Mapping[str, str]] = None,
                 now: Optional[DateLike] = None,
                 codes: BillingCodes = DEFAULT_CODES,
                 cfg: AppConfig = default_config) -> FunnelResult:
    """Build histories over the full code sets and classify them."""
    histories = build_client_histories(records, codes.assessment_codes, codes.recurring_codes)
    return classify_funnel(histories, overrides=overrides, notes=notes, now=now, cfg=cfg)


def conversion_leads(result: FunnelResult) -> pd.DataFrame:
    """Clients still in the pipeline (active, at-risk, not-viable), most recent first."""
    leads = pd.concat(
        [result.active_leads, result.at_risk, result.not_viable],
        ignore_index=True,
    )
    if len(leads) == 0:
        return leads
    return leads.sort_values(
        ["days_since_last_assessment", "client_name"], ascending=[True, True]
    ).reset_index(drop=True)
