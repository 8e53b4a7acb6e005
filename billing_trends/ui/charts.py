"""
Standard chart wrappers using Plotly.
"""
import plotly.express as px
import plotly.graph_objects as go
import pandas as pd
from typing import List


# =============================================================================
# CHART THEME
# =============================================================================

CHART_COLORS = {
    "primary": "#1f77b4",
    "secondary": "#ff7f0e",
    "success": "#28a745",
    "warning": "#ffc107",
    "danger": "#dc3545",
    "neutral": "#6c757d",
    "light": "#f8f9fa",
}

CHART_TEMPLATE = "plotly_white"

DEFAULT_LAYOUT = {
    "template": CHART_TEMPLATE,
    "font": {"family": "Arial, sans-serif", "size": 12},
    "margin": {"l": 50, "r": 30, "t": 40, "b": 50},
    "hoverlabel": {"bgcolor": "white"},
}

# Weekly metric -> (axis title, y tick format)
WEEKLY_METRICS = {
    "agreed_revenue": ("Agreed Revenue", "$,.0f"),
    "total_hours": ("Billable Hours", ",.1f"),
    "client_count": ("Active Clients", ",d"),
    "avg_revenue_per_hour": ("Revenue per Hour", "$,.0f"),
    "avg_session_length": ("Avg Session Length (h)", ",.2f"),
}

STATUS_COLORS = {
    "active": CHART_COLORS["success"],
    "at_risk": CHART_COLORS["warning"],
    "not_viable": CHART_COLORS["neutral"],
}


def apply_layout(fig: go.Figure, **kwargs) -> go.Figure:
    """Apply standard layout to figure."""
    layout = {**DEFAULT_LAYOUT, **kwargs}
    fig.update_layout(**layout)
    return fig


# =============================================================================
# TIME SERIES
# =============================================================================

def weekly_trend(weekly: pd.DataFrame, metric: str, title: str = "") -> go.Figure:
    """
    Line chart of one weekly metric. Weeks with an undefined value are left
    as gaps.
    """
    label, tick_format = WEEKLY_METRICS.get(metric, (metric, ""))
    fig = px.line(
        weekly, x="week_start", y=metric,
        title=title or label,
        markers=True,
    )
    fig.update_layout(
        xaxis_title="Week of",
        yaxis_title=label,
        yaxis_tickformat=tick_format,
    )
    return apply_layout(fig)


# =============================================================================
# BAR CHARTS
# =============================================================================

def cohort_bar(cohorts: pd.DataFrame, title: str = "Pipeline by Days Since Assessment") -> go.Figure:
    """Stacked bar of active / at-risk / not-viable clients per cohort."""
    fig = go.Figure()
    labels = {"active": "Active", "at_risk": "At Risk", "not_viable": "Not Viable"}

    for col, name in labels.items():
        fig.add_trace(go.Bar(
            name=name,
            x=cohorts["cohort"],
            y=cohorts[col],
            marker_color=STATUS_COLORS[col],
        ))

    fig.update_layout(
        barmode="stack",
        title=title,
        xaxis_title="Days since last assessment",
        yaxis_title="Clients",
    )
    return apply_layout(fig)


def funnel_chart(stages: List[str], values: List[int], title: str = "Conversion Funnel") -> go.Figure:
    """Funnel of client counts per stage."""
    fig = go.Figure(go.Funnel(
        y=stages,
        x=values,
        textinfo="value+percent initial",
        marker={"color": CHART_COLORS["primary"]},
    ))
    return apply_layout(fig, title=title, height=320)
