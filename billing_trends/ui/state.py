"""
Session state management for Streamlit app.
"""
import streamlit as st
from typing import Any


# =============================================================================
# DEFAULT VALUES
# =============================================================================

DEFAULTS = {
    "selected_metric": "agreed_revenue",
    "billing_source": None,
}


# =============================================================================
# STATE HELPERS
# =============================================================================

def init_state():
    """Initialize all session state keys with defaults."""
    for key, default in DEFAULTS.items():
        if key not in st.session_state:
            st.session_state[key] = default


def get_state(key: str) -> Any:
    """Get state value with default fallback."""
    init_state()
    return st.session_state.get(key, DEFAULTS.get(key))


def set_state(key: str, value: Any):
    """Set state value."""
    st.session_state[key] = value

