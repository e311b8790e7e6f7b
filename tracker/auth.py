"""
Sign-in guard for the pages.

The identity provider is whatever OIDC provider is configured for Streamlit
under `[auth]` in secrets.toml; this module only asks who is signed in.
"""

from __future__ import annotations

from typing import Optional

import streamlit as st

from tracker.config import Settings


def current_identity() -> Optional[str]:
    """Email (or name) of the signed-in user, None when nobody is signed in."""
    user = st.user
    if not getattr(user, "is_logged_in", False):
        return None
    return user.get("email") or user.get("name") or "signed-in user"


def require_login(settings: Settings) -> Optional[str]:
    """
    Stop the page unless someone is signed in. Returns the identity, or None
    when sign-in is switched off for this install.
    """
    if not settings.auth_required:
        return None

    identity = current_identity()
    if identity:
        with st.sidebar:
            st.caption(f"Signed in as **{identity}**")
            if st.button("Sign out", key="auth_sign_out"):
                st.logout()
        return identity

    st.title("🔐 Sign in")
    st.info("Sign in to access your inventory, sales and ledger.")
    if st.button("Sign in", type="primary", key="auth_sign_in"):
        st.login()
    st.stop()
