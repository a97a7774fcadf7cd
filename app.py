# app.py
import logging

import streamlit as st

from access import (
    ROUTE_ADMIN_STATEMENTS,
    ROUTE_DASHBOARD,
    ROUTE_HEALTH,
    ROUTE_INVESTOR_STATEMENTS,
    ROUTE_SIGN_IN,
    authorize_principal,
)
from config import APP_VERSION, configure_logging, load_settings
from dashboard_panel import PAGE_LABELS, inject_dashboard_theme, render_dashboard
from db import authed_client, public_client, schema_check_or_stop, session_identity
from health_panel import render_health
from principal import resolve
from rbac import PAGE_ADMIN_STATEMENTS, PAGE_HEALTH, PAGE_INVESTOR_STATEMENTS, allowed_pages
from statements_panel import render_admin_statements, render_investor_statements, show_api_error

PAGE_ROUTES = {
    PAGE_INVESTOR_STATEMENTS: ROUTE_INVESTOR_STATEMENTS,
    PAGE_ADMIN_STATEMENTS: ROUTE_ADMIN_STATEMENTS,
    PAGE_HEALTH: ROUTE_HEALTH,
}
ROUTE_PAGES = {route: page for page, route in PAGE_ROUTES.items()}


# -------------------------
# CONFIG
# -------------------------
settings = load_settings()
configure_logging(settings)
log = logging.getLogger(__name__)

st.set_page_config(page_title=f"{settings.app_brand} • Investor Portal", layout="wide", page_icon="🏦")
inject_dashboard_theme()

if not settings.has_supabase:
    st.error("Missing SUPABASE_URL / SUPABASE_ANON_KEY in environment or Streamlit Secrets.")
    st.stop()

sb_public = public_client(settings.supabase_url, settings.supabase_anon_key)

if "session" not in st.session_state:
    st.session_state.session = None
if "route" not in st.session_state:
    st.session_state.route = ROUTE_DASHBOARD


def redirect(route: str):
    if st.session_state.route != route:
        log.info("redirect %s -> %s", st.session_state.route, route)
    st.session_state.route = route
    st.rerun()


def navigate(page_kind: str):
    redirect(PAGE_ROUTES.get(page_kind, ROUTE_DASHBOARD))


# -------------------------
# AUTH UI
# -------------------------
with st.sidebar:
    st.markdown(f"### 🏦 {settings.app_brand}")
    st.caption(APP_VERSION)

    if st.session_state.session is None:
        email = st.text_input("Email", key="auth_email")
        password = st.text_input("Password", type="password", key="auth_pass")
        if st.button("Sign in", use_container_width=True, key="auth_login_btn"):
            try:
                res = sb_public.auth.sign_in_with_password({"email": email, "password": password})
                st.session_state.session = res.session
                st.session_state.route = ROUTE_DASHBOARD
                st.rerun()
            except Exception as e:
                log.warning("sign in failed for %s: %s", email, e)
                show_api_error(e, "Sign in failed")
    else:
        st.success(f"Signed in: {st.session_state.session.user.email}")
        if st.button("Sign out", use_container_width=True, key="auth_logout_btn"):
            try:
                sb_public.auth.sign_out()
            except Exception as e:
                log.warning("sign out failed: %s", e)
            st.session_state.session = None
            redirect(ROUTE_SIGN_IN)


identity = session_identity(st.session_state.session)

if identity is None:
    st.session_state.route = ROUTE_SIGN_IN
    st.markdown(
        f"""
        <div class="glass">
          <div style="font-size:1.35rem;font-weight:950;">Welcome to {settings.app_brand}</div>
          <div style="opacity:.7;margin-top:6px;">
            Please sign in from the sidebar to view your investor statements.
          </div>
        </div>
        """,
        unsafe_allow_html=True,
    )
    st.stop()

if st.session_state.route == ROUTE_SIGN_IN:
    st.session_state.route = ROUTE_DASHBOARD


# -------------------------
# AFTER SIGN IN
# -------------------------
client = authed_client(settings.supabase_url, settings.supabase_anon_key, st.session_state.session)
user_email = st.session_state.session.user.email

schema_check_or_stop(client)

route = st.session_state.route
page_kind = ROUTE_PAGES.get(route)

# one resolve per run; every page below reuses it
principal = resolve(client, identity)
if principal is None:
    redirect(ROUTE_SIGN_IN)

with st.sidebar:
    st.divider()
    if st.button("Dashboard", use_container_width=True, key="nav_dashboard"):
        redirect(ROUTE_DASHBOARD)
    for p in allowed_pages(principal):
        if st.button(PAGE_LABELS.get(p, p), use_container_width=True, key=f"nav_{p}"):
            navigate(p)

if page_kind is None:
    render_dashboard(client, principal, user_email, settings.org_scope_mode, navigate)
    st.stop()

access = authorize_principal(client, principal, page_kind, settings)
if access.redirect_to is not None:
    redirect(access.redirect_to)

if page_kind == PAGE_INVESTOR_STATEMENTS:
    render_investor_statements(client, access.scope, page_size=settings.statements_page_size)
elif page_kind == PAGE_ADMIN_STATEMENTS:
    render_admin_statements(client, access.scope, page_size=settings.statements_page_size)
elif page_kind == PAGE_HEALTH:
    render_health(client)
