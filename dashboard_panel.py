# dashboard_panel.py
# Landing page (/dashboard) + shared theme/KPI card helpers.
from __future__ import annotations

import logging

import streamlit as st

from principal import MembershipRow, Principal, load_memberships
from rbac import (
    PAGE_ADMIN_STATEMENTS,
    PAGE_HEALTH,
    PAGE_INVESTOR_STATEMENTS,
    allowed_pages,
    evaluate,
    is_admin,
    is_investor,
    normalize_role,
)
from statements import list_statements

log = logging.getLogger(__name__)

PAGE_LABELS = {
    PAGE_INVESTOR_STATEMENTS: "Investor Statements",
    PAGE_ADMIN_STATEMENTS: "Manage Investor Statements",
    PAGE_HEALTH: "System Health",
}


# ============================================================
# THEME (dark dotted grid + glass cards)
# ============================================================
def inject_dashboard_theme():
    st.markdown(
        """
        <style>
        .stApp {
            background-color: #0b0f1a;
            background-image:
                radial-gradient(circle at 1px 1px, rgba(255,255,255,0.06) 1px, transparent 0);
            background-size: 24px 24px;
            color: #e5e7eb;
        }
        section[data-testid="stSidebar"]{
            background: #0b0f1a;
            border-right: 1px solid rgba(255,255,255,0.06);
        }
        .glass {
            background: rgba(255,255,255,0.04);
            border: 1px solid rgba(255,255,255,0.06);
            border-radius: 18px;
            padding: 18px 18px;
            box-shadow: 0 14px 45px rgba(0,0,0,0.45);
        }
        .kpi {
            background: rgba(255,255,255,0.04);
            border: 1px solid rgba(255,255,255,0.06);
            border-radius: 16px;
            padding: 14px 16px;
            box-shadow: 0 10px 30px rgba(0,0,0,0.35);
        }
        .kpi-label {
            font-size: 12px;
            letter-spacing: 0.10em;
            text-transform: uppercase;
            opacity: 0.7;
        }
        .kpi-value {
            font-size: 28px;
            font-weight: 750;
            margin-top: 8px;
            line-height: 1.1;
        }
        .kpi-sub {
            margin-top: 6px;
            font-size: 12px;
            opacity: 0.65;
        }
        .blue { color: #60a5fa; }
        .green { color: #34d399; }
        .purple { color: #a78bfa; }
        .orange { color: #fb923c; }
        .red { color: #f87171; }
        div[data-testid="stDataFrame"]{
            border-radius: 14px;
            overflow: hidden;
            border: 1px solid rgba(255,255,255,0.06);
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def kpi_card(label: str, value: str, color: str = "blue", sub: str | None = None) -> str:
    sub_html = f"<div class='kpi-sub'>{sub}</div>" if sub else ""
    return f"""
    <div class="kpi">
        <div class="kpi-label">{label}</div>
        <div class="kpi-value {color}">{value}</div>
        {sub_html}
    </div>
    """


def visible_statement_count(
    c,
    principal: Principal,
    memberships: list[MembershipRow],
    org_scope_mode: str,
) -> int | None:
    """
    Total statements across the sections the investor page would render.
    None when the principal cannot open that page or a query fails.
    """
    scope = evaluate(principal, PAGE_INVESTOR_STATEMENTS, memberships, org_scope_mode=org_scope_mode)
    if scope.denied:
        return None
    total = 0
    try:
        for section in scope.sections:
            total += list_statements(c, section, page=1, page_size=1, order_by=[]).total
    except Exception as e:
        log.warning("statement count failed for %s: %s", principal.identity_id, e)
        return None
    return total


def render_dashboard(c, principal: Principal, user_email: str | None, org_scope_mode: str, navigate):
    """
    `navigate(page_kind)` switches the current route.
    """
    inject_dashboard_theme()
    st.markdown("## Dashboard")

    role = normalize_role(principal.role)
    investor = is_investor(principal)
    memberships = load_memberships(c, principal.identity_id) if investor else []
    n_orgs = len(memberships)
    n_statements = visible_statement_count(c, principal, memberships, org_scope_mode)

    st.markdown("<div class='glass'>", unsafe_allow_html=True)
    k1, k2, k3, k4 = st.columns(4)
    with k1:
        st.markdown(kpi_card("Signed in", user_email or principal.identity_id, "blue"), unsafe_allow_html=True)
    with k2:
        st.markdown(kpi_card("Role", "Admin" if is_admin(principal) else role.title(), "purple"), unsafe_allow_html=True)
    with k3:
        st.markdown(
            kpi_card(
                "Investor",
                "YES" if investor else "NO",
                "green" if investor else "orange",
                sub=f"{n_orgs} organization(s)" if investor else None,
            ),
            unsafe_allow_html=True,
        )
    with k4:
        st.markdown(
            kpi_card("Visible Statements", str(n_statements) if n_statements is not None else "—", "green"),
            unsafe_allow_html=True,
        )
    st.markdown("</div>", unsafe_allow_html=True)

    st.divider()

    pages = allowed_pages(principal)
    if not pages:
        st.info("Your account has no statement access. Contact an administrator if this is unexpected.")
        return

    st.markdown("### Go to")
    cols = st.columns(len(pages))
    for col, page in zip(cols, pages):
        with col:
            if st.button(PAGE_LABELS.get(page, page), use_container_width=True, key=f"dash_nav_{page}"):
                navigate(page)
