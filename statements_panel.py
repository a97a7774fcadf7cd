# statements_panel.py
# Investor statement pages. Both only render after access.authorize_page allowed them.
from __future__ import annotations

import streamlit as st
from postgrest.exceptions import APIError

from rbac import SCOPE_INVESTOR, SCOPE_ORGANIZATIONS, ScopeSection, VisibilityScope
from statements import list_statements, statement_order_columns, to_df

ADMIN_KEY_PREFIX = "admin_stmt_"


def apierror_message(e: Exception) -> str:
    """
    Extracts PostgREST / Supabase error payload message cleanly.
    """
    if isinstance(e, APIError):
        msg = getattr(e, "message", None) or getattr(e, "details", None) or getattr(e, "hint", None)
        if msg:
            return str(msg)
        payload = e.args[0] if getattr(e, "args", None) else {}
        if isinstance(payload, dict):
            return str(payload.get("message") or payload.get("details") or payload.get("hint") or "APIError")
    return str(e)


def show_api_error(e: Exception, title="Supabase error"):
    st.error(title)
    st.code(apierror_message(e), language="text")


def reset_pages(state, prefix: str) -> None:
    """
    Sends every list whose key starts with `prefix` back to page 1.
    """
    for k in [k for k in state.keys() if str(k).startswith(prefix) and str(k).endswith("_page")]:
        del state[k]


def render_statement_list(
    c,
    section: ScopeSection,
    key: str,
    page_size: int = 25,
    investor_filter: int | None = None,
    order_by: list[str] | None = None,
):
    """
    Paginated table for one scope section, with CSV export of the current page.
    """
    page_key = f"{key}_page"
    page = int(st.session_state.get(page_key) or 1)

    try:
        result = list_statements(
            c, section, page=page, page_size=page_size, investor_filter=investor_filter, order_by=order_by
        )
    except Exception as e:
        show_api_error(e, "Failed loading investor statements")
        return

    # past-the-end pages come back clamped
    st.session_state[page_key] = result.page

    df = to_df(result)
    if df.empty:
        st.info("No statements found.")
        return

    st.dataframe(df, use_container_width=True, hide_index=True)

    col1, col2, col3, col4 = st.columns([1, 2, 1, 2])
    with col1:
        if st.button("◀ Prev", disabled=not result.has_prev, key=f"{key}_prev", use_container_width=True):
            st.session_state[page_key] = result.page - 1
            st.rerun()
    with col2:
        st.caption(f"Page {result.page} of {result.page_count} • {result.total} statement(s)")
    with col3:
        if st.button("Next ▶", disabled=not result.has_next, key=f"{key}_next", use_container_width=True):
            st.session_state[page_key] = result.page + 1
            st.rerun()
    with col4:
        st.download_button(
            "⬇️ Download CSV",
            df.to_csv(index=False).encode("utf-8"),
            file_name=f"investor_statements_{key}_p{result.page}.csv",
            mime="text/csv",
            use_container_width=True,
            key=f"{key}_csv",
        )


def render_investor_statements(c, scope: VisibilityScope, page_size: int = 25):
    st.header("Investor Statements")

    kinds = scope.kinds
    has_org_list = SCOPE_ORGANIZATIONS in kinds
    order_by = statement_order_columns(c)

    for i, section in enumerate(scope.sections):
        key = f"inv_stmt_{i}_{section.kind}"
        if has_org_list and section.kind == SCOPE_INVESTOR and i == 0:
            st.subheader("Your Individual Statements")
        elif section.kind == SCOPE_ORGANIZATIONS:
            st.subheader("Your Organization Statements")
            st.caption("As a member of organizations, you can also view statements for those entities.")
        elif has_org_list:
            st.subheader("All Statements")
        render_statement_list(c, section, key=key, page_size=page_size, order_by=order_by)


def render_admin_statements(c, scope: VisibilityScope, page_size: int = 25):
    st.header("Manage Investor Statements")
    st.caption("All investor statements. Filter by investor (contact id).")

    raw = st.text_input(
        "Investor ID",
        value="",
        placeholder="e.g., 1042",
        key="admin_stmt_investor",
        on_change=reset_pages,
        args=(st.session_state, ADMIN_KEY_PREFIX),
    )
    investor_filter = None
    if raw.strip():
        try:
            investor_filter = int(raw.strip())
        except ValueError:
            st.warning("Investor ID must be a number.")
            return

    order_by = statement_order_columns(c)
    for i, section in enumerate(scope.sections):
        render_statement_list(
            c,
            section,
            key=f"{ADMIN_KEY_PREFIX}{i}",
            page_size=page_size,
            investor_filter=investor_filter,
            order_by=order_by,
        )
