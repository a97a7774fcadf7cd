# health_panel.py
from __future__ import annotations

import pandas as pd
import streamlit as st

from config import OPTIONAL_SECRETS, REQUIRED_SECRETS
from db import get_secret

CONNECTIVITY_TABLE = "contact_types"

CRITICAL_TABLES = [
    "auth_user_profiles",
    "contact",
    "deal",
    "document_files",
    "bs_investor_deals",
    "bs_investor_statements",
    "bs_investor_distributions",
    "user_clerk_org_members",
    "deal_appraisals",
]

RLS_MARKERS = ("permission denied", "rls", "row-level security", "42501")


def _try_select(sb, table: str, cols: str = "*", limit: int = 1):
    """
    Returns (ok: bool, message: str, rows: list[dict]).
    """
    try:
        rows = sb.table(table).select(cols).limit(limit).execute().data or []
        return True, f"OK ({len(rows)} row(s) sample)", rows
    except Exception as e:
        return False, str(e), []


def _is_rls_error(msg: str) -> bool:
    m = (msg or "").lower()
    return any(marker in m for marker in RLS_MARKERS)


def env_checks(getter=get_secret) -> list[dict]:
    checks = []
    for key in REQUIRED_SECRETS:
        present = bool(getter(key))
        checks.append({
            "Check": f"Secret {key}",
            "Status": "PASS" if present else "FAIL",
            "Details": "Set" if present else "Missing (required)",
        })
    for key in OPTIONAL_SECRETS:
        present = bool(getter(key))
        checks.append({
            "Check": f"Secret {key}",
            "Status": "PASS" if present else "SKIP",
            "Details": "Set" if present else "Not set (optional)",
        })
    return checks


def table_checks(sb) -> list[dict]:
    checks = []

    ok, msg, rows = _try_select(sb, CONNECTIVITY_TABLE, "id", 1)
    if ok:
        checks.append({"Check": "Database connection", "Status": "PASS", "Details": msg})
    elif _is_rls_error(msg):
        checks.append({"Check": "Database connection", "Status": "PASS", "Details": "Reachable (RLS protected)"})
    else:
        checks.append({"Check": "Database connection", "Status": "FAIL", "Details": msg})

    for table in CRITICAL_TABLES:
        ok, msg, _ = _try_select(sb, table, "*", 1)
        if ok:
            status, details = "PASS", msg
        elif _is_rls_error(msg):
            status, details = "PASS", "Exists (RLS protected)"
        else:
            status, details = "FAIL", msg
        checks.append({"Check": f"Table {table}", "Status": status, "Details": details})

    return checks


def run_health_checks(sb, getter=get_secret) -> list[dict]:
    checks = env_checks(getter)
    checks.append({
        "Check": "Supabase client created",
        "Status": "PASS" if sb is not None else "FAIL",
        "Details": "Client available" if sb is not None else "No client (missing URL/key)",
    })
    if sb is not None:
        checks.extend(table_checks(sb))
    return checks


def render_health(sb):
    st.header("System Health")
    st.caption("Configuration, connectivity and table checks. Use this page to diagnose empty statement lists.")

    df = pd.DataFrame(run_health_checks(sb))
    st.dataframe(df, use_container_width=True, hide_index=True)

    n_fail = int((df["Status"] == "FAIL").sum()) if not df.empty else 0
    if n_fail:
        st.warning(f"{n_fail} check(s) failing.")
    else:
        st.success("All checks passing.")

    st.divider()
    st.subheader("Quick Fixes")
    st.markdown(
        """
**If investors are redirected to the dashboard**
- Confirm `contact.clerk_id` matches the auth user id and `contact_types_id = 12`.

**If the organization list is empty**
- Check `user_clerk_org_members` rows (`user_id`, `org_id`) and that `bs_investor_statements.org_id` is set.

**If every table shows FAIL**
- Check `SUPABASE_URL` / `SUPABASE_ANON_KEY` in secrets.
"""
    )
