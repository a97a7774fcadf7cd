# db.py
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import streamlit as st
from supabase import create_client

log = logging.getLogger(__name__)


# -------------------------
# TIME HELPERS
# -------------------------
def now_iso() -> str:
    """UTC ISO string with Z suffix."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


# -------------------------
# SECRETS
# -------------------------
def get_secret(key: str):
    # Railway / docker (env vars)
    if os.getenv(key):
        return os.getenv(key)

    # Streamlit Cloud (secrets)
    try:
        if hasattr(st, "secrets") and key in st.secrets:
            return st.secrets[key]
    except FileNotFoundError:
        # no secrets.toml at all
        return None

    return None


# -------------------------
# SUPABASE CLIENTS
# -------------------------
def _extract_access_token(session: Any) -> Optional[str]:
    """
    Tries to pull an access token from various session shapes:
    - supabase-py session object: session.access_token
    - dict-like session: session["access_token"]
    """
    if session is None:
        return None

    token = getattr(session, "access_token", None)
    if token:
        return token

    if isinstance(session, dict):
        return session.get("access_token") or None

    return None


def _extract_refresh_token(session: Any) -> Optional[str]:
    if session is None:
        return None
    token = getattr(session, "refresh_token", None)
    if token:
        return token
    if isinstance(session, dict):
        return session.get("refresh_token") or None
    return None


def public_client(supabase_url: str, supabase_anon_key: str):
    return create_client(supabase_url, supabase_anon_key)


def authed_client(supabase_url: str, supabase_anon_key: str, session: Any):
    """
    Creates a Supabase client and attaches the user's JWT to PostgREST
    so that RLS policies apply to every statement query.
    """
    c = create_client(supabase_url, supabase_anon_key)

    token = _extract_access_token(session)
    if token:
        c.postgrest.auth(token)

        refresh = _extract_refresh_token(session)
        if refresh:
            try:
                c.auth.set_session(token, refresh)
            except Exception as e:
                # expired refresh token; PostgREST still carries the JWT
                log.warning("could not restore auth session: %s", e)

    return c


def session_identity(session: Any) -> Optional[str]:
    """
    Returns the authenticated user id from a Supabase session, or None.
    """
    if session is None:
        return None
    user = getattr(session, "user", None)
    if user is None and isinstance(session, dict):
        user = session.get("user")
    if user is None:
        return None
    uid = getattr(user, "id", None)
    if uid is None and isinstance(user, dict):
        uid = user.get("id")
    return str(uid) if uid else None


# -------------------------
# QUERY HELPERS
# -------------------------
def fetch_one(query_builder) -> Optional[Dict[str, Any]]:
    """
    Execute a Supabase query builder and return the first row (dict) or None.
    """
    resp = query_builder.limit(1).execute()
    data = getattr(resp, "data", None) or []
    return data[0] if data else None


def fetch_all(query_builder) -> List[Dict[str, Any]]:
    resp = query_builder.execute()
    return list(getattr(resp, "data", None) or [])


def has_columns(c, table: str, columns: Iterable[str]) -> bool:
    """
    Returns True if all requested columns can be selected from the table.
    Uses a lightweight select test; if Supabase returns an error, we treat as missing.
    """
    cols = list(columns)
    if not cols:
        return True
    try:
        c.table(table).select(",".join(cols)).limit(1).execute()
        return True
    except Exception:
        return False


# -------------------------
# SCHEMA CHECK
# -------------------------
REQUIRED_TABLES = [
    "auth_user_profiles",
    "contact",
    "user_clerk_org_members",
    "bs_investor_statements",
]

REQUIRED_COLUMNS = [
    ("auth_user_profiles", ["id", "role"]),
    ("contact", ["id", "contact_types_id", "clerk_id"]),
    ("user_clerk_org_members", ["user_id", "org_id"]),
    ("bs_investor_statements", ["id", "investor_id"]),
]


def missing_schema(c) -> tuple[list[str], list[str]]:
    """
    Returns (missing_tables, bad_column_sets) for the tables the access
    logic and the statement lists depend on.
    """
    missing_tables = []
    for t in REQUIRED_TABLES:
        try:
            c.table(t).select("*").limit(1).execute()
        except Exception:
            missing_tables.append(t)

    bad_cols = []
    for table, cols in REQUIRED_COLUMNS:
        if table in missing_tables:
            continue
        if not has_columns(c, table, cols):
            bad_cols.append(f"{table}: {', '.join(cols)}")

    return missing_tables, bad_cols


def schema_check_or_stop(c) -> None:
    """
    Basic safety checks so the app fails with a readable message
    instead of crashing later.
    """
    missing_tables, bad_cols = missing_schema(c)

    if missing_tables:
        log.error("schema check failed, missing tables: %s", missing_tables)
        st.error("Database schema is missing required tables:")
        st.code("\n".join(missing_tables))
        st.stop()

    if bad_cols:
        log.error("schema check failed, missing columns: %s", bad_cols)
        st.error("Database tables exist, but some expected columns are missing:")
        st.code("\n".join(bad_cols))
        st.stop()
