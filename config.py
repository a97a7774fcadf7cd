# config.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from db import get_secret

APP_BRAND = "Balance Sheet Lender Portal"
APP_VERSION = "v1.0"

ORG_SCOPE_MEMBERS = "members"
ORG_SCOPE_ALL = "all"
VALID_ORG_SCOPE_MODES = {ORG_SCOPE_MEMBERS, ORG_SCOPE_ALL}

DEFAULT_PAGE_SIZE = 25

REQUIRED_SECRETS = ["SUPABASE_URL", "SUPABASE_ANON_KEY"]
OPTIONAL_SECRETS = ["SUPABASE_SERVICE_KEY", "ORG_SCOPE_MODE", "STATEMENTS_PAGE_SIZE", "AUDIT_TO_DB", "LOG_LEVEL"]


def _as_bool(v) -> bool:
    if isinstance(v, bool):
        return v
    return str(v or "").strip().lower() in ("1", "true", "yes", "on")


def _as_int(v, default: int) -> int:
    try:
        n = int(v)
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


@dataclass(frozen=True)
class Settings:
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    org_scope_mode: str = ORG_SCOPE_MEMBERS
    statements_page_size: int = DEFAULT_PAGE_SIZE
    audit_to_db: bool = False
    log_level: str = "INFO"
    app_brand: str = APP_BRAND

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


def load_settings(getter=get_secret) -> Settings:
    """
    Reads settings from env vars / Streamlit secrets.
    Unknown or malformed values fall back to defaults.
    """
    mode = str(getter("ORG_SCOPE_MODE") or ORG_SCOPE_MEMBERS).strip().lower()
    if mode not in VALID_ORG_SCOPE_MODES:
        mode = ORG_SCOPE_MEMBERS

    return Settings(
        supabase_url=getter("SUPABASE_URL"),
        supabase_anon_key=getter("SUPABASE_ANON_KEY"),
        org_scope_mode=mode,
        statements_page_size=_as_int(getter("STATEMENTS_PAGE_SIZE"), DEFAULT_PAGE_SIZE),
        audit_to_db=_as_bool(getter("AUDIT_TO_DB")),
        log_level=str(getter("LOG_LEVEL") or "INFO").strip().upper(),
        app_brand=str(getter("APP_BRAND") or APP_BRAND),
    )


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
