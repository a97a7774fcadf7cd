# audit.py
# Best-effort access audit: always logs, optionally writes audit_log rows.
from __future__ import annotations

import json
import logging
from typing import Any

from db import has_columns, now_iso

log = logging.getLogger(__name__)

# (schema, table, cols) -> bool; column probes are repeated on every page render otherwise
_column_cache: dict[tuple[str, str, str], bool] = {}


def _has_columns(c, schema: str, table: str, cols: list[str]) -> bool:
    key = (schema, table, ",".join(cols))
    if key not in _column_cache:
        _column_cache[key] = has_columns(c.schema(schema), table, cols)
    return _column_cache[key]


def clear_column_cache() -> None:
    _column_cache.clear()


def audit(
    c,
    action: str,
    status: str = "ok",
    details: dict[str, Any] | None = None,
    actor_user_id: str | None = None,
    schema: str = "public",
    to_db: bool = False,
):
    """
    Schema-safe audit logger.

    Minimum required columns: created_at, action, status
    Optional columns: details, actor_user_id

    - Writes only what exists.
    - Never breaks app flow.
    """
    level = logging.INFO if status == "ok" else logging.WARNING
    log.log(level, "%s status=%s actor=%s details=%s", action, status, actor_user_id, details or {})

    if not to_db or c is None:
        return

    try:
        payload: dict[str, Any] = {
            "created_at": now_iso(),
            "action": action,
            "status": status,
        }

        if _has_columns(c, schema, "audit_log", ["details"]):
            payload["details"] = json.dumps(details or {}, default=str)

        if actor_user_id is not None and _has_columns(c, schema, "audit_log", ["actor_user_id"]):
            payload["actor_user_id"] = actor_user_id

        c.schema(schema).table("audit_log").insert(payload).execute()
    except Exception as e:
        log.warning("audit_log write failed for %s: %s", action, e)
