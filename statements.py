# statements.py
# Read-only queries against bs_investor_statements, one per scope section.
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pandas as pd
from postgrest.exceptions import APIError

from db import has_columns
from rbac import SCOPE_INVESTOR, SCOPE_ORGANIZATIONS, SCOPE_UNRESTRICTED, ScopeSection

log = logging.getLogger(__name__)

STATEMENTS_TABLE = "bs_investor_statements"
INVESTOR_COL = "investor_id"
ORG_COL = "org_id"

# newest first; first existing column is the primary sort key
ORDER_CANDIDATES = ["statement_date", "created_at", "id"]

DISPLAY_COLUMNS = [
    "id",
    "statement_date",
    "period_start",
    "period_end",
    "investor_id",
    "org_id",
    "deal_id",
    "file_name",
    "created_at",
]


@dataclass(frozen=True)
class StatementPage:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    page: int = 1
    page_size: int = 25
    total: int = 0

    @property
    def page_count(self) -> int:
        if self.total <= 0:
            return 1
        return (self.total + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def apply_section(query, section: ScopeSection):
    """
    Narrows a statements query to one scope section.
    Returns None when the section can match nothing (empty org set).
    """
    if section.kind == SCOPE_UNRESTRICTED:
        return query
    if section.kind == SCOPE_INVESTOR:
        if section.investor_id is None:
            return None
        return query.eq(INVESTOR_COL, int(section.investor_id))
    if section.kind == SCOPE_ORGANIZATIONS:
        if section.org_ids is None:
            # every organization's statements
            return query.not_.is_(ORG_COL, "null")
        if not section.org_ids:
            return None
        return query.in_(ORG_COL, sorted(section.org_ids))
    raise ValueError(f"Unknown scope section: {section.kind}")


def statement_order_columns(c) -> list[str]:
    """
    Sort columns that actually exist on the statements table, newest first.
    Falls back to no ordering when none of the candidates exist.
    """
    return [col for col in ORDER_CANDIDATES if has_columns(c, STATEMENTS_TABLE, [col])]


def _fetch_page(c, section, order_by, investor_filter, page, page_size):
    """
    Returns (rows, total) for one page, or None when the section matches nothing.
    """
    query = c.table(STATEMENTS_TABLE).select("*", count="exact")
    query = apply_section(query, section)
    if query is None:
        return None

    if investor_filter is not None:
        query = query.eq(INVESTOR_COL, int(investor_filter))

    for col in order_by:
        query = query.order(col, desc=True)

    start = (page - 1) * page_size
    resp = query.range(start, start + page_size - 1).execute()

    rows = list(getattr(resp, "data", None) or [])
    total = getattr(resp, "count", None)
    if total is None:
        total = start + len(rows)
    return rows, int(total)


def list_statements(
    c,
    section: ScopeSection,
    page: int = 1,
    page_size: int = 25,
    investor_filter: int | None = None,
    order_by: list[str] | None = None,
) -> StatementPage:
    """
    One page of statements visible under `section`.
    `investor_filter` narrows further (admin list search box).
    A page past the end is clamped to the last page.
    """
    page = max(int(page), 1)
    page_size = max(int(page_size), 1)
    if order_by is None:
        order_by = statement_order_columns(c)

    try:
        fetched = _fetch_page(c, section, order_by, investor_filter, page, page_size)
    except APIError as e:
        # PostgREST answers 416 when the offset is past the last row
        if page == 1:
            raise
        log.info("statements page %s out of range (%s), retrying from page 1", page, e)
        page = 1
        fetched = _fetch_page(c, section, order_by, investor_filter, page, page_size)

    if fetched is None:
        return StatementPage(page=page, page_size=page_size)

    rows, total = fetched
    last_page = max((total + page_size - 1) // page_size, 1)
    if page > last_page:
        page = last_page
        rows, total = _fetch_page(c, section, order_by, investor_filter, page, page_size)

    log.debug("statements section=%s page=%s rows=%s total=%s", section.kind, page, len(rows), total)
    return StatementPage(rows=rows, page=page, page_size=page_size, total=total)


def to_df(statement_page: StatementPage) -> pd.DataFrame:
    df = pd.DataFrame(statement_page.rows)
    if df.empty:
        return df
    cols = [col for col in DISPLAY_COLUMNS if col in df.columns]
    return df[cols] if cols else df
