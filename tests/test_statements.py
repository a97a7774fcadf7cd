import pandas as pd
import pytest
from postgrest.exceptions import APIError

from rbac import ScopeSection, by_investor, by_organizations, unrestricted
from statements import (
    ORDER_CANDIDATES,
    StatementPage,
    apply_section,
    list_statements,
    statement_order_columns,
    to_df,
)

TABLE = "bs_investor_statements"


def _rows(n):
    return [{"id": i, "investor_id": 42, "statement_date": f"2024-0{i % 9 + 1}-01", "extra": "x"} for i in range(n)]


def _page_queries(c):
    """Statement queries that fetched a page (column probes excluded)."""
    return [q for q in c.queries(TABLE) if q.filters("range")]


def _range_start(q):
    return q.filters("range")[0][0]


def test_investor_section_filters_by_investor(fake_client):
    c = fake_client(rows={TABLE: _rows(3)}, counts={TABLE: 3})
    result = list_statements(c, by_investor(42), page=1, page_size=25)
    assert result.total == 3
    assert len(result.rows) == 3
    (q,) = _page_queries(c)
    assert q.filters("eq") == [("investor_id", 42)]
    assert q.filters("range") == [(0, 24)]
    assert q.filters("order") == [(col,) for col in ORDER_CANDIDATES]


def test_org_section_filters_by_member_orgs(fake_client):
    c = fake_client(rows={TABLE: _rows(1)})
    list_statements(c, by_organizations(["org_b", "org_a"]), order_by=[])
    (q,) = _page_queries(c)
    assert q.filters("in_") == [("org_id", ["org_a", "org_b"])]


def test_all_orgs_section_requires_an_org(fake_client):
    c = fake_client(rows={TABLE: _rows(1)})
    list_statements(c, by_organizations(None), order_by=[])
    (q,) = _page_queries(c)
    assert q.filters("not.is_") == [("org_id", "null")]
    assert q.filters("in_") == []


def test_unrestricted_section_has_no_filter(fake_client):
    c = fake_client(rows={TABLE: _rows(2)})
    list_statements(c, unrestricted(), order_by=[])
    (q,) = _page_queries(c)
    assert q.filters("eq") == []
    assert q.filters("in_") == []


def test_empty_org_set_skips_query(fake_client):
    c = fake_client(rows={TABLE: _rows(2)})
    result = list_statements(c, by_organizations([]), order_by=[])
    assert result.rows == []
    assert result.total == 0
    assert c.executed == []


def test_investor_section_without_id_matches_nothing(fake_client):
    c = fake_client(rows={TABLE: _rows(2)})
    result = list_statements(c, by_investor(None), order_by=[])
    assert result.rows == []
    assert c.executed == []


def test_pagination_range_and_counts(fake_client):
    c = fake_client(rows={TABLE: _rows(10)}, counts={TABLE: 35})
    result = list_statements(c, unrestricted(), page=3, page_size=10, order_by=[])
    (q,) = _page_queries(c)
    assert q.filters("range") == [(20, 29)]
    assert result.page_count == 4
    assert result.has_prev
    assert result.has_next


def test_page_past_the_end_is_clamped(fake_client):
    def rows(q):
        return _rows(1) if _range_start(q) == 0 else []

    c = fake_client(rows={TABLE: rows}, counts={TABLE: 1})
    result = list_statements(c, unrestricted(), page=5, page_size=25, investor_filter=7, order_by=[])
    assert result.page == 1
    assert result.total == 1
    assert len(result.rows) == 1
    assert not result.has_next
    assert [_range_start(q) for q in _page_queries(c)] == [100, 0]
    assert all(q.filters("eq") == [("investor_id", 7)] for q in _page_queries(c))


def test_clamps_to_last_page_not_first(fake_client):
    c = fake_client(rows={TABLE: _rows(5)}, counts={TABLE: 45})
    result = list_statements(c, unrestricted(), page=9, page_size=10, order_by=[])
    assert result.page == 5
    assert [_range_start(q) for q in _page_queries(c)] == [80, 40]


def test_out_of_range_error_retries_from_first_page(fake_client):
    def rows(q):
        if _range_start(q) > 0:
            raise APIError({"message": "Requested range not satisfiable", "code": "PGRST103"})
        return _rows(2)

    c = fake_client(rows={TABLE: rows}, counts={TABLE: 2})
    result = list_statements(c, unrestricted(), page=4, page_size=25, order_by=[])
    assert result.page == 1
    assert len(result.rows) == 2


def test_first_page_api_error_propagates(fake_client):
    c = fake_client(errors={TABLE: APIError({"message": "boom"})})
    with pytest.raises(APIError):
        list_statements(c, unrestricted(), order_by=[])


def test_order_columns_skip_missing_columns(fake_client):
    def rows(q):
        if q.filters("limit") and q.filters("select") == [("statement_date",)]:
            raise APIError({"message": "column bs_investor_statements.statement_date does not exist"})
        return []

    c = fake_client(rows={TABLE: rows})
    assert statement_order_columns(c) == ["created_at", "id"]

    list_statements(c, unrestricted())
    (q,) = _page_queries(c)
    assert q.filters("order") == [("created_at",), ("id",)]


def test_no_order_columns_means_unordered(fake_client):
    c = fake_client(rows={TABLE: _rows(1)})
    list_statements(c, unrestricted(), order_by=[])
    (q,) = _page_queries(c)
    assert q.filters("order") == []


def test_admin_investor_filter(fake_client):
    c = fake_client(rows={TABLE: _rows(1)})
    list_statements(c, unrestricted(), investor_filter=7, order_by=[])
    (q,) = _page_queries(c)
    assert q.filters("eq") == [("investor_id", 7)]


def test_bad_page_values_clamped(fake_client):
    c = fake_client(rows={TABLE: []})
    result = list_statements(c, unrestricted(), page=0, page_size=0, order_by=[])
    assert result.page == 1
    assert result.page_size == 1
    assert not result.has_next


def test_unknown_section_kind_raises():
    with pytest.raises(ValueError):
        apply_section(object(), ScopeSection(kind="deal"))


def test_to_df_keeps_display_columns():
    df = to_df(StatementPage(rows=_rows(2)))
    assert list(df.columns) == ["id", "statement_date", "investor_id"]
    assert to_df(StatementPage()).empty
    assert isinstance(to_df(StatementPage()), pd.DataFrame)
