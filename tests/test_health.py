from health_panel import CRITICAL_TABLES, env_checks, run_health_checks, table_checks


def test_env_checks_required_and_optional():
    checks = {c["Check"]: c["Status"] for c in env_checks(lambda k: "x" if k == "SUPABASE_URL" else None)}
    assert checks["Secret SUPABASE_URL"] == "PASS"
    assert checks["Secret SUPABASE_ANON_KEY"] == "FAIL"
    assert checks["Secret AUDIT_TO_DB"] == "SKIP"


def test_rls_protected_tables_count_as_present(fake_client):
    client = fake_client(errors={
        "deal": RuntimeError("permission denied for table deal"),
        "document_files": RuntimeError('relation "document_files" does not exist'),
    })
    checks = {row["Check"]: row for row in table_checks(client)}
    assert checks["Database connection"]["Status"] == "PASS"
    assert checks["Table deal"]["Status"] == "PASS"
    assert checks["Table deal"]["Details"] == "Exists (RLS protected)"
    assert checks["Table document_files"]["Status"] == "FAIL"
    assert len(checks) == len(CRITICAL_TABLES) + 1


def test_no_client_skips_table_checks():
    checks = run_health_checks(None, getter=lambda k: None)
    names = [c["Check"] for c in checks]
    assert "Supabase client created" in names
    assert not any(n.startswith("Table ") for n in names)
