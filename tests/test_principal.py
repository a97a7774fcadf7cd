from principal import ContactRow, MembershipRow, Principal, load_memberships, resolve


def test_no_identity_is_unauthenticated(fake_client):
    c = fake_client()
    assert resolve(c, None) is None
    assert resolve(c, "") is None
    assert c.executed == []


def test_resolves_contact_and_profile(fake_client):
    c = fake_client(rows={
        "contact": [{"id": 42, "contact_types_id": 12}],
        "auth_user_profiles": [{"role": "standard"}],
    })
    principal = resolve(c, "user_abc")
    assert principal == Principal(identity_id="user_abc", role="standard", contact_id=42, contact_type_id=12)

    (contact_q,) = c.queries("contact")
    assert contact_q.filters("select") == [("id,contact_types_id",)]
    assert contact_q.filters("eq") == [("clerk_id", "user_abc")]

    (profile_q,) = c.queries("auth_user_profiles")
    assert profile_q.filters("select") == [("role",)]
    assert profile_q.filters("eq") == [("id", "user_abc")]


def test_missing_rows_are_absent(fake_client):
    c = fake_client()
    principal = resolve(c, "user_abc")
    assert principal == Principal(identity_id="user_abc")


def test_query_errors_are_absent(fake_client):
    c = fake_client(
        rows={"auth_user_profiles": [{"role": "admin"}]},
        errors={"contact": RuntimeError("boom")},
    )
    principal = resolve(c, "user_abc")
    assert principal.role == "admin"
    assert principal.contact_id is None
    assert principal.contact_type_id is None


def test_contact_type_coerced_to_int():
    assert ContactRow.from_row({"id": "42", "contact_types_id": "12"}) == ContactRow(id=42, contact_types_id=12)
    assert ContactRow.from_row({"id": 1, "contact_types_id": "investor"}).contact_types_id is None
    assert ContactRow.from_row(None) is None


def test_load_memberships(fake_client):
    c = fake_client(rows={"user_clerk_org_members": [{"org_id": "org_a"}, {"org_id": None}, {"org_id": "org_b"}]})
    assert load_memberships(c, "user_abc") == [MembershipRow("org_a"), MembershipRow("org_b")]
    (q,) = c.queries("user_clerk_org_members")
    assert q.filters("eq") == [("user_id", "user_abc")]


def test_load_memberships_error_is_empty(fake_client):
    c = fake_client(errors={"user_clerk_org_members": RuntimeError("down")})
    assert load_memberships(c, "user_abc") == []
