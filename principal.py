# principal.py
# Resolves the authenticated identity into a Principal for one request:
#   contact  (id, contact_types_id)  matched on contact.clerk_id
#   profile  (role)                  matched on auth_user_profiles.id
#   orgs     (org_id)                matched on user_clerk_org_members.user_id
# Missing rows and failed queries both come back as "absent".

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from db import fetch_all, fetch_one

log = logging.getLogger(__name__)

CONTACT_TABLE = "contact"
CONTACT_IDENTITY_COL = "clerk_id"
PROFILE_TABLE = "auth_user_profiles"
MEMBERSHIP_TABLE = "user_clerk_org_members"


def _as_int(v: Any) -> Optional[int]:
    if v is None or isinstance(v, bool):
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


# -------------------------
# ROW PROJECTIONS
# -------------------------
@dataclass(frozen=True)
class ContactRow:
    id: int | None = None
    contact_types_id: int | None = None

    @classmethod
    def from_row(cls, row: dict | None) -> "ContactRow | None":
        if not row:
            return None
        return cls(id=_as_int(row.get("id")), contact_types_id=_as_int(row.get("contact_types_id")))


@dataclass(frozen=True)
class ProfileRow:
    role: str | None = None

    @classmethod
    def from_row(cls, row: dict | None) -> "ProfileRow | None":
        if not row:
            return None
        role = row.get("role")
        return cls(role=str(role) if role is not None else None)


@dataclass(frozen=True)
class MembershipRow:
    org_id: str

    @classmethod
    def from_row(cls, row: dict | None) -> "MembershipRow | None":
        org_id = (row or {}).get("org_id")
        if org_id is None or str(org_id).strip() == "":
            return None
        return cls(org_id=str(org_id))


@dataclass(frozen=True)
class Principal:
    identity_id: str
    role: str | None = None
    contact_id: int | None = None
    contact_type_id: int | None = None


# -------------------------
# LOOKUPS
# -------------------------
def fetch_contact(c, identity_id: str) -> ContactRow | None:
    try:
        row = fetch_one(
            c.table(CONTACT_TABLE)
            .select("id,contact_types_id")
            .eq(CONTACT_IDENTITY_COL, identity_id)
        )
    except Exception as e:
        log.warning("contact lookup failed for %s: %s", identity_id, e)
        return None
    return ContactRow.from_row(row)


def fetch_profile(c, identity_id: str) -> ProfileRow | None:
    try:
        row = fetch_one(c.table(PROFILE_TABLE).select("role").eq("id", identity_id))
    except Exception as e:
        log.warning("profile lookup failed for %s: %s", identity_id, e)
        return None
    return ProfileRow.from_row(row)


def load_memberships(c, identity_id: str) -> list[MembershipRow]:
    """
    Organization memberships for an identity. Rows without an org_id are dropped.
    """
    try:
        rows = fetch_all(c.table(MEMBERSHIP_TABLE).select("org_id").eq("user_id", identity_id))
    except Exception as e:
        log.warning("membership lookup failed for %s: %s", identity_id, e)
        return []

    out: list[MembershipRow] = []
    for r in rows:
        m = MembershipRow.from_row(r)
        if m is not None:
            out.append(m)
    return out


def resolve(c, identity: str | None) -> Principal | None:
    """
    Returns the Principal for an authenticated identity, or None when
    there is no identity (unauthenticated).
    """
    if identity is None or str(identity).strip() == "":
        return None

    identity_id = str(identity)
    contact = fetch_contact(c, identity_id)
    profile = fetch_profile(c, identity_id)

    return Principal(
        identity_id=identity_id,
        role=profile.role if profile else None,
        contact_id=contact.id if contact else None,
        contact_type_id=contact.contact_types_id if contact else None,
    )
