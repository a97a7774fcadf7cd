# rbac.py
# Role permissions + statement visibility policy.
#
# evaluate() is pure: it only looks at the Principal it is given and the
# membership snapshot passed in. Loading those is principal.py's job.

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from config import ORG_SCOPE_ALL, ORG_SCOPE_MEMBERS
from principal import MembershipRow, Principal

ROLE_ADMIN = "admin"
ROLE_STANDARD = "standard"

VALID_ROLES = {ROLE_ADMIN, ROLE_STANDARD}

# contact_types.id for "Balance Sheet Investor"
INVESTOR_CONTACT_TYPE_ID = 12

PAGE_ADMIN_STATEMENTS = "admin_statements"
PAGE_INVESTOR_STATEMENTS = "investor_statements"
PAGE_HEALTH = "health"

# ============================================================
# Permissions by role
# ============================================================
PERMISSIONS: dict[str, set[str]] = {
    ROLE_ADMIN: {
        "view_all_statements",
        "manage_statements",
        "view_health",
    },
    ROLE_STANDARD: set(),
}

PAGE_PERMISSIONS: dict[str, str] = {
    PAGE_ADMIN_STATEMENTS: "manage_statements",
    PAGE_HEALTH: "view_health",
}


def normalize_role(role: str | None) -> str:
    r = (role or ROLE_STANDARD).strip().lower()
    return r if r in VALID_ROLES else ROLE_STANDARD


def is_admin(principal: Principal | None) -> bool:
    return principal is not None and normalize_role(principal.role) == ROLE_ADMIN


def is_investor(principal: Principal | None) -> bool:
    return principal is not None and principal.contact_type_id == INVESTOR_CONTACT_TYPE_ID


def can(actor_role: str | None, perm: str) -> bool:
    return perm in PERMISSIONS.get(normalize_role(actor_role), set())


def require(actor_role: str | None, perm: str):
    if not can(actor_role, perm):
        raise PermissionError(f"Permission denied: {perm} for role '{normalize_role(actor_role)}'.")


def allowed_pages(principal: Principal | None) -> list[str]:
    """
    Pages shown in navigation for this principal. Order matters.
    """
    if principal is None:
        return []
    pages: list[str] = []
    if is_investor(principal) or is_admin(principal):
        pages.append(PAGE_INVESTOR_STATEMENTS)
    for page, perm in PAGE_PERMISSIONS.items():
        if can(principal.role, perm):
            pages.append(page)
    return pages


# ============================================================
# Visibility scope
# ============================================================
SCOPE_UNRESTRICTED = "unrestricted"
SCOPE_INVESTOR = "investor"
SCOPE_ORGANIZATIONS = "organizations"


@dataclass(frozen=True)
class ScopeSection:
    """
    One rendered statement list.
      unrestricted  -> no filter
      investor      -> investor_id == investor_id
      organizations -> org_id in org_ids (org_ids None == every organization)
    """
    kind: str
    investor_id: int | None = None
    org_ids: frozenset[str] | None = None


@dataclass(frozen=True)
class VisibilityScope:
    allowed: bool
    sections: tuple[ScopeSection, ...] = field(default_factory=tuple)

    @property
    def denied(self) -> bool:
        return not self.allowed

    @property
    def kinds(self) -> tuple[str, ...]:
        return tuple(s.kind for s in self.sections)


DENIED = VisibilityScope(allowed=False)


def unrestricted() -> ScopeSection:
    return ScopeSection(kind=SCOPE_UNRESTRICTED)


def by_investor(contact_id: int | None) -> ScopeSection:
    return ScopeSection(kind=SCOPE_INVESTOR, investor_id=contact_id)


def by_organizations(org_ids: Iterable[str] | None) -> ScopeSection:
    return ScopeSection(
        kind=SCOPE_ORGANIZATIONS,
        org_ids=frozenset(org_ids) if org_ids is not None else None,
    )


def _evaluate_investor_page(
    principal: Principal,
    memberships: Iterable[MembershipRow],
    org_scope_mode: str,
) -> VisibilityScope:
    investor = is_investor(principal)
    admin = is_admin(principal)

    if not investor and not admin:
        return DENIED

    # an investor without a contact id has nothing to filter on
    if investor and not admin and principal.contact_id is None:
        return DENIED

    orgs = sorted({m.org_id for m in memberships}) if investor else []
    sections: list[ScopeSection] = []

    if orgs:
        sections.append(by_investor(principal.contact_id))
        if org_scope_mode == ORG_SCOPE_ALL:
            sections.append(by_organizations(None))
        else:
            sections.append(by_organizations(orgs))

    if not orgs or admin:
        if investor and not admin:
            sections.append(by_investor(principal.contact_id))
        else:
            sections.append(unrestricted())

    return VisibilityScope(allowed=True, sections=tuple(sections))


def evaluate(
    principal: Principal | None,
    page_kind: str,
    memberships: Iterable[MembershipRow] = (),
    org_scope_mode: str = ORG_SCOPE_MEMBERS,
) -> VisibilityScope:
    """
    Decide which statements `principal` may see on `page_kind`.
    Never raises; anything missing narrows to DENIED.
    """
    if principal is None:
        return DENIED

    if page_kind == PAGE_ADMIN_STATEMENTS:
        if is_admin(principal):
            return VisibilityScope(allowed=True, sections=(unrestricted(),))
        return DENIED

    if page_kind == PAGE_INVESTOR_STATEMENTS:
        return _evaluate_investor_page(principal, memberships, org_scope_mode)

    # pages with no statement list: plain permission check
    perm = PAGE_PERMISSIONS.get(page_kind)
    if perm and can(principal.role, perm):
        return VisibilityScope(allowed=True)

    return DENIED
