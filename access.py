# access.py
# Per-request page gate: identity -> principal -> scope -> redirect or render.
from __future__ import annotations

import logging
from dataclasses import dataclass

from audit import audit
from config import Settings
from principal import Principal, load_memberships, resolve
from rbac import (
    DENIED,
    PAGE_INVESTOR_STATEMENTS,
    VisibilityScope,
    evaluate,
    is_investor,
)

log = logging.getLogger(__name__)

ROUTE_SIGN_IN = "/sign-in"
ROUTE_DASHBOARD = "/dashboard"
ROUTE_INVESTOR_STATEMENTS = "/dashboard/investor-statements"
ROUTE_ADMIN_STATEMENTS = "/dashboard/admin/investor-statements"
ROUTE_HEALTH = "/dashboard/health"


@dataclass(frozen=True)
class PageAccess:
    principal: Principal | None
    scope: VisibilityScope
    redirect_to: str | None = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None and self.scope.allowed


def authorize_page(c, identity: str | None, page_kind: str, settings: Settings | None = None) -> PageAccess:
    """
    Resolve the caller and decide whether `page_kind` renders.

    No identity        -> redirect to /sign-in
    Denied by policy   -> redirect to /dashboard
    Otherwise          -> allowed, with the sections to render
    """
    return authorize_principal(c, resolve(c, identity), page_kind, settings)


def authorize_principal(
    c,
    principal: Principal | None,
    page_kind: str,
    settings: Settings | None = None,
) -> PageAccess:
    """
    Same decision as authorize_page for a principal this run already resolved.
    """
    settings = settings or Settings()

    if principal is None:
        log.info("unauthenticated request for %s", page_kind)
        return PageAccess(principal=None, scope=DENIED, redirect_to=ROUTE_SIGN_IN)

    memberships = []
    if page_kind == PAGE_INVESTOR_STATEMENTS and is_investor(principal):
        memberships = load_memberships(c, principal.identity_id)

    scope = evaluate(principal, page_kind, memberships, org_scope_mode=settings.org_scope_mode)

    details = {
        "page": page_kind,
        "role": principal.role,
        "contact_type_id": principal.contact_type_id,
        "sections": list(scope.kinds),
        "memberships": len(memberships),
    }

    if scope.denied:
        audit(c, "page_access", "denied", details, actor_user_id=principal.identity_id, to_db=settings.audit_to_db)
        return PageAccess(principal=principal, scope=scope, redirect_to=ROUTE_DASHBOARD)

    audit(c, "page_access", "ok", details, actor_user_id=principal.identity_id, to_db=settings.audit_to_db)
    return PageAccess(principal=principal, scope=scope)
