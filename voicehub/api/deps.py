"""FastAPI dependencies for authentication and tenant context resolution.

Route handlers never check access themselves: they declare one of the typed
contexts below (``WorkspaceCtx``, ``PartnerCtx``, ``SuperAdminCtx``, ...) and
receive an already-authorized value. Any resolution failure becomes the same
401 ``{"error": "Unauthorized"}``.
"""

import logging
import uuid
from collections.abc import Callable, Collection, Coroutine
from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from voicehub.core.database import get_session
from voicehub.core.errors import PaymentRequired, Unauthenticated
from voicehub.core.security import decode_session_token
from voicehub.models.partner import Partner, PartnerMemberRole
from voicehub.models.principal import Principal
from voicehub.models.workspace import WorkspaceMemberRole
from voicehub.services.billing import get_paywall_status
from voicehub.services.tenancy import (
    PARTNER_ADMIN_ROLES,
    WORKSPACE_ADMIN_ROLES,
    PartnerContext,
    SuperAdminContext,
    WorkspaceContext,
    resolve_partner_context,
    resolve_partner_from_host,
    resolve_super_admin_context,
    resolve_workspace_context,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

MUTATION_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

Session = Annotated[AsyncSession, Depends(get_session)]


# ── Identity ──────────────────────────────────────────────────

async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    session: Session,
) -> Principal | None:
    """Resolve the bearer session token to a Principal, or ``None``."""
    if credentials is None:
        return None

    try:
        payload = decode_session_token(credentials.credentials)
        principal_id = uuid.UUID(payload["sub"])
    except (JWTError, KeyError, ValueError):
        logger.debug("Rejected invalid or expired session token")
        return None

    principal = await session.get(Principal, principal_id)
    if principal is None or not principal.is_active:
        return None
    return principal


OptionalPrincipal = Annotated[Principal | None, Depends(get_current_principal)]


async def require_principal(principal: OptionalPrincipal) -> Principal:
    if principal is None:
        raise Unauthenticated()
    return principal


CurrentPrincipal = Annotated[Principal, Depends(require_principal)]


# ── Partner from hostname ─────────────────────────────────────

async def get_host_partner(request: Request, session: Session) -> Partner | None:
    return await resolve_partner_from_host(session, request.headers.get("host"))


HostPartner = Annotated[Partner | None, Depends(get_host_partner)]


# ── Context dependencies ──────────────────────────────────────

def workspace_context(
    required_roles: Collection[WorkspaceMemberRole] | None = None,
    skip_paywall: bool = False,
) -> Callable[..., Coroutine[Any, Any, WorkspaceContext]]:
    """Build a dependency resolving the ``{workspace_slug}`` path parameter.

    Mutations on a paywalled workspace are refused with 402 unless
    ``skip_paywall`` is set (billing endpoints must stay reachable).
    """

    async def dependency(
        workspace_slug: str,
        request: Request,
        principal: OptionalPrincipal,
        session: Session,
    ) -> WorkspaceContext:
        ctx = await resolve_workspace_context(session, principal, workspace_slug, required_roles)
        if ctx is None:
            raise Unauthenticated()

        if not skip_paywall and request.method in MUTATION_METHODS:
            paywall = await get_paywall_status(session, ctx.workspace)
            if paywall.is_paywalled:
                raise PaymentRequired(paywall.reason)
        return ctx

    return dependency


def partner_context(
    required_roles: Collection[PartnerMemberRole] | None = None,
) -> Callable[..., Coroutine[Any, Any, PartnerContext]]:
    """Build a dependency resolving the partner of the request hostname."""

    async def dependency(
        partner: HostPartner,
        principal: OptionalPrincipal,
        session: Session,
    ) -> PartnerContext:
        ctx = await resolve_partner_context(session, principal, partner, required_roles)
        if ctx is None:
            raise Unauthenticated()
        return ctx

    return dependency


async def get_super_admin_context(
    principal: OptionalPrincipal, session: Session
) -> SuperAdminContext:
    ctx = await resolve_super_admin_context(session, principal)
    if ctx is None:
        raise Unauthenticated()
    return ctx


# Typed shorthands for use in route signatures
WorkspaceCtx = Annotated[WorkspaceContext, Depends(workspace_context())]
WorkspaceAdminCtx = Annotated[
    WorkspaceContext, Depends(workspace_context(required_roles=WORKSPACE_ADMIN_ROLES))
]
BillingCtx = Annotated[WorkspaceContext, Depends(workspace_context(skip_paywall=True))]
BillingAdminCtx = Annotated[
    WorkspaceContext,
    Depends(workspace_context(required_roles=WORKSPACE_ADMIN_ROLES, skip_paywall=True)),
]
PartnerCtx = Annotated[PartnerContext, Depends(partner_context())]
PartnerAdminCtx = Annotated[
    PartnerContext, Depends(partner_context(required_roles=PARTNER_ADMIN_ROLES))
]
SuperAdminCtx = Annotated[SuperAdminContext, Depends(get_super_admin_context)]
