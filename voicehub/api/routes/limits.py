"""Plan limits versus current usage."""

from fastapi import APIRouter

from voicehub.api.deps import WorkspaceCtx
from voicehub.models.base import CamelModel
from voicehub.services.billing import LimitUsage, get_paywall_status, get_workspace_limits

router = APIRouter(prefix="/w/{workspace_slug}/limits", tags=["limits"])


class WorkspaceLimits(CamelModel):
    agents: LimitUsage
    minutes: LimitUsage
    conversations: LimitUsage
    is_paywalled: bool
    is_billing_exempt: bool


@router.get("", response_model=WorkspaceLimits)
async def get_limits(ctx: WorkspaceCtx) -> WorkspaceLimits:
    limits = await get_workspace_limits(ctx.session, ctx.workspace)
    paywall = await get_paywall_status(ctx.session, ctx.workspace)
    return WorkspaceLimits(
        **limits,
        is_paywalled=paywall.is_paywalled,
        is_billing_exempt=paywall.is_billing_exempt,
    )
