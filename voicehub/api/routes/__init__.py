"""API router aggregation."""

from fastapi import APIRouter

from voicehub.api.routes.agents import router as agents_router
from voicehub.api.routes.auth import router as auth_router
from voicehub.api.routes.conversations import router as conversations_router
from voicehub.api.routes.invitations import router as invitations_router
from voicehub.api.routes.limits import router as limits_router
from voicehub.api.routes.members import router as members_router
from voicehub.api.routes.partner import router as partner_router
from voicehub.api.routes.public import router as public_router
from voicehub.api.routes.settings import router as settings_router
from voicehub.api.routes.subscription import router as subscription_router
from voicehub.api.routes.super_admin import router as super_admin_router
from voicehub.api.routes.voices import router as voices_router
from voicehub.api.routes.workspaces import router as workspaces_router

api_router = APIRouter(prefix="/api")
api_router.include_router(auth_router)
api_router.include_router(public_router)
api_router.include_router(super_admin_router)
api_router.include_router(partner_router)
api_router.include_router(workspaces_router)
api_router.include_router(conversations_router)
api_router.include_router(agents_router)
api_router.include_router(limits_router)
api_router.include_router(voices_router)
api_router.include_router(members_router)
api_router.include_router(invitations_router)
api_router.include_router(settings_router)
api_router.include_router(subscription_router)
