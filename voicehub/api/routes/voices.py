"""Voice catalog for the agent form."""

from fastapi import APIRouter

from voicehub.api.deps import WorkspaceCtx
from voicehub.core.voices import get_voices
from voicehub.models.agent import VoiceProvider
from voicehub.models.base import CamelModel

router = APIRouter(prefix="/w/{workspace_slug}/voices", tags=["voices"])


class VoiceRead(CamelModel):
    id: str
    name: str
    gender: str
    accent: str
    age: int
    characteristics: str
    provider_voice_id: str


@router.get("", response_model=list[VoiceRead])
async def list_voices(ctx: WorkspaceCtx, provider: VoiceProvider = VoiceProvider.VAPI) -> list[VoiceRead]:
    return [VoiceRead(**voice._asdict()) for voice in get_voices(provider)]
