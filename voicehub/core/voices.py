"""Centralized voice catalog for agent configuration.

Stock ElevenLabs voices usable through each voice provider. Provider-side
voice listing is out of scope; this table is what the agent form offers.
"""

from typing import NamedTuple


class VoiceOption(NamedTuple):
    id: str
    name: str
    gender: str
    accent: str
    age: int
    characteristics: str
    provider_voice_id: str


VAPI_VOICES: tuple[VoiceOption, ...] = (
    VoiceOption("rachel", "Rachel", "Female", "American", 28, "Warm, professional, clear", "21m00Tcm4TlvDq8ikWAM"),
    VoiceOption("drew", "Drew", "Male", "American", 30, "Well-rounded, informative, professional", "29vD33N1CtxCmqQRPOHJ"),
    VoiceOption("clyde", "Clyde", "Male", "American", 45, "Deep, authoritative, calm", "2EiwWnXFnvU5JabPnv8n"),
    VoiceOption("domi", "Domi", "Female", "American", 25, "Strong, confident, energetic", "AZnzlk1XvdvUeBnXmlld"),
    VoiceOption("charlotte", "Charlotte", "Female", "British", 32, "Polished, friendly, articulate", "XB0fDUnXU5powFXDhCwa"),
)

RETELL_VOICES: tuple[VoiceOption, ...] = (
    VoiceOption("adrian", "Adrian", "Male", "American", 35, "Calm, reassuring, professional", "11labs-Adrian"),
    VoiceOption("myra", "Myra", "Female", "American", 27, "Friendly, upbeat, conversational", "11labs-Myra"),
    VoiceOption("paola", "Paola", "Female", "American", 30, "Warm, empathetic, clear", "11labs-Paola"),
    VoiceOption("anthony", "Anthony", "Male", "British", 40, "Measured, trustworthy, precise", "11labs-Anthony"),
)

VOICES_BY_PROVIDER: dict[str, tuple[VoiceOption, ...]] = {
    "vapi": VAPI_VOICES,
    "retell": RETELL_VOICES,
}


def get_voices(provider: str) -> tuple[VoiceOption, ...]:
    """Return the voice list for a provider (empty for unknown providers)."""
    return VOICES_BY_PROVIDER.get(provider, ())


def find_voice(provider: str, voice_id: str) -> VoiceOption | None:
    return next((v for v in get_voices(provider) if v.id == voice_id), None)
