"""Prompt templates for the planning and primary image providers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .schemas import CampaignBrief
from .styles import ContentStyle, resolve_audio_type

IMAGE_QUALITY_HINT = "8k resolution, photorealistic, cinematic lighting, high fidelity, 35mm lens"

# JSON schema handed to the planning model; mirrors CreativePlan's aliases.
PLAN_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "tiktokScript": {"type": "STRING"},
        "shotPrompts": {"type": "ARRAY", "items": {"type": "STRING"}},
        "shotScripts": {"type": "ARRAY", "items": {"type": "STRING"}},
        "consistency_profile": {"type": "STRING"},
        "tiktokMetadata": {
            "type": "OBJECT",
            "properties": {
                "description": {"type": "STRING"},
                "keywords": {"type": "ARRAY", "items": {"type": "STRING"}},
            },
        },
        "platformPrompts": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "dreamina": {"type": "STRING"},
                    "grok": {"type": "STRING"},
                    "meta": {"type": "STRING"},
                },
            },
        },
    },
    "required": ["tiktokScript", "shotPrompts", "shotScripts", "consistency_profile"],
}

_BASE_SYSTEM_INSTRUCTION = """\
You are an AI Creative Director. Your job is to plan storyboard content for affiliate marketing.

CORE RULES (VISUAL CONSISTENCY IS KING):
1. ANALYZE: Study the model photo. Follow the model photo's look 100%.
2. REPEAT: Copy the character's visual description into EVERY shot prompt.
3. PROMPT STRUCTURE: "[Character] wearing [Outfit] in [Location], [Action], [Angle], [Lighting]."

PLATFORM PROMPT RULES:
1. Dreamina: [Visual only].
{grok_rules}

JSON OUTPUT RULES:
Structure: {{ "tiktokScript": "...", "shotScripts": ["...", "..."], "shotPrompts": ["...", "..."], \
"tiktokMetadata": {{ "keywords": ["...", "..."], "description": "..." }}, "consistency_profile": "..." }}
"""

_GROK_RULES = {
    "lipsync": (
        "2. Grok (LIP SYNC MODE):\n"
        "   - IF the shot shows the model's face, add: \"...model says: [Quote this shot's script]\"\n"
        "   - Add \"--negative_prompt mouth closed, silence, no talking, ...\""
    ),
    "dubbing": (
        "2. Grok (DUBBING/VOICEOVER MODE):\n"
        "   - NEVER ask the model to speak or lip sync.\n"
        "   - FOCUS on motion, action and expression (smiling, nodding, pointing) in VOICE OVER mode.\n"
        "   - For any voice instruction use: \"Narrator says: [Quote script]\".\n"
        "   - Add \"--negative_prompt talking, speaking, moving mouth, ...\""
    ),
    "none": (
        "2. Grok (NO AUDIO MODE):\n"
        "   - Focus purely on aesthetic visuals and camera motion.\n"
        "   - NO speech instructions or script."
    ),
}

_MODE_BANNERS = {
    "professional_ads": "STYLE: PROFESSIONAL ADS.",
    "direct": "STYLE: UGC REVIEW.",
    "quick_review": "STYLE: UGC REVIEW.",
}


@dataclass(frozen=True)
class PlanRequest:
    """Everything a planning provider needs for one call."""

    style_id: str
    language: str
    tone: str
    shot_count: int
    brief_text: str
    system_instruction: str
    user_query: str
    model_prompt: str = ""
    background_prompt: str = ""

    @property
    def response_schema(self) -> Dict[str, Any]:
        return PLAN_RESPONSE_SCHEMA


def build_system_instruction(style: ContentStyle, audio_type: str) -> str:
    grok_rules = _GROK_RULES.get(audio_type, _GROK_RULES["none"])
    base = _BASE_SYSTEM_INSTRUCTION.format(grok_rules=grok_rules)
    banner = _MODE_BANNERS.get(style.planning_mode, f"STYLE: {style.id.upper()}.")
    return f"{base}\n{banner}"


def build_user_query(brief: CampaignBrief, shot_count: int) -> str:
    query = (
        f"Create content: {brief.topic}. Style: {brief.style_id}. Language: {brief.language}. "
        f"Tone: {brief.tone}. Shot count: {shot_count}."
    )
    if brief.model_prompt:
        query += f'\nModel description: "{brief.model_prompt}"'
    if brief.background_prompt:
        query += f'\nBackground description: "{brief.background_prompt}"'
    return query


def build_plan_request(brief: CampaignBrief, style: ContentStyle, shot_count: int) -> PlanRequest:
    return PlanRequest(
        style_id=style.id,
        language=brief.language,
        tone=brief.tone,
        shot_count=shot_count,
        brief_text=brief.topic,
        system_instruction=build_system_instruction(style, resolve_audio_type(brief, style)),
        user_query=build_user_query(brief, shot_count),
        model_prompt=brief.model_prompt,
        background_prompt=brief.background_prompt,
    )


def build_image_prompt(prompt: str, style_id: str, consistency_profile: str) -> str:
    """Wrap a shot prompt with style and consistency guidance for the primary image model."""

    return (
        "TASK: RENDER PRODUCT/MODEL VISUAL.\n"
        f"STYLE: {style_id.upper()}, REALISTIC, 8K.\n"
        f"CONSISTENCY: {consistency_profile}\n"
        f"ACTION: {prompt}\n"
        f"({IMAGE_QUALITY_HINT})"
    )


__all__ = [
    "IMAGE_QUALITY_HINT",
    "PLAN_RESPONSE_SCHEMA",
    "PlanRequest",
    "build_system_instruction",
    "build_user_query",
    "build_plan_request",
    "build_image_prompt",
]
