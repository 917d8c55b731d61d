"""Platform prompt composition for downstream video tools.

Everything here is pure: no network, no filesystem, no clock. The same inputs
always produce the same string.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional

from .schemas import Shot
from .styles import ContentStyle
from .utils.coerce import ensure_string

__all__ = [
    "PLATFORMS",
    "LIP_SYNC_PLATFORM",
    "DREAMINA_MAX_CHARS",
    "NEGATIVE_BASE",
    "STABLE_NEGATIVE",
    "SILENCE_NEGATIVE",
    "PLACEHOLDER_PROMPT",
    "LipSyncContext",
    "LIP_SYNC_POLICY",
    "resolve_speaks",
    "compose_prompt",
    "needs_fallback",
    "resolve_platform_prompt",
    "platform_prompt_bundle",
]

PLATFORMS = ("dreamina", "grok", "meta")
LIP_SYNC_PLATFORM = "grok"
DREAMINA_MAX_CHARS = 990
PLACEHOLDER_PROMPT = "Prompt loading..."
_MISSING_VISUAL = "Visual scene not available."
_ELLIPSIS = "..."
# Lines this short carry no speech worth quoting.
_MIN_SPOKEN_CHARS = 3
_HYBRID_UGC_SILENT_INDEX = 3
_HYBRID_ADS_DEFAULT_LAST = 4

NEGATIVE_BASE = (
    "--negative_prompt text, subtitle, caption, graphics, watermark, logo, lettering, UI, cartoon, anime, "
    "fake, distortion, western face, blonde hair, full body, human body (if POV), face (if POV), "
    "original background, source background, input background, background remnants"
)
STABLE_NEGATIVE = (
    "excessive motion, morphing, product shape change, weird hands, bad anatomy, glitch, "
    "fast camera movement, fast zoom, outfit change, color change"
)
SILENCE_NEGATIVE = "talking, moving mouth, speaking, open mouth"


@dataclass(frozen=True)
class LipSyncContext:
    shot_index: int
    audio_type: str
    script_line: str
    shot_count: Optional[int] = None


LipSyncRule = Callable[[LipSyncContext], bool]


def _hybrid_ads(ctx: LipSyncContext) -> bool:
    last = ctx.shot_count - 1 if ctx.shot_count else _HYBRID_ADS_DEFAULT_LAST
    return ctx.shot_index in (0, last)


LIP_SYNC_POLICY: Mapping[str, LipSyncRule] = {
    "lipsync": lambda ctx: True,
    "dubbing": lambda ctx: False,
    "none": lambda ctx: False,
    "selectable": lambda ctx: ctx.audio_type == "lipsync",
    "hybrid_ads": _hybrid_ads,
    "hybrid_ugc": lambda ctx: ctx.shot_index != _HYBRID_UGC_SILENT_INDEX,
    "hybrid_vlog": lambda ctx: len(ctx.script_line) >= _MIN_SPOKEN_CHARS,
}


def resolve_speaks(audio_strategy: str, ctx: LipSyncContext) -> bool:
    """Whether the on-screen subject lip-syncs for this shot.

    Unknown strategies behave like ``dubbing``.
    """

    rule = LIP_SYNC_POLICY.get(audio_strategy, LIP_SYNC_POLICY["dubbing"])
    return bool(rule(ctx))


def compose_prompt(
    platform: str,
    shot: Shot,
    style_id: str,
    shot_index: int,
    audio_strategy: str,
    script_line: Optional[str],
    tone: str,
    *,
    audio_type: str = "dubbing",
    shot_count: Optional[int] = None,
) -> str:
    """Build the fallback prompt for ``platform``.

    ``style_id`` and ``tone`` are part of the call signature shared with the
    provider-origin prompts; the fallback text itself depends on the shot, the
    strategy and the position only.
    """

    visual = ensure_string(shot.visual_prompt) or _MISSING_VISUAL
    line = ensure_string(script_line or shot.voiceover_script)
    suffix = f"{NEGATIVE_BASE}, {STABLE_NEGATIVE}"

    if platform == "dreamina":
        composed = f"{visual}. 8k, photorealistic, cinematic lighting. {suffix}"
        if len(composed) > DREAMINA_MAX_CHARS:
            return composed[:DREAMINA_MAX_CHARS]
        return composed

    if platform == "meta":
        return f"{visual}, Very Slow Zoom In, Slow Motion, photorealistic, 8k, Indonesian model. {suffix}"

    if platform == LIP_SYNC_PLATFORM:
        ctx = LipSyncContext(shot_index=shot_index, audio_type=audio_type, script_line=line, shot_count=shot_count)
        spoken = len(line) >= _MIN_SPOKEN_CHARS
        if resolve_speaks(audio_strategy, ctx) and spoken:
            return f'{visual} (Smooth Camera Movement, Focus On Speaking Face), model says: "{line}" {suffix}'
        narration = ""
        if spoken and audio_strategy != "none":
            narration = f', Narrator says: "{line}"'
        return (
            f"{visual} (Smooth Camera Movement, Focus On Action/Pose, Voice Over/Dubbing Mode){narration} "
            f"{suffix}, {SILENCE_NEGATIVE}"
        )

    return visual


def needs_fallback(platform: str, provided: Optional[str]) -> bool:
    if platform == LIP_SYNC_PLATFORM:
        return True
    if not provided or provided == PLACEHOLDER_PROMPT:
        return True
    return _ELLIPSIS in provided


def resolve_platform_prompt(
    platform: str,
    shot: Shot,
    style: ContentStyle,
    shot_index: int,
    *,
    audio_type: str,
    tone: str,
    shot_count: Optional[int] = None,
) -> str:
    """Return the prompt shown for ``platform``: provider text or composed fallback."""

    provided = shot.platform_prompts.get(platform)
    if not needs_fallback(platform, provided):
        return ensure_string(provided)
    return compose_prompt(
        platform,
        shot,
        style.id,
        shot_index,
        style.audio_strategy,
        shot.voiceover_script,
        tone,
        audio_type=audio_type,
        shot_count=shot_count,
    )


def platform_prompt_bundle(
    shot: Shot,
    style: ContentStyle,
    shot_index: int,
    *,
    audio_type: str,
    tone: str,
    shot_count: Optional[int] = None,
) -> Dict[str, str]:
    return {
        platform: resolve_platform_prompt(
            platform, shot, style, shot_index, audio_type=audio_type, tone=tone, shot_count=shot_count
        )
        for platform in PLATFORMS
    }
