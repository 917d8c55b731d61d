"""Content style catalogue.

Styles are declared in ``configs/content_styles.yaml``. Each style names the
reference inputs it works from, its audio strategy (which drives lip-sync
decisions in :mod:`campaign_studio.prompt_composer`), its story-flow labels and
the planning mode banner used when requesting a plan.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from .errors import BriefValidationError, CampaignStudioError
from .schemas import AudioType, CampaignBrief

__all__ = [
    "AUDIO_STRATEGIES",
    "ContentStyle",
    "Option",
    "StyleCatalog",
    "StyleConfigError",
    "load_catalog",
    "get_style",
    "default_audio_type",
    "resolve_audio_type",
    "shot_count_hint",
    "validate_brief",
]

AUDIO_STRATEGIES = ("lipsync", "dubbing", "none", "selectable", "hybrid_ads", "hybrid_ugc", "hybrid_vlog")

_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "content_styles.yaml"
_CONFIG_CACHE: Optional[Tuple[Path, float, "StyleCatalog"]] = None


class StyleConfigError(CampaignStudioError):
    """Raised when the style catalogue is missing or malformed."""


@dataclass(frozen=True)
class Option:
    id: str
    name: str


@dataclass(frozen=True)
class ContentStyle:
    id: str
    name: str
    description: str
    inputs: tuple[str, ...]
    audio_strategy: str
    planning_mode: str
    story_flow: tuple[str, ...] = ()
    shot_count_source: Optional[str] = None

    def requires(self, input_name: str) -> bool:
        return input_name in self.inputs

    def flow_label(self, index: int) -> Optional[str]:
        if 0 <= index < len(self.story_flow):
            return self.story_flow[index]
        return None


@dataclass(frozen=True)
class StyleCatalog:
    styles: Mapping[str, ContentStyle]
    languages: tuple[Option, ...]
    script_tones: tuple[Option, ...]
    voices: tuple[Option, ...]
    default_shot_count: int = 5

    def get(self, style_id: str) -> ContentStyle:
        try:
            return self.styles[style_id]
        except KeyError:
            raise StyleConfigError(f"Unknown content style '{style_id}'") from None


def load_catalog(path: Optional[Path] = None) -> StyleCatalog:
    global _CONFIG_CACHE
    resolved = Path(path) if path else _DEFAULT_CONFIG_PATH
    if not resolved.exists():
        raise StyleConfigError(f"Config file not found: {resolved}")
    stamp = resolved.stat().st_mtime
    if _CONFIG_CACHE and _CONFIG_CACHE[0] == resolved and _CONFIG_CACHE[1] == stamp:
        return _CONFIG_CACHE[2]

    raw = yaml.safe_load(resolved.read_text(encoding="utf-8")) or {}
    styles: Dict[str, ContentStyle] = {}
    for style_id, entry in (raw.get("styles") or {}).items():
        strategy = str(entry.get("audio_strategy", "dubbing"))
        if strategy not in AUDIO_STRATEGIES:
            raise StyleConfigError(f"Style '{style_id}' has unknown audio_strategy '{strategy}'")
        styles[style_id] = ContentStyle(
            id=style_id,
            name=entry.get("name", style_id),
            description=entry.get("description", ""),
            inputs=tuple(entry.get("inputs", []) or ()),
            audio_strategy=strategy,
            planning_mode=entry.get("planning_mode", "direct"),
            story_flow=tuple(entry.get("story_flow", []) or ()),
            shot_count_source=entry.get("shot_count_source"),
        )
    if not styles:
        raise StyleConfigError(f"No styles declared in {resolved}")

    catalog = StyleCatalog(
        styles=styles,
        languages=_options(raw.get("languages")),
        script_tones=_options(raw.get("script_tones")),
        voices=_options(raw.get("voices")),
        default_shot_count=int(raw.get("default_shot_count", 5)),
    )
    _CONFIG_CACHE = (resolved, stamp, catalog)
    return catalog


def _options(entries: object) -> tuple[Option, ...]:
    if not isinstance(entries, list):
        return ()
    return tuple(Option(id=str(item["id"]), name=str(item.get("name", item["id"]))) for item in entries)


def get_style(style_id: str, catalog: Optional[StyleCatalog] = None) -> ContentStyle:
    return (catalog or load_catalog()).get(style_id)


def default_audio_type(style: ContentStyle) -> AudioType:
    """Per-run audio type a style starts with.

    Selectable styles start in dubbing. Hybrid styles decide lip-sync per shot
    in the composer, so their plan carries no audio guidance.
    """

    strategy = style.audio_strategy
    if strategy in ("lipsync", "dubbing", "none"):
        return strategy  # type: ignore[return-value]
    if strategy == "selectable":
        return "dubbing"
    return "none"


def resolve_audio_type(brief: CampaignBrief, style: ContentStyle) -> AudioType:
    return brief.audio_type or default_audio_type(style)


def shot_count_hint(brief: CampaignBrief, style: ContentStyle, default: int = 5) -> int:
    """Number of shots to ask the planner for.

    Batch styles (runway outfits, property rooms) plan one shot per uploaded
    variant image.
    """

    if style.shot_count_source == "outfit_images":
        return sum(1 for item in brief.outfit_images if item is not None) or default
    if style.shot_count_source == "location_images":
        return sum(1 for item in brief.location_images if item is not None) or default
    return default


def validate_brief(brief: CampaignBrief, style: ContentStyle) -> None:
    if style.requires("productImage") and brief.product_image is None:
        raise BriefValidationError("Upload the main product image.")
