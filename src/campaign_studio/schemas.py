from __future__ import annotations

import base64
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from campaign_studio.utils.coerce import ensure_string, safe_list

AudioType = Literal["dubbing", "lipsync", "none"]

_MAX_VARIANT_IMAGES = 6


class FileData(BaseModel):
    """Inline reference image (base64 payload plus mime type)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    data: str = Field(..., min_length=1)
    mime_type: str = Field(default="image/png", alias="mimeType")

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class CampaignBrief(BaseModel):
    """User brief submitted for one generation run."""

    model_config = ConfigDict(frozen=True)

    topic: str = ""
    style_id: str = "aesthetic"
    language: str = "Indonesian"
    tone: str = "Direct & Clear"
    product_image: Optional[FileData] = None
    model_image: Optional[FileData] = None
    background_image: Optional[FileData] = None
    outfit_images: List[Optional[FileData]] = Field(default_factory=list, max_length=_MAX_VARIANT_IMAGES)
    location_images: List[Optional[FileData]] = Field(default_factory=list, max_length=_MAX_VARIANT_IMAGES)
    model_prompt: str = ""
    background_prompt: str = ""
    # None means the style default
    audio_type: Optional[AudioType] = None


class PlanMetadata(BaseModel):
    description: str = ""
    keywords: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        return {
            "description": ensure_string(data.get("description")),
            "keywords": [ensure_string(item) for item in safe_list(data.get("keywords"))],
        }


class CreativePlan(BaseModel):
    """Planning provider response.

    The provider speaks camelCase (``shotPrompts``, ``tiktokScript`` ...); both
    aliases and field names are accepted. The three per-shot lists are
    index-aligned but consumers must go through ``prompt_at`` / ``script_at`` /
    ``platform_prompts_at`` which tolerate missing indices.
    """

    model_config = ConfigDict(populate_by_name=True)

    tiktok_script: str = Field(default="", alias="tiktokScript")
    shot_prompts: List[str] = Field(default_factory=list, alias="shotPrompts")
    shot_scripts: List[str] = Field(default_factory=list, alias="shotScripts")
    consistency_profile: str = ""
    tiktok_metadata: Optional[PlanMetadata] = Field(default=None, alias="tiktokMetadata")
    platform_prompts: Optional[List[Dict[str, str]]] = Field(default=None, alias="platformPrompts")

    @field_validator("tiktok_script", "consistency_profile", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return ensure_string(value)

    @field_validator("shot_prompts", "shot_scripts", mode="before")
    @classmethod
    def _coerce_text_list(cls, value: Any) -> List[str]:
        return [ensure_string(item) for item in safe_list(value)]

    @field_validator("platform_prompts", mode="before")
    @classmethod
    def _coerce_platform_prompts(cls, value: Any) -> Optional[List[Dict[str, str]]]:
        if value is None:
            return None
        bundles: List[Dict[str, str]] = []
        for item in safe_list(value):
            if isinstance(item, dict):
                bundles.append({str(k): ensure_string(v) for k, v in item.items()})
            else:
                bundles.append({})
        return bundles

    @property
    def shot_count(self) -> int:
        return len(self.shot_prompts)

    def prompt_at(self, index: int) -> str:
        return self.shot_prompts[index] if 0 <= index < len(self.shot_prompts) else ""

    def script_at(self, index: int) -> str:
        return self.shot_scripts[index] if 0 <= index < len(self.shot_scripts) else ""

    def platform_prompts_at(self, index: int) -> Dict[str, str]:
        bundles = self.platform_prompts or []
        return dict(bundles[index]) if 0 <= index < len(bundles) else {}


class RenderPending(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["loading"] = "loading"


class RenderSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["success"] = "success"
    image_url: str = Field(..., min_length=1)
    video_url: Optional[str] = None


class RenderFailed(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: Literal["failed"] = "failed"
    message: str = Field(..., min_length=1)


RenderStatus = Annotated[
    Union[RenderPending, RenderSuccess, RenderFailed],
    Field(discriminator="status"),
]


class Shot(BaseModel):
    """One storyboard unit."""

    model_config = ConfigDict(frozen=True)

    shot_number: int = Field(..., ge=1)
    visual_prompt: str = ""
    voiceover_script: str = ""
    platform_prompts: Dict[str, str] = Field(default_factory=dict)
    render: RenderStatus = Field(default_factory=RenderPending)

    @property
    def is_loading(self) -> bool:
        return isinstance(self.render, RenderPending)

    @property
    def image_url(self) -> Optional[str]:
        return self.render.image_url if isinstance(self.render, RenderSuccess) else None

    @property
    def video_url(self) -> Optional[str]:
        return self.render.video_url if isinstance(self.render, RenderSuccess) else None

    @property
    def error(self) -> Optional[str]:
        return self.render.message if isinstance(self.render, RenderFailed) else None

    def with_render(self, render: Union[RenderPending, RenderSuccess, RenderFailed]) -> "Shot":
        return self.model_copy(update={"render": render})


class CampaignMetadata(BaseModel):
    title: str = "Campaign"
    hashtags: str = ""
    script_outline: str = ""


class NarrationAsset(BaseModel):
    """Containerized narration track (WAV bytes)."""

    model_config = ConfigDict(frozen=True)

    wav_bytes: bytes
    sample_rate: int = Field(..., gt=0)
    channels: int = Field(..., ge=1)
    sample_width: int = 2
    voice: str = ""

    @property
    def frame_count(self) -> int:
        return max(0, len(self.wav_bytes) - 44) // (self.sample_width * self.channels)

    @property
    def duration_s(self) -> float:
        return self.frame_count / float(self.sample_rate)


__all__ = [
    "AudioType",
    "FileData",
    "CampaignBrief",
    "PlanMetadata",
    "CreativePlan",
    "RenderPending",
    "RenderSuccess",
    "RenderFailed",
    "RenderStatus",
    "Shot",
    "CampaignMetadata",
    "NarrationAsset",
]
