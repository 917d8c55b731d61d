"""In-memory campaign state.

All mutation goes through :class:`CampaignStore` under a re-entrant lock. Writes
that originate from a generation run carry the run's generation number; once
the campaign is discarded or a new run starts, late writes from the old run
are dropped.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from .errors import ShotNotReadyError, VideoBusyError
from .schemas import (
    AudioType,
    CampaignBrief,
    CampaignMetadata,
    CreativePlan,
    NarrationAsset,
    RenderFailed,
    RenderPending,
    RenderSuccess,
    Shot,
)

LOG = logging.getLogger(__name__)

Render = Union[RenderPending, RenderSuccess, RenderFailed]


class RunState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    RENDERING = "rendering"
    DONE = "done"
    ERROR = "error"


class CampaignSnapshot(BaseModel):
    """Read-only copy of the store handed to the HTTP surface and the player."""

    generation: int
    state: RunState
    progress: str = ""
    style_id: Optional[str] = None
    audio_type: Optional[AudioType] = None
    tone: Optional[str] = None
    metadata: Optional[CampaignMetadata] = None
    consistency_profile: str = ""
    script: str = ""
    shots: List[Shot] = Field(default_factory=list)
    error: Optional[str] = None
    reauth_required: bool = False
    video_index: Optional[int] = None
    video_status: str = ""
    has_narration: bool = False
    narration_duration_s: Optional[float] = None

    @property
    def renderable_shots(self) -> List[Shot]:
        return [shot for shot in self.shots if isinstance(shot.render, RenderSuccess)]


def seed_script(plan: CreativePlan) -> str:
    lines = [line.strip() for line in plan.shot_scripts if line and line.strip()]
    if lines:
        return "\n\n".join(lines)
    return plan.tiktok_script


def build_metadata(plan: CreativePlan) -> CampaignMetadata:
    meta = plan.tiktok_metadata
    title = meta.description if meta and meta.description else "Campaign"
    hashtags = " ".join(f"#{word}" for word in (meta.keywords if meta else []) if word)
    return CampaignMetadata(title=title, hashtags=hashtags, script_outline=plan.tiktok_script)


def build_shots(plan: CreativePlan) -> List[Shot]:
    return [
        Shot(
            shot_number=index + 1,
            visual_prompt=plan.prompt_at(index),
            voiceover_script=plan.script_at(index),
            platform_prompts=plan.platform_prompts_at(index),
        )
        for index in range(plan.shot_count)
    ]


class CampaignStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._generation = 0
        self._script = ""
        self._clear_campaign()

    def _clear_campaign(self) -> None:
        self._state = RunState.IDLE
        self._progress = ""
        self._brief: Optional[CampaignBrief] = None
        self._plan: Optional[CreativePlan] = None
        self._metadata: Optional[CampaignMetadata] = None
        self._shots: List[Shot] = []
        self._narration: Optional[NarrationAsset] = None
        self._error: Optional[str] = None
        self._reauth_required = False
        self._video_index: Optional[int] = None
        self._video_status = ""

    # -- run lifecycle -------------------------------------------------

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def is_active(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def begin_run(self, brief: CampaignBrief) -> int:
        """Start a new run; previous shots and the video slot are cleared and earlier runs go stale."""

        with self._lock:
            self._generation += 1
            self._state = RunState.PLANNING
            self._progress = "Planning campaign..."
            self._brief = brief
            self._plan = None
            self._metadata = None
            self._shots = []
            self._error = None
            self._reauth_required = False
            # a job from the previous run can no longer finish_video() under this generation
            self._video_index = None
            self._video_status = ""
            return self._generation

    def discard(self) -> int:
        with self._lock:
            self._generation += 1
            self._script = ""
            self._clear_campaign()
            LOG.info("Campaign discarded (generation=%d)", self._generation)
            return self._generation

    def apply_plan(self, generation: int, plan: CreativePlan) -> bool:
        """Install metadata, script and all shots in ``loading`` in one step."""

        with self._lock:
            if generation != self._generation:
                return False
            self._plan = plan
            self._metadata = build_metadata(plan)
            self._script = seed_script(plan)
            self._shots = build_shots(plan)
            self._narration = None
            return True

    def set_state(self, generation: int, state: RunState) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._state = state
            return True

    def set_progress(self, generation: int, text: str) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._progress = text
            return True

    def set_shot_render(self, generation: int, index: int, render: Render) -> bool:
        with self._lock:
            if generation != self._generation:
                LOG.debug("Dropping stale render for shot %d (generation %d)", index, generation)
                return False
            self._shots[index] = self._shots[index].with_render(render)
            return True

    def require_reauth(self, generation: int, message: str) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._reauth_required = True
            self._error = message
            self._state = RunState.ERROR
            return True

    # -- error banner --------------------------------------------------

    def set_error(self, message: Optional[str], generation: Optional[int] = None) -> bool:
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._error = message
            return True

    def dismiss_error(self) -> None:
        with self._lock:
            self._error = None
            self._reauth_required = False

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            return self._error

    @property
    def reauth_required(self) -> bool:
        with self._lock:
            return self._reauth_required

    # -- script and narration -----------------------------------------

    @property
    def script(self) -> str:
        with self._lock:
            return self._script

    def edit_script(self, text: str) -> None:
        with self._lock:
            self._script = text

    @property
    def narration(self) -> Optional[NarrationAsset]:
        with self._lock:
            return self._narration

    def set_narration(self, generation: int, asset: NarrationAsset) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._narration = asset
            return True

    # -- shots and video ----------------------------------------------

    @property
    def brief(self) -> Optional[CampaignBrief]:
        with self._lock:
            return self._brief

    @property
    def plan(self) -> Optional[CreativePlan]:
        with self._lock:
            return self._plan

    @property
    def state(self) -> RunState:
        with self._lock:
            return self._state

    @property
    def shots(self) -> List[Shot]:
        with self._lock:
            return list(self._shots)

    def shot(self, index: int) -> Shot:
        with self._lock:
            if not 0 <= index < len(self._shots):
                raise ShotNotReadyError(f"No shot at index {index}")
            return self._shots[index]

    def renderable_shots(self) -> List[Shot]:
        with self._lock:
            return [shot for shot in self._shots if isinstance(shot.render, RenderSuccess)]

    def begin_video(self, index: int) -> int:
        with self._lock:
            if self._video_index is not None:
                raise VideoBusyError(f"A video is already being generated for shot {self._video_index + 1}")
            shot = self.shot(index)
            if not isinstance(shot.render, RenderSuccess):
                raise ShotNotReadyError(f"Shot {index + 1} has no rendered image")
            self._video_index = index
            self._video_status = ""
            return self._generation

    def set_video_status(self, generation: int, text: str) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._video_status = text
            return True

    def finish_video(self, generation: int) -> None:
        with self._lock:
            if generation == self._generation:
                self._video_index = None
                self._video_status = ""

    def attach_video(self, generation: int, index: int, video_url: str) -> bool:
        with self._lock:
            if generation != self._generation or not 0 <= index < len(self._shots):
                return False
            shot = self._shots[index]
            if not isinstance(shot.render, RenderSuccess):
                return False
            render = shot.render.model_copy(update={"video_url": video_url})
            self._shots[index] = shot.with_render(render)
            return True

    @property
    def video_index(self) -> Optional[int]:
        with self._lock:
            return self._video_index

    def snapshot(self) -> CampaignSnapshot:
        with self._lock:
            brief = self._brief
            narration = self._narration
            return CampaignSnapshot(
                generation=self._generation,
                state=self._state,
                progress=self._progress,
                style_id=brief.style_id if brief else None,
                audio_type=brief.audio_type if brief else None,
                tone=brief.tone if brief else None,
                metadata=self._metadata,
                consistency_profile=self._plan.consistency_profile if self._plan else "",
                script=self._script,
                shots=list(self._shots),
                error=self._error,
                reauth_required=self._reauth_required,
                video_index=self._video_index,
                video_status=self._video_status,
                has_narration=narration is not None,
                narration_duration_s=narration.duration_s if narration else None,
            )


__all__ = [
    "RunState",
    "CampaignSnapshot",
    "CampaignStore",
    "seed_script",
    "build_metadata",
    "build_shots",
]
