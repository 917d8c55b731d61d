"""Campaign generation orchestrator.

A run plans the campaign with one provider call, installs every shot in
``loading`` at once, then renders the shots strictly one after another. A
failing shot is recorded on that shot and the loop moves on; an invalid
primary credential halts the loop and asks for re-authentication.

Video and narration are separate on-demand actions against the current
campaign.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from . import telemetry
from .audio import build_narration_asset
from .config import StudioSettings
from .errors import BriefValidationError, EmptyScriptError, ShotNotReadyError
from .planning import PlanningError, generate_plan
from .providers import ProviderBundle
from .providers.common import ProviderError, error_message, is_credential_error
from .schemas import CampaignBrief, FileData, NarrationAsset, RenderFailed, RenderPending, RenderSuccess, Shot
from .store import CampaignStore, RunState
from .styles import ContentStyle, StyleCatalog, StyleConfigError, load_catalog, resolve_audio_type, validate_brief
from .videos import VIDEO_FAILED_MESSAGE, StatusRotator, run_video_job

LOG = logging.getLogger(__name__)

REAUTH_MESSAGE = "The API key is invalid or expired. Select a key and try again."
SKIPPED_MESSAGE = "Skipped: re-authentication required."
EMPTY_SCRIPT_MESSAGE = "Script is empty."
BRIDGE_EMPTY_MESSAGE = "Bridge returned empty image set."
DEFAULT_SHOT_ERROR = "Render failed"


@dataclass
class RunResult:
    generation: int
    state: RunState
    shots: List[Shot] = field(default_factory=list)
    error: Optional[str] = None
    stale: bool = False

    @property
    def succeeded(self) -> int:
        return sum(1 for shot in self.shots if isinstance(shot.render, RenderSuccess))

    @property
    def failed(self) -> int:
        return sum(1 for shot in self.shots if isinstance(shot.render, RenderFailed))


class GenerationOrchestrator:
    def __init__(
        self,
        store: CampaignStore,
        providers: ProviderBundle,
        settings: Optional[StudioSettings] = None,
        *,
        catalog: Optional[StyleCatalog] = None,
        on_reauth: Optional[Callable[[], None]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.store = store
        self.providers = providers
        self.settings = settings or StudioSettings()
        self.catalog = catalog or load_catalog()
        self.on_reauth = on_reauth
        self._sleep = sleep

    # -- validation ----------------------------------------------------

    def validate(self, brief: CampaignBrief) -> ContentStyle:
        """Resolve the brief's style and check its required inputs. Touches no state."""

        try:
            style = self.catalog.get(brief.style_id)
        except StyleConfigError as exc:
            raise BriefValidationError(str(exc)) from exc
        validate_brief(brief, style)
        return style

    # -- full run ------------------------------------------------------

    def generate_campaign(self, brief: CampaignBrief) -> RunResult:
        style = self.validate(brief)
        if brief.audio_type is None:
            brief = brief.model_copy(update={"audio_type": resolve_audio_type(brief, style)})
        generation = self.store.begin_run(brief)
        LOG.info("Run %d started: style=%s", generation, style.id)

        try:
            plan, _ = generate_plan(brief, style, self.providers.planning, catalog=self.catalog)
        except Exception as exc:
            if is_credential_error(exc):
                self._halt_for_reauth(generation, str(exc))
                return self._result(generation)
            if not isinstance(exc, PlanningError):
                raise
            message = f"Failed: {error_message(exc)}"
            LOG.error("Run %d planning failed: %s", generation, exc)
            self.store.set_error(message, generation)
            self.store.set_state(generation, RunState.ERROR)
            telemetry.emit_event("campaign.render.aborted", {"reason": "planning"}, generation=generation)
            return self._result(generation, error=message)

        if not self.store.apply_plan(generation, plan):
            return self._result(generation, stale=True)
        self.store.set_state(generation, RunState.RENDERING)
        self.store.set_progress(generation, "Rendering visuals...")
        return self._render_pass(generation, brief, style, plan.consistency_profile)

    def _render_pass(self, generation: int, brief: CampaignBrief, style: ContentStyle, profile: str) -> RunResult:
        shots = self.store.shots
        total = len(shots)
        for index, shot in enumerate(shots):
            if not self.store.is_active(generation):
                LOG.info("Run %d superseded at shot %d", generation, index + 1)
                return self._result(generation, stale=True)
            try:
                image_url = self._render_image(brief, style, shot, profile)
            except Exception as exc:
                if is_credential_error(exc):
                    self.store.set_shot_render(generation, index, RenderFailed(message=error_message(exc)))
                    for later in range(index + 1, total):
                        self.store.set_shot_render(generation, later, RenderFailed(message=SKIPPED_MESSAGE))
                    self._halt_for_reauth(generation, str(exc))
                    return self._result(generation)
                message = error_message(exc, DEFAULT_SHOT_ERROR)
                LOG.warning("Shot %d/%d failed: %s", index + 1, total, message, exc_info=True)
                self.store.set_shot_render(generation, index, RenderFailed(message=message))
                telemetry.emit_event(
                    "campaign.shot.failed", {"shot": index + 1, "message": message}, generation=generation
                )
            else:
                self.store.set_shot_render(generation, index, RenderSuccess(image_url=image_url))
                telemetry.emit_event("campaign.shot.rendered", {"shot": index + 1}, generation=generation)
            self.store.set_progress(generation, f"Shot {index + 1}/{total} done...")

        self.store.set_state(generation, RunState.DONE)
        result = self._result(generation)
        telemetry.emit_event(
            "campaign.render.completed",
            {"succeeded": result.succeeded, "failed": result.failed},
            generation=generation,
        )
        return result

    def _render_image(self, brief: CampaignBrief, style: ContentStyle, shot: Shot, profile: str) -> str:
        token = self.settings.bridge_token
        if token and self.providers.bridge is not None:
            images = self.providers.bridge.generate_images(shot.visual_prompt, token)
            if not images:
                raise ProviderError(BRIDGE_EMPTY_MESSAGE)
            return images[0]

        references: List[FileData] = [ref for ref in (brief.product_image, brief.model_image) if ref is not None]
        encoded = self.providers.image.generate_image(
            shot.visual_prompt,
            references,
            style=style.id,
            consistency_profile=profile,
            high_quality=self.settings.high_quality,
        )
        return f"data:image/png;base64,{encoded}"

    def _halt_for_reauth(self, generation: int, detail: str) -> None:
        LOG.error("Run %d halted: credential rejected (%s)", generation, detail)
        if not self.store.require_reauth(generation, REAUTH_MESSAGE):
            return
        telemetry.emit_event("campaign.render.aborted", {"reason": "credential"}, generation=generation)
        if self.on_reauth is not None:
            self.on_reauth()

    def _result(self, generation: int, *, error: Optional[str] = None, stale: bool = False) -> RunResult:
        snapshot = self.store.snapshot()
        return RunResult(
            generation=generation,
            state=snapshot.state,
            shots=snapshot.shots,
            error=error or snapshot.error,
            stale=stale or snapshot.generation != generation,
        )

    # -- single shot ---------------------------------------------------

    def regenerate_shot(self, index: int) -> Shot:
        """Render one shot again, replacing its previous status."""

        brief = self.store.brief
        plan = self.store.plan
        if brief is None or plan is None:
            raise ShotNotReadyError("No campaign to regenerate")
        style = self.validate(brief)
        generation = self.store.generation
        shot = self.store.shot(index)
        self.store.set_shot_render(generation, index, RenderPending())
        try:
            image_url = self._render_image(brief, style, shot, plan.consistency_profile)
        except Exception as exc:
            if is_credential_error(exc):
                self.store.set_shot_render(generation, index, RenderFailed(message=error_message(exc)))
                self._halt_for_reauth(generation, str(exc))
                return self.store.shot(index)
            message = error_message(exc, DEFAULT_SHOT_ERROR)
            LOG.warning("Shot %d regeneration failed: %s", index + 1, message, exc_info=True)
            self.store.set_shot_render(generation, index, RenderFailed(message=message))
            telemetry.emit_event(
                "campaign.shot.failed", {"shot": index + 1, "message": message}, generation=generation
            )
        else:
            self.store.set_shot_render(generation, index, RenderSuccess(image_url=image_url))
            telemetry.emit_event(
                "campaign.shot.rendered", {"shot": index + 1, "regenerated": True}, generation=generation
            )
        return self.store.shot(index)

    # -- video ---------------------------------------------------------

    def generate_video(self, index: int) -> Optional[str]:
        """Generate a clip for one rendered shot; returns the video URL or ``None`` on failure."""

        generation = self.store.begin_video(index)
        shot = self.store.shot(index)
        rotator = StatusRotator(
            lambda text: self.store.set_video_status(generation, text),
            interval_s=self.settings.status_rotate_interval_s,
        )
        kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        try:
            with rotator:
                video_url = run_video_job(
                    self.providers.video,
                    shot.visual_prompt,
                    image_url=shot.image_url,
                    poll_interval_s=self.settings.video_poll_interval_s,
                    **kwargs,
                )
        except Exception as exc:
            LOG.warning("Video generation for shot %d failed: %s", index + 1, exc, exc_info=True)
            self.store.set_error(VIDEO_FAILED_MESSAGE, generation)
            return None
        finally:
            self.store.finish_video(generation)

        if not self.store.attach_video(generation, index, video_url):
            LOG.info("Dropping video for shot %d: campaign changed", index + 1)
            return None
        telemetry.emit_event("campaign.video.completed", {"shot": index + 1}, generation=generation)
        return video_url

    # -- narration -----------------------------------------------------

    def generate_narration(self, voice: Optional[str] = None) -> NarrationAsset:
        script = self.store.script
        if not script.strip():
            self.store.set_error(EMPTY_SCRIPT_MESSAGE)
            raise EmptyScriptError(EMPTY_SCRIPT_MESSAGE)

        resolved_voice = voice or self.settings.default_voice
        generation = self.store.generation
        self.store.set_error(None, generation)
        try:
            pcm = self.providers.narration.synthesize(script, resolved_voice)
        except Exception as exc:
            message = f"Audio failed: {error_message(exc)}"
            LOG.warning("Narration failed: %s", exc, exc_info=True)
            self.store.set_error(message, generation)
            raise
        asset = build_narration_asset(pcm, voice=resolved_voice)
        self.store.set_narration(generation, asset)
        telemetry.emit_event(
            "campaign.narration.completed",
            {"voice": resolved_voice, "duration_s": round(asset.duration_s, 3)},
            generation=generation,
        )
        return asset


__all__ = [
    "GenerationOrchestrator",
    "RunResult",
    "RunState",
    "REAUTH_MESSAGE",
    "EMPTY_SCRIPT_MESSAGE",
    "BRIDGE_EMPTY_MESSAGE",
]
