"""FastAPI surface for a single-session campaign studio."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .config import StudioSettings
from .errors import BriefValidationError, EmptyScriptError, ShotNotReadyError, VideoBusyError
from .exports import export_images, export_script
from .orchestrator import GenerationOrchestrator
from .prompt_composer import platform_prompt_bundle
from .providers import ProviderBundle, build_providers
from .providers.common import MissingDependencyError, ProviderError
from .schemas import CampaignBrief, RenderSuccess, Shot
from .store import CampaignStore
from .styles import StyleCatalog, load_catalog, resolve_audio_type

LOG = logging.getLogger(__name__)


class ScriptUpdate(BaseModel):
    script: str


class NarrationRequest(BaseModel):
    voice: Optional[str] = None


def create_app(
    settings: StudioSettings | None = None,
    *,
    store: CampaignStore | None = None,
    providers: ProviderBundle | None = None,
    catalog: StyleCatalog | None = None,
) -> FastAPI:
    """Create the studio app around one campaign store."""

    cfg = settings or StudioSettings.from_env()
    campaign_store = store or CampaignStore()
    style_catalog = catalog or load_catalog()
    orchestrator = GenerationOrchestrator(
        campaign_store,
        providers or build_providers(cfg),
        cfg,
        catalog=style_catalog,
    )
    app = FastAPI(title="Campaign Studio")
    app.state.store = campaign_store
    app.state.orchestrator = orchestrator

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
        content = exc.detail if isinstance(exc.detail, dict) else {
            "error": {
                "code": "studio_failure",
                "message": str(exc.detail),
                "details": {},
            }
        }
        return JSONResponse(status_code=exc.status_code, content=content)

    def _shot(index: int) -> Shot:
        try:
            return campaign_store.shot(index)
        except ShotNotReadyError as exc:
            raise _http_error(status.HTTP_404_NOT_FOUND, "shot_missing", str(exc)) from exc

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/styles")
    def list_styles() -> dict[str, Any]:
        return {
            "styles": [
                {
                    "id": style.id,
                    "name": style.name,
                    "description": style.description,
                    "inputs": list(style.inputs),
                    "audio_strategy": style.audio_strategy,
                    "story_flow": list(style.story_flow),
                }
                for style in style_catalog.styles.values()
            ],
            "languages": [asdict(option) for option in style_catalog.languages],
            "script_tones": [asdict(option) for option in style_catalog.script_tones],
            "voices": [asdict(option) for option in style_catalog.voices],
        }

    @app.post("/campaigns", status_code=status.HTTP_202_ACCEPTED)
    def start_campaign(brief: CampaignBrief, background: BackgroundTasks) -> dict[str, Any]:
        try:
            style = orchestrator.validate(brief)
        except BriefValidationError as exc:
            raise _http_error(status.HTTP_400_BAD_REQUEST, "invalid_brief", str(exc)) from exc
        background.add_task(orchestrator.generate_campaign, brief)
        return {"status": "accepted", "style_id": style.id}

    @app.get("/campaign")
    def get_campaign() -> dict[str, Any]:
        return campaign_store.snapshot().model_dump(mode="json")

    @app.delete("/campaign")
    def discard_campaign() -> dict[str, Any]:
        return {"generation": campaign_store.discard()}

    @app.put("/campaign/script")
    def update_script(update: ScriptUpdate) -> dict[str, str]:
        campaign_store.edit_script(update.script)
        return {"script": campaign_store.script}

    @app.post("/campaign/shots/{index}/regenerate")
    def regenerate_shot(index: int) -> dict[str, Any]:
        _shot(index)
        try:
            shot = orchestrator.regenerate_shot(index)
        except (ShotNotReadyError, BriefValidationError) as exc:
            raise _http_error(status.HTTP_409_CONFLICT, "shot_not_ready", str(exc)) from exc
        return shot.model_dump(mode="json")

    @app.post("/campaign/shots/{index}/video", status_code=status.HTTP_202_ACCEPTED)
    def start_video(index: int, background: BackgroundTasks) -> dict[str, Any]:
        shot = _shot(index)
        active = campaign_store.video_index
        if active is not None:
            raise _http_error(
                status.HTTP_409_CONFLICT,
                "video_busy",
                f"A video is already being generated for shot {active + 1}",
                {"video_index": active},
            )
        if not isinstance(shot.render, RenderSuccess):
            raise _http_error(status.HTTP_409_CONFLICT, "shot_not_ready", f"Shot {index + 1} has no rendered image")
        background.add_task(_run_video, orchestrator, index)
        return {"status": "accepted", "index": index}

    @app.post("/campaign/narration")
    def create_narration(request: NarrationRequest | None = None) -> dict[str, Any]:
        voice = request.voice if request else None
        try:
            asset = orchestrator.generate_narration(voice)
        except EmptyScriptError as exc:
            raise _http_error(status.HTTP_400_BAD_REQUEST, "empty_script", str(exc)) from exc
        except (ProviderError, MissingDependencyError) as exc:
            raise _http_error(status.HTTP_502_BAD_GATEWAY, "narration_failed", str(exc)) from exc
        return {
            "voice": asset.voice,
            "sample_rate": asset.sample_rate,
            "channels": asset.channels,
            "duration_s": asset.duration_s,
        }

    @app.get("/campaign/narration.wav")
    def download_narration() -> Response:
        asset = campaign_store.narration
        if asset is None:
            raise _http_error(status.HTTP_404_NOT_FOUND, "narration_missing", "No narration has been generated")
        return Response(content=asset.wav_bytes, media_type="audio/wav")

    @app.get("/campaign/shots/{index}/prompts")
    def shot_prompts(index: int) -> dict[str, str]:
        shot = _shot(index)
        brief = campaign_store.brief
        if brief is None:
            raise _http_error(status.HTTP_404_NOT_FOUND, "campaign_missing", "No active campaign")
        style = style_catalog.get(brief.style_id)
        return platform_prompt_bundle(
            shot,
            style,
            index,
            audio_type=resolve_audio_type(brief, style),
            tone=brief.tone,
            shot_count=len(campaign_store.shots),
        )

    @app.get("/campaign/error")
    def get_error() -> dict[str, Any]:
        return {"error": campaign_store.error, "reauth_required": campaign_store.reauth_required}

    @app.delete("/campaign/error")
    def dismiss_error() -> dict[str, Any]:
        campaign_store.dismiss_error()
        return {"error": None, "reauth_required": False}

    @app.get("/campaign/export/script")
    def download_script() -> Response:
        snapshot = campaign_store.snapshot()
        filename, payload = export_script(snapshot.script, snapshot.metadata)
        return Response(
            content=payload,
            media_type="text/plain; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/campaign/export/images")
    def download_images() -> Response:
        return Response(
            content=export_images(campaign_store.shots),
            media_type="application/zip",
            headers={"Content-Disposition": 'attachment; filename="campaign_images.zip"'},
        )

    return app


def _run_video(orchestrator: GenerationOrchestrator, index: int) -> None:
    try:
        orchestrator.generate_video(index)
    except (VideoBusyError, ShotNotReadyError) as exc:
        LOG.warning("Video request for shot %d rejected: %s", index + 1, exc)


def _http_error(status_code: int, code: str, message: str, details: dict[str, Any] | None = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            }
        },
    )


__all__ = ["create_app"]
