"""Gemini-backed providers (planning, image, narration, video).

The ``google-genai`` client is imported lazily so the rest of the package and
the fixture providers work without it installed.
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Optional, Sequence

from ..prompt_templates import PlanRequest, build_image_prompt
from ..schemas import FileData
from .common import (
    CredentialInvalidError,
    MissingDependencyError,
    ProviderError,
    VideoJob,
    is_credential_error,
)

LOG = logging.getLogger(__name__)

MODEL_PLANNING = "gemini-3-pro-preview"
MODEL_IMAGE_LITE = "gemini-2.5-flash-image"
MODEL_IMAGE_PRO = "gemini-3-pro-image-preview"
MODEL_VIDEO = "veo-3.1-fast-generate-preview"
MODEL_TTS = "gemini-2.5-flash-preview-tts"
DEFAULT_VOICE = "Puck"
VIDEO_PROMPT_SUFFIX = ", cinematic movement, high quality"


def _load_genai() -> tuple[Any, Any]:
    try:
        from google import genai
        from google.genai import types
    except ImportError as exc:  # pragma: no cover - depends on environment
        raise MissingDependencyError(
            "google-genai is required for the Gemini providers. Install with `pip install google-genai`."
        ) from exc
    return genai, types


def _translate_error(exc: Exception, action: str) -> ProviderError:
    if is_credential_error(exc):
        return CredentialInvalidError(str(exc))
    return ProviderError(f"{action}: {exc}")


class GeminiBase:
    """Holds the API key and a lazily constructed client."""

    def __init__(self, api_key: Optional[str], *, client: Any = None) -> None:
        self._api_key = api_key or ""
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            genai, _ = _load_genai()
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    @property
    def types(self) -> Any:
        _, types = _load_genai()
        return types


class GeminiPlanningProvider(GeminiBase):
    def __init__(self, api_key: Optional[str], *, model: str = MODEL_PLANNING, client: Any = None) -> None:
        super().__init__(api_key, client=client)
        self.model = model

    def request_plan(self, request: PlanRequest) -> str:
        types = self.types
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=request.response_schema,
            system_instruction=request.system_instruction,
        )
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=request.user_query,
                config=config,
            )
        except Exception as exc:
            raise _translate_error(exc, "Planning request failed") from exc
        return response.text or ""


class GeminiImageProvider(GeminiBase):
    def __init__(
        self,
        api_key: Optional[str],
        *,
        fast_model: str = MODEL_IMAGE_LITE,
        quality_model: str = MODEL_IMAGE_PRO,
        client: Any = None,
    ) -> None:
        super().__init__(api_key, client=client)
        self.fast_model = fast_model
        self.quality_model = quality_model

    def generate_image(
        self,
        prompt: str,
        reference_images: Sequence[FileData],
        *,
        style: str,
        consistency_profile: str,
        high_quality: bool = False,
    ) -> str:
        types = self.types
        parts: list[Any] = [build_image_prompt(prompt, style, consistency_profile)]
        for ref in reference_images:
            parts.append(types.Part.from_bytes(data=ref.raw_bytes(), mime_type=ref.mime_type))
        config = None
        if high_quality:
            config = types.GenerateContentConfig(
                image_config=types.ImageConfig(aspect_ratio="9:16", image_size="1K"),
            )
        model = self.quality_model if high_quality else self.fast_model
        try:
            response = self.client.models.generate_content(model=model, contents=parts, config=config)
        except Exception as exc:
            raise _translate_error(exc, "Image render failed") from exc

        for part in _response_parts(response):
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                data = inline.data
                return data if isinstance(data, str) else base64.b64encode(data).decode("ascii")
        raise ProviderError("Image render failed.")


class GeminiNarrationProvider(GeminiBase):
    def __init__(self, api_key: Optional[str], *, model: str = MODEL_TTS, client: Any = None) -> None:
        super().__init__(api_key, client=client)
        self.model = model

    def synthesize(self, text: str, voice: str) -> bytes:
        types = self.types
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice or DEFAULT_VOICE),
                ),
            ),
        )
        try:
            response = self.client.models.generate_content(model=self.model, contents=text, config=config)
        except Exception as exc:
            raise _translate_error(exc, "Narration failed") from exc
        for part in _response_parts(response):
            inline = getattr(part, "inline_data", None)
            if inline is not None and inline.data:
                data = inline.data
                return base64.b64decode(data) if isinstance(data, str) else bytes(data)
        return b""


class GeminiVideoProvider(GeminiBase):
    def __init__(self, api_key: Optional[str], *, model: str = MODEL_VIDEO, client: Any = None) -> None:
        super().__init__(api_key, client=client)
        self.model = model

    def start_job(self, prompt: str, image_bytes: Optional[bytes] = None, mime_type: Optional[str] = None) -> VideoJob:
        types = self.types
        image = None
        if image_bytes:
            image = types.Image(image_bytes=image_bytes, mime_type=mime_type or "image/png")
        try:
            operation = self.client.models.generate_videos(
                model=self.model,
                prompt=f"{prompt}{VIDEO_PROMPT_SUFFIX}",
                image=image,
                config=types.GenerateVideosConfig(number_of_videos=1, resolution="720p", aspect_ratio="9:16"),
            )
        except Exception as exc:
            raise _translate_error(exc, "Video generation failed") from exc
        return _job_from_operation(operation)

    def poll_job(self, job: VideoJob) -> VideoJob:
        try:
            operation = self.client.operations.get(job.handle)
        except Exception as exc:
            raise _translate_error(exc, "Video status check failed") from exc
        updated = _job_from_operation(operation)
        updated.polls = job.polls + 1
        return updated

    def download_url(self, uri: str) -> str:
        return f"{uri}&key={self._api_key}"


def _response_parts(response: Any) -> list[Any]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    return list(getattr(content, "parts", None) or [])


def _job_from_operation(operation: Any) -> VideoJob:
    done = bool(getattr(operation, "done", False))
    uri = None
    error = None
    if done:
        response = getattr(operation, "response", None)
        videos = getattr(response, "generated_videos", None) or []
        if videos and getattr(videos[0], "video", None) is not None:
            uri = videos[0].video.uri
        op_error = getattr(operation, "error", None)
        if op_error:
            error = str(op_error)
    return VideoJob(done=done, uri=uri, error=error, handle=operation)


__all__ = [
    "GeminiPlanningProvider",
    "GeminiImageProvider",
    "GeminiNarrationProvider",
    "GeminiVideoProvider",
    "MODEL_PLANNING",
    "MODEL_IMAGE_LITE",
    "MODEL_IMAGE_PRO",
    "MODEL_VIDEO",
    "MODEL_TTS",
]
