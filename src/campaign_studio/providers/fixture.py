"""Deterministic offline providers for smoke runs and unit tests."""

from __future__ import annotations

import hashlib
import json
import struct
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..prompt_templates import PlanRequest
from ..schemas import FileData
from .common import CredentialInvalidError, ProviderError, VideoJob

# Minimal valid 1x1 PNG (base64) to use as deterministic image bytes.
ONE_PIXEL_PNG_B64 = "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR4nGNgYAAAAAMAASsJTYQAAAAASUVORK5CYII="


def _seed(text: str) -> int:
    return int(hashlib.sha256(text.encode("utf-8")).hexdigest()[:8], 16)


def fixture_plan(request: PlanRequest) -> Dict[str, Any]:
    """Plan payload derived only from the request."""

    topic = request.brief_text.strip() or "Untitled product"
    count = max(1, request.shot_count)
    prompts = [f"Shot {i + 1} of {topic}: model holds the product, soft daylight" for i in range(count)]
    scripts = [f"Line {i + 1} about {topic}." for i in range(count)]
    return {
        "tiktokScript": " ".join(scripts),
        "shotPrompts": prompts,
        "shotScripts": scripts,
        "consistency_profile": f"Same model and outfit throughout ({request.style_id}).",
        "tiktokMetadata": {
            "description": f"{topic} campaign",
            "keywords": [word.lower() for word in topic.split()[:3]] or ["campaign"],
        },
    }


@dataclass
class FixturePlanningProvider:
    """Returns a deterministic plan; ``fenced`` wraps it in a markdown code fence."""

    fenced: bool = False
    fail_with: Optional[str] = None
    calls: List[PlanRequest] = field(default_factory=list)

    def request_plan(self, request: PlanRequest) -> str:
        self.calls.append(request)
        if self.fail_with:
            raise ProviderError(self.fail_with)
        text = json.dumps(fixture_plan(request), ensure_ascii=False)
        if self.fenced:
            return f"```json\n{text}\n```"
        return text


@dataclass
class FixtureImageProvider:
    """Returns the one-pixel PNG for every prompt.

    ``failures`` maps a zero-based call number to the error message raised on
    that call; ``credential_failure_at`` raises :class:`CredentialInvalidError`
    on that call instead.
    """

    failures: Dict[int, str] = field(default_factory=dict)
    credential_failure_at: Optional[int] = None
    calls: List[Dict[str, Any]] = field(default_factory=list)

    def generate_image(
        self,
        prompt: str,
        reference_images: Sequence[FileData],
        *,
        style: str,
        consistency_profile: str,
        high_quality: bool = False,
    ) -> str:
        call_no = len(self.calls)
        self.calls.append(
            {
                "prompt": prompt,
                "references": len(reference_images),
                "style": style,
                "consistency_profile": consistency_profile,
                "high_quality": high_quality,
            }
        )
        if self.credential_failure_at is not None and call_no == self.credential_failure_at:
            raise CredentialInvalidError("Requested entity was not found.")
        if call_no in self.failures:
            raise ProviderError(self.failures[call_no])
        return ONE_PIXEL_PNG_B64


@dataclass
class FixtureBridgeProvider:
    images: List[str] = field(default_factory=lambda: [f"data:image/png;base64,{ONE_PIXEL_PNG_B64}"] * 2)
    calls: List[str] = field(default_factory=list)

    def generate_images(self, prompt: str, token: str) -> List[str]:
        self.calls.append(prompt)
        return list(self.images)


@dataclass
class FixtureNarrationProvider:
    """Deterministic 16-bit sawtooth PCM whose length scales with the text."""

    samples_per_char: int = 240
    calls: List[Dict[str, str]] = field(default_factory=list)

    def synthesize(self, text: str, voice: str) -> bytes:
        self.calls.append({"text": text, "voice": voice})
        count = max(1, len(text)) * self.samples_per_char
        base = _seed(voice) % 512
        samples = [((base + i) % 1024) - 512 for i in range(count)]
        return struct.pack(f"<{count}h", *samples)


@dataclass
class FixtureVideoProvider:
    """Video job that completes after ``polls_until_done`` polls."""

    polls_until_done: int = 1
    fail: bool = False
    api_key: str = "fixture-key"
    started: List[Dict[str, Any]] = field(default_factory=list)

    def start_job(self, prompt: str, image_bytes: Optional[bytes] = None, mime_type: Optional[str] = None) -> VideoJob:
        self.started.append({"prompt": prompt, "has_image": image_bytes is not None, "mime_type": mime_type})
        handle = f"operations/fixture-{_seed(prompt):08x}"
        done = self.polls_until_done <= 0
        return VideoJob(done=done, uri=self._uri(handle) if done else None, handle=handle)

    def poll_job(self, job: VideoJob) -> VideoJob:
        polls = job.polls + 1
        done = polls >= self.polls_until_done
        if done and self.fail:
            return VideoJob(done=True, error="fixture video failed", handle=job.handle, polls=polls)
        return VideoJob(done=done, uri=self._uri(job.handle) if done else None, handle=job.handle, polls=polls)

    def download_url(self, uri: str) -> str:
        return f"{uri}&key={self.api_key}"

    def _uri(self, handle: Any) -> str:
        return f"https://fixture.invalid/videos/{handle}?alt=media"


__all__ = [
    "ONE_PIXEL_PNG_B64",
    "fixture_plan",
    "FixturePlanningProvider",
    "FixtureImageProvider",
    "FixtureBridgeProvider",
    "FixtureNarrationProvider",
    "FixtureVideoProvider",
]
