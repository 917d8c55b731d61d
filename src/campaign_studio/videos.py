"""Per-shot video generation: seed extraction, job polling, liveness status."""

from __future__ import annotations

import base64
import binascii
import itertools
import logging
import re
import threading
import time
from typing import Callable, Optional, Sequence, Tuple

from typing_extensions import TypedDict

from .errors import CampaignStudioError
from .providers.common import VideoProvider

LOG = logging.getLogger(__name__)

STATUS_MESSAGES: Tuple[str, ...] = (
    "Director is reviewing the script...",
    "Setting up cinematic lighting...",
    "Capturing the magic in 1080p...",
    "Fine-tuning motion vectors...",
    "Adding final touches to the scene...",
)
VIDEO_FAILED_MESSAGE = "Video generation failed. Please try again."

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]*)*?);base64,(?P<data>.*)$", re.DOTALL)


class VideoGenerationError(CampaignStudioError):
    """Raised when a video job finishes without a usable result."""


class VideoPollEvent(TypedDict, total=False):
    polls: int
    done: bool
    elapsed_s: float


def parse_data_uri(url: str) -> Optional[Tuple[bytes, str]]:
    """Return ``(bytes, mime)`` for a base64 data URI; ``None`` for remote URLs."""

    match = _DATA_URI_RE.match(url or "")
    if not match:
        return None
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError):
        return None
    return data, match.group("mime") or "image/png"


class StatusRotator:
    """Background thread cycling liveness messages while a job runs."""

    def __init__(
        self,
        callback: Callable[[str], None],
        *,
        interval_s: float = 8.0,
        messages: Sequence[str] = STATUS_MESSAGES,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self._callback = callback
        self._interval_s = interval_s
        self._messages = tuple(messages)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "StatusRotator":
        if self._thread is not None:
            return self
        self._callback(self._messages[0])
        self._thread = threading.Thread(target=self._run, name="video-status", daemon=True)
        self._thread.start()
        return self

    def _run(self) -> None:
        cycle = itertools.cycle(self._messages)
        next(cycle)
        while not self._stop.wait(self._interval_s):
            self._callback(next(cycle))

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval_s + 1.0)
            self._thread = None

    def __enter__(self) -> "StatusRotator":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def run_video_job(
    provider: VideoProvider,
    prompt: str,
    *,
    image_url: Optional[str] = None,
    poll_interval_s: float = 10.0,
    sleep: Callable[[float], None] = time.sleep,
    on_poll: Optional[Callable[[VideoPollEvent], None]] = None,
) -> str:
    """Start a job and poll it until done. There is no client-side timeout."""

    seed = parse_data_uri(image_url) if image_url else None
    image_bytes, mime_type = seed if seed else (None, None)
    started = time.monotonic()
    job = provider.start_job(prompt, image_bytes, mime_type)
    while not job.done:
        sleep(poll_interval_s)
        job = provider.poll_job(job)
        if on_poll is not None:
            on_poll({"polls": job.polls, "done": job.done, "elapsed_s": time.monotonic() - started})

    if job.error or not job.uri:
        raise VideoGenerationError(job.error or "Video job finished without a download URI")
    LOG.info("Video job finished after %d poll(s)", job.polls)
    return provider.download_url(job.uri)


__all__ = [
    "STATUS_MESSAGES",
    "VIDEO_FAILED_MESSAGE",
    "VideoGenerationError",
    "VideoPollEvent",
    "parse_data_uri",
    "StatusRotator",
    "run_video_job",
]
