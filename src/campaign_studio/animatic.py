"""Animatic playback: a timed slideshow of rendered shots.

With a narration track the audio clock is the source of truth: the sampler
only reads ``current_time / duration`` and maps it onto a partition of the
timeline weighted by each shot's voiceover length. Without audio the player
advances its own progress on every tick and picks the shot by equal division.
The two index rules differ on purpose; silent playback has no timing signal
to weight by.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence

from .schemas import NarrationAsset, RenderSuccess, Shot

LOG = logging.getLogger(__name__)

SAMPLE_INTERVAL_S = 0.1
SLIDE_DURATION_MS = 3000
SHORT_LINE_CHARS = 5
SHORT_LINE_WEIGHT = 20


@dataclass(frozen=True)
class ShotTiming:
    index: int
    start: float
    end: float


def compute_shot_timings(lines: Sequence[str]) -> List[ShotTiming]:
    """Partition [0, 1] among shots in proportion to their script length.

    Lines shorter than five characters weigh 20 so silent or near-silent shots
    still get screen time.
    """

    weights = [len(line or "") if len(line or "") >= SHORT_LINE_CHARS else SHORT_LINE_WEIGHT for line in lines]
    total = float(sum(weights))
    timings: List[ShotTiming] = []
    cursor = 0
    for index, weight in enumerate(weights):
        start = cursor / total
        cursor += weight
        timings.append(ShotTiming(index=index, start=start, end=cursor / total))
    return timings


def active_index(timings: Sequence[ShotTiming], progress: float) -> Optional[int]:
    for timing in timings:
        if timing.start <= progress < timing.end:
            return timing.index
    return None


def equal_division_index(progress: float, count: int) -> int:
    if count <= 0:
        return 0
    return max(0, min(math.floor(progress * count), count - 1))


class AudioTrack(Protocol):
    @property
    def current_time(self) -> float:
        ...

    @property
    def duration(self) -> float:
        ...

    def play(self) -> None:
        ...

    def pause(self) -> None:
        ...

    def seek(self, position_s: float) -> None:
        ...

    def add_ended_listener(self, callback: Callable[[], None]) -> None:
        ...

    def remove_ended_listener(self, callback: Callable[[], None]) -> None:
        ...


class WavPlaybackClock:
    """Playback position of a narration asset measured on a monotonic clock.

    No samples are sent to a device; the clock stands in for a host audio
    element and fires ``ended`` listeners when the position reaches the end.
    """

    def __init__(self, asset: NarrationAsset, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._duration = asset.duration_s
        self._clock = clock
        self._lock = threading.RLock()
        self._offset = 0.0
        self._started_at: Optional[float] = None
        self._timer: Optional[threading.Timer] = None
        self._listeners: List[Callable[[], None]] = []

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def playing(self) -> bool:
        with self._lock:
            return self._started_at is not None

    @property
    def current_time(self) -> float:
        with self._lock:
            if self._started_at is None:
                return self._offset
            return min(self._offset + (self._clock() - self._started_at), self._duration)

    def play(self) -> None:
        with self._lock:
            if self._started_at is not None:
                return
            if self._offset >= self._duration:
                self._offset = 0.0
            self._started_at = self._clock()
            self._arm_timer()

    def pause(self) -> None:
        with self._lock:
            if self._started_at is None:
                return
            self._offset = self.current_time
            self._started_at = None
            self._cancel_timer()

    def seek(self, position_s: float) -> None:
        with self._lock:
            self._offset = max(0.0, min(position_s, self._duration))
            if self._started_at is not None:
                self._started_at = self._clock()
                self._arm_timer()

    def add_ended_listener(self, callback: Callable[[], None]) -> None:
        with self._lock:
            self._listeners.append(callback)

    def remove_ended_listener(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _arm_timer(self) -> None:
        self._cancel_timer()
        remaining = max(0.0, self._duration - self._offset)
        self._timer = threading.Timer(remaining, self._ended)
        self._timer.daemon = True
        self._timer.start()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _ended(self) -> None:
        with self._lock:
            if self._started_at is None:
                return
            self._offset = self._duration
            self._started_at = None
            self._timer = None
            listeners = list(self._listeners)
        for callback in listeners:
            callback()


@dataclass(frozen=True)
class AnimaticFrame:
    index: int
    progress: float
    playing: bool
    caption: str
    scene_label: str
    zoom: str
    image_url: Optional[str] = None
    video_url: Optional[str] = None


class AnimaticPlayer:
    def __init__(
        self,
        shots: Sequence[Shot],
        audio: Optional[AudioTrack] = None,
        *,
        sample_interval_s: float = SAMPLE_INTERVAL_S,
        slide_duration_ms: int = SLIDE_DURATION_MS,
    ) -> None:
        if sample_interval_s <= 0:
            raise ValueError("sample_interval_s must be positive")
        self.shots = [shot for shot in shots if isinstance(shot.render, RenderSuccess)]
        self.timings = compute_shot_timings([shot.voiceover_script for shot in self.shots])
        self.audio = audio
        self.sample_interval_s = sample_interval_s
        self.slide_duration_ms = slide_duration_ms
        self.index = 0
        self.progress = 0.0
        self.playing = False
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._sampler: Optional[threading.Thread] = None
        if self.audio is not None:
            self.audio.add_ended_listener(self._on_audio_ended)

    @property
    def count(self) -> int:
        return len(self.shots)

    # -- transport -----------------------------------------------------

    def play(self) -> None:
        with self._lock:
            if self.playing or not self.shots:
                return
            if self.progress >= 1.0:
                self._rewind()
            if self.audio is not None:
                self.audio.play()
            self.playing = True

    def pause(self) -> None:
        with self._lock:
            if not self.playing:
                return
            if self.audio is not None:
                self.audio.pause()
            self.playing = False

    def toggle(self) -> None:
        with self._lock:
            if self.playing:
                self.pause()
            else:
                self.play()

    def restart(self) -> None:
        with self._lock:
            if self.audio is not None:
                self.audio.pause()
            self.playing = False
            self._rewind()
            self.play()

    def _rewind(self) -> None:
        self.index = 0
        self.progress = 0.0
        if self.audio is not None:
            self.audio.seek(0.0)

    # -- clock ---------------------------------------------------------

    def tick(self) -> None:
        """Sample the clock once and update ``index`` and ``progress``."""

        with self._lock:
            if not self.playing or not self.shots:
                return
            if self.audio is not None:
                self._tick_audio()
            else:
                self._tick_timer()

    def _tick_audio(self) -> None:
        duration = self.audio.duration if self.audio is not None else 0.0
        if duration <= 0:
            return
        fraction = self.audio.current_time / duration
        if fraction >= 1.0:
            self._finish()
            return
        self.progress = max(0.0, fraction)
        found = active_index(self.timings, self.progress)
        if found is not None:
            self.index = found

    def _tick_timer(self) -> None:
        step = (self.sample_interval_s * 1000.0) / (self.count * self.slide_duration_ms)
        self.progress = min(1.0, self.progress + step)
        self.index = equal_division_index(self.progress, self.count)
        if self.progress >= 1.0:
            self.playing = False

    def _finish(self) -> None:
        self.progress = 1.0
        self.index = max(0, self.count - 1)
        if self.playing and self.audio is not None:
            self.audio.pause()
        self.playing = False

    def _on_audio_ended(self) -> None:
        with self._lock:
            self._finish()

    # -- sampler -------------------------------------------------------

    def start(self) -> "AnimaticPlayer":
        """Run ``tick`` on a background thread every ``sample_interval_s``."""

        with self._lock:
            if self._sampler is not None:
                return self
            self._stop.clear()
            self._sampler = threading.Thread(target=self._sample_loop, name="animatic-sampler", daemon=True)
            self._sampler.start()
        return self

    def _sample_loop(self) -> None:
        while not self._stop.wait(self.sample_interval_s):
            self.tick()

    @property
    def sampling(self) -> bool:
        return self._sampler is not None and self._sampler.is_alive()

    def close(self) -> None:
        self._stop.set()
        sampler = self._sampler
        if sampler is not None:
            sampler.join(timeout=self.sample_interval_s * 10 + 1.0)
            self._sampler = None
        with self._lock:
            if self.audio is not None:
                self.audio.remove_ended_listener(self._on_audio_ended)
                self.audio.pause()
            self.playing = False

    def __enter__(self) -> "AnimaticPlayer":
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- view ----------------------------------------------------------

    def frame(self) -> Optional[AnimaticFrame]:
        with self._lock:
            if not self.shots:
                return None
            shot = self.shots[self.index]
            return AnimaticFrame(
                index=self.index,
                progress=self.progress,
                playing=self.playing,
                caption=shot.voiceover_script or shot.visual_prompt,
                scene_label=f"SCENE {self.index + 1} / {self.count}",
                zoom="in" if self.index % 2 == 0 else "out",
                image_url=shot.image_url,
                video_url=shot.video_url,
            )


__all__ = [
    "SAMPLE_INTERVAL_S",
    "SLIDE_DURATION_MS",
    "ShotTiming",
    "compute_shot_timings",
    "active_index",
    "equal_division_index",
    "AudioTrack",
    "WavPlaybackClock",
    "AnimaticFrame",
    "AnimaticPlayer",
]
