"""PCM helpers for narration assets."""

from __future__ import annotations

import base64
import io
import sys
import wave
from array import array
from typing import Iterable, Union

from .schemas import NarrationAsset

NARRATION_SAMPLE_RATE = 24000
NARRATION_CHANNELS = 1
SAMPLE_WIDTH = 2
WAV_HEADER_BYTES = 44


def _pcm_bytes(samples: Union[bytes, bytearray, memoryview, Iterable[int]]) -> bytes:
    if isinstance(samples, (bytes, bytearray, memoryview)):
        raw = bytes(samples)
        # A dangling half-sample cannot be framed.
        return raw[: len(raw) - (len(raw) % SAMPLE_WIDTH)]
    frames = array("h", samples)
    if sys.byteorder == "big":
        frames.byteswap()
    return frames.tobytes()


def pcm_to_wav(
    samples: Union[bytes, bytearray, memoryview, Iterable[int]],
    *,
    channels: int = NARRATION_CHANNELS,
    sample_rate: int = NARRATION_SAMPLE_RATE,
) -> bytes:
    """Wrap signed 16-bit little-endian PCM in a canonical 44-byte WAV header."""

    data = _pcm_bytes(samples)
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as writer:
        writer.setnchannels(channels)
        writer.setsampwidth(SAMPLE_WIDTH)
        writer.setframerate(sample_rate)
        writer.writeframes(data)
    return buffer.getvalue()


def decode_base64_pcm(payload: str) -> bytes:
    return base64.b64decode(payload)


def build_narration_asset(pcm: bytes, *, voice: str, sample_rate: int = NARRATION_SAMPLE_RATE) -> NarrationAsset:
    return NarrationAsset(
        wav_bytes=pcm_to_wav(pcm, channels=NARRATION_CHANNELS, sample_rate=sample_rate),
        sample_rate=sample_rate,
        channels=NARRATION_CHANNELS,
        sample_width=SAMPLE_WIDTH,
        voice=voice,
    )


__all__ = [
    "NARRATION_SAMPLE_RATE",
    "NARRATION_CHANNELS",
    "SAMPLE_WIDTH",
    "WAV_HEADER_BYTES",
    "pcm_to_wav",
    "decode_base64_pcm",
    "build_narration_asset",
]
