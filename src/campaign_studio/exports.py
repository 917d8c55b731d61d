"""Durable campaign outputs: script text and image archive."""

from __future__ import annotations

import io
import logging
import re
import zipfile
from pathlib import Path
from typing import Optional, Sequence

from .schemas import CampaignMetadata, Shot
from .videos import parse_data_uri

LOG = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w\- ]+", re.UNICODE)


def script_filename(metadata: Optional[CampaignMetadata]) -> str:
    title = metadata.title if metadata and metadata.title else "campaign"
    cleaned = _UNSAFE_CHARS.sub("", title).strip() or "campaign"
    return f"{cleaned}_script.txt"


def export_script(script: str, metadata: Optional[CampaignMetadata] = None) -> tuple[str, bytes]:
    return script_filename(metadata), script.encode("utf-8")


def export_images(shots: Sequence[Shot]) -> bytes:
    """Zip every inline shot image as ``shot_{n}.png``; remote URLs are skipped."""

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for shot in shots:
            url = shot.image_url
            if not url:
                continue
            decoded = parse_data_uri(url)
            if decoded is None:
                LOG.info("Skipping shot %d in archive: image is not inline", shot.shot_number)
                continue
            data, _mime = decoded
            archive.writestr(f"shot_{shot.shot_number}.png", data)
    return buffer.getvalue()


def write_outputs(
    out_dir: Path,
    *,
    script: str,
    metadata: Optional[CampaignMetadata],
    shots: Sequence[Shot],
    narration_wav: Optional[bytes] = None,
) -> list[Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    name, payload = export_script(script, metadata)
    written = [out_dir / name]
    written[0].write_bytes(payload)

    images_path = out_dir / "images.zip"
    images_path.write_bytes(export_images(shots))
    written.append(images_path)

    if narration_wav:
        wav_path = out_dir / "narration.wav"
        wav_path.write_bytes(narration_wav)
        written.append(wav_path)
    return written


__all__ = ["script_filename", "export_script", "export_images", "write_outputs"]
