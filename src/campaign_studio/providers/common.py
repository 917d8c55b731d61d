"""Contracts and errors shared by provider adapters."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence, Union

from ..errors import CampaignStudioError
from ..prompt_templates import PlanRequest
from ..schemas import FileData

# Signature the primary provider uses to report an invalid or expired key.
CREDENTIAL_ERROR_SIGNATURE = "entity was not found"


class MissingDependencyError(CampaignStudioError):
    """Raised when an adapter's client library is not installed.

    The message should tell the user which packages are required.
    """


class ProviderError(CampaignStudioError):
    """Recoverable provider failure scoped to a single request."""


class CredentialInvalidError(ProviderError):
    """Primary provider rejected the credential; the whole run must stop."""


def is_credential_error(exc: BaseException) -> bool:
    if isinstance(exc, CredentialInvalidError):
        return True
    return CREDENTIAL_ERROR_SIGNATURE in str(exc).lower()


def error_message(exc: BaseException, default: str = "Render failed") -> str:
    text = str(exc).strip()
    return text or default


@dataclass
class VideoJob:
    """Handle for a long-running video generation job."""

    done: bool = False
    uri: Optional[str] = None
    error: Optional[str] = None
    handle: Any = None
    polls: int = 0


class PlanningProvider(Protocol):
    def request_plan(self, request: PlanRequest) -> Union[str, bytes, dict]:
        ...


class PrimaryImageProvider(Protocol):
    def generate_image(
        self,
        prompt: str,
        reference_images: Sequence[FileData],
        *,
        style: str,
        consistency_profile: str,
        high_quality: bool = False,
    ) -> str:
        """Return the rendered image as a base64 string."""
        ...


class BridgeImageProvider(Protocol):
    def generate_images(self, prompt: str, token: str) -> List[str]:
        """Return image URLs or data URIs; the caller uses the first one."""
        ...


class NarrationProvider(Protocol):
    def synthesize(self, text: str, voice: str) -> bytes:
        """Return raw little-endian 16-bit mono PCM at 24 kHz."""
        ...


class VideoProvider(Protocol):
    def start_job(self, prompt: str, image_bytes: Optional[bytes] = None, mime_type: Optional[str] = None) -> VideoJob:
        ...

    def poll_job(self, job: VideoJob) -> VideoJob:
        ...

    def download_url(self, uri: str) -> str:
        ...


__all__ = [
    "CREDENTIAL_ERROR_SIGNATURE",
    "MissingDependencyError",
    "ProviderError",
    "CredentialInvalidError",
    "is_credential_error",
    "error_message",
    "VideoJob",
    "PlanningProvider",
    "PrimaryImageProvider",
    "BridgeImageProvider",
    "NarrationProvider",
    "VideoProvider",
]
