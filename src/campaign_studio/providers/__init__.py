"""Provider adapters for planning, image, narration and video generation.

Gemini adapters keep the ``google-genai`` import inside their methods so unit
tests and fixture runs don't require the client library.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import StudioSettings
from .bridge import HttpBridgeImageProvider
from .common import (
    BridgeImageProvider,
    CredentialInvalidError,
    MissingDependencyError,
    NarrationProvider,
    PlanningProvider,
    PrimaryImageProvider,
    ProviderError,
    VideoJob,
    VideoProvider,
)
from .fixture import (
    FixtureBridgeProvider,
    FixtureImageProvider,
    FixtureNarrationProvider,
    FixturePlanningProvider,
    FixtureVideoProvider,
)
from .gemini import (
    GeminiImageProvider,
    GeminiNarrationProvider,
    GeminiPlanningProvider,
    GeminiVideoProvider,
)


@dataclass
class ProviderBundle:
    planning: PlanningProvider
    image: PrimaryImageProvider
    narration: NarrationProvider
    video: VideoProvider
    bridge: Optional[BridgeImageProvider] = None


def build_providers(settings: StudioSettings) -> ProviderBundle:
    """Select fixture or live providers from ``settings``."""

    if settings.fixture_mode:
        return ProviderBundle(
            planning=FixturePlanningProvider(),
            image=FixtureImageProvider(),
            narration=FixtureNarrationProvider(),
            video=FixtureVideoProvider(),
            bridge=FixtureBridgeProvider(),
        )
    return ProviderBundle(
        planning=GeminiPlanningProvider(settings.api_key),
        image=GeminiImageProvider(settings.api_key),
        narration=GeminiNarrationProvider(settings.api_key),
        video=GeminiVideoProvider(settings.api_key),
        bridge=HttpBridgeImageProvider(settings.bridge_url),
    )


__all__ = [
    "ProviderBundle",
    "build_providers",
    "BridgeImageProvider",
    "CredentialInvalidError",
    "MissingDependencyError",
    "NarrationProvider",
    "PlanningProvider",
    "PrimaryImageProvider",
    "ProviderError",
    "VideoJob",
    "VideoProvider",
]
