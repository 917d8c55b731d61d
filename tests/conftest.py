"""Test configuration helpers."""
from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def _ensure_src_on_path() -> None:
    root = Path(__file__).resolve().parents[1]
    src = root / "src"
    for entry in (src, root):
        entry_str = str(entry)
        if entry_str not in sys.path:
            sys.path.insert(0, entry_str)


_ensure_src_on_path()

from campaign_studio import telemetry  # noqa: E402
from campaign_studio.config import StudioSettings  # noqa: E402
from campaign_studio.orchestrator import GenerationOrchestrator  # noqa: E402
from campaign_studio.providers import ProviderBundle  # noqa: E402
from campaign_studio.providers.fixture import (  # noqa: E402
    ONE_PIXEL_PNG_B64,
    FixtureBridgeProvider,
    FixtureImageProvider,
    FixtureNarrationProvider,
    FixturePlanningProvider,
    FixtureVideoProvider,
)
from campaign_studio.schemas import CampaignBrief, FileData  # noqa: E402
from campaign_studio.store import CampaignStore  # noqa: E402
from campaign_studio.styles import StyleCatalog, load_catalog  # noqa: E402


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch):
    for key in list(os.environ):
        if key.startswith("CAMPAIGN_STUDIO_") or key in ("GEMINI_API_KEY", "API_KEY"):
            monkeypatch.delenv(key, raising=False)
    telemetry.clear_events()
    yield
    telemetry.clear_events()


@pytest.fixture
def catalog() -> StyleCatalog:
    return load_catalog()


@pytest.fixture
def product_image() -> FileData:
    return FileData(data=ONE_PIXEL_PNG_B64, mime_type="image/png")


@pytest.fixture
def brief(product_image: FileData) -> CampaignBrief:
    return CampaignBrief(topic="Glow serum", style_id="ugc", product_image=product_image)


@pytest.fixture
def providers() -> ProviderBundle:
    return ProviderBundle(
        planning=FixturePlanningProvider(),
        image=FixtureImageProvider(),
        narration=FixtureNarrationProvider(),
        video=FixtureVideoProvider(),
        bridge=FixtureBridgeProvider(),
    )


@pytest.fixture
def store() -> CampaignStore:
    return CampaignStore()


@pytest.fixture
def settings() -> StudioSettings:
    return StudioSettings(video_poll_interval_s=0.0, status_rotate_interval_s=0.05, fixture_mode=True)


@pytest.fixture
def orchestrator(store: CampaignStore, providers: ProviderBundle, settings: StudioSettings, catalog: StyleCatalog):
    return GenerationOrchestrator(store, providers, settings, catalog=catalog, sleep=lambda _s: None)
