from __future__ import annotations

import os

import pytest

from campaign_studio import styles
from campaign_studio.config import StudioSettings
from campaign_studio.errors import BriefValidationError
from campaign_studio.schemas import CampaignBrief, FileData
from campaign_studio.utils import env as env_utils


def test_settings_defaults():
    cfg = StudioSettings.from_env({})
    assert cfg.api_key is None
    assert cfg.bridge_token is None
    assert cfg.bridge_url == "http://127.0.0.1:8787/api/google-labs"
    assert cfg.video_poll_interval_s == 10.0
    assert cfg.status_rotate_interval_s == 8.0
    assert cfg.default_voice == "Puck"
    assert not cfg.high_quality
    assert not cfg.fixture_mode


def test_settings_read_environment():
    cfg = StudioSettings.from_env(
        {
            "API_KEY": " key-1 ",
            "CAMPAIGN_STUDIO_BRIDGE_TOKEN": "tok",
            "CAMPAIGN_STUDIO_BRIDGE_URL": "http://bridge:9000/api/",
            "CAMPAIGN_STUDIO_HIGH_QUALITY": "yes",
            "CAMPAIGN_STUDIO_VIDEO_POLL_S": "2.5",
            "CAMPAIGN_STUDIO_FIXTURE": "1",
        }
    )
    assert cfg.api_key == "key-1"
    assert cfg.bridge_token == "tok"
    assert cfg.bridge_url == "http://bridge:9000/api"
    assert cfg.high_quality
    assert cfg.video_poll_interval_s == 2.5
    assert cfg.fixture_mode


def test_gemini_key_wins_over_api_key():
    cfg = StudioSettings.from_env({"GEMINI_API_KEY": "g", "API_KEY": "a"})
    assert cfg.api_key == "g"


def test_settings_reject_bad_intervals():
    with pytest.raises(ValueError):
        StudioSettings.from_env({"CAMPAIGN_STUDIO_STATUS_ROTATE_S": "0"})
    with pytest.raises(ValueError):
        StudioSettings.from_env({"CAMPAIGN_STUDIO_VIDEO_POLL_S": "soon"})


def test_with_overrides_ignores_none():
    cfg = StudioSettings(default_voice="Kore").with_overrides(default_voice=None, high_quality=True)
    assert cfg.default_voice == "Kore"
    assert cfg.high_quality


def test_env_flag_parsing():
    assert env_utils.env_flag("On")
    assert not env_utils.env_flag("off", default=True)
    assert env_utils.env_flag("maybe", default=True)
    assert env_utils.fixture_mode_enabled({"CAMPAIGN_STUDIO_FIXTURE": "true"})


def test_catalog_lists_all_styles(catalog):
    assert set(catalog.styles) == {
        "ugc",
        "ads",
        "presentation",
        "mannequin",
        "treadmill",
        "realestate",
        "aesthetic",
        "foodie",
        "cinematic",
        "travel",
    }
    assert [voice.id for voice in catalog.voices][0] == "Puck"
    assert catalog.default_shot_count == 5


@pytest.mark.parametrize(
    "style_id,strategy",
    [
        ("ugc", "hybrid_ugc"),
        ("ads", "hybrid_ads"),
        ("presentation", "dubbing"),
        ("realestate", "selectable"),
        ("foodie", "lipsync"),
        ("travel", "hybrid_vlog"),
    ],
)
def test_style_audio_strategies(catalog, style_id, strategy):
    assert catalog.get(style_id).audio_strategy == strategy


def test_unknown_style_raises(catalog):
    with pytest.raises(styles.StyleConfigError):
        catalog.get("nope")


def test_default_audio_type(catalog):
    assert styles.default_audio_type(catalog.get("foodie")) == "lipsync"
    assert styles.default_audio_type(catalog.get("realestate")) == "dubbing"
    assert styles.default_audio_type(catalog.get("ugc")) == "none"
    assert styles.default_audio_type(catalog.get("travel")) == "none"


def test_explicit_audio_type_wins_over_style_default(catalog):
    foodie = catalog.get("foodie")
    assert styles.resolve_audio_type(CampaignBrief(style_id="foodie"), foodie) == "lipsync"
    assert styles.resolve_audio_type(CampaignBrief(style_id="foodie", audio_type="dubbing"), foodie) == "dubbing"


def test_shot_count_hint_uses_location_images(catalog):
    image = FileData(data="aGk=")
    brief = CampaignBrief(style_id="realestate", location_images=[image, None, image])
    assert styles.shot_count_hint(brief, catalog.get("realestate")) == 2
    assert styles.shot_count_hint(CampaignBrief(style_id="realestate"), catalog.get("realestate")) == 5


def test_validate_brief_requires_product_image(catalog):
    with pytest.raises(BriefValidationError, match="product image"):
        styles.validate_brief(CampaignBrief(style_id="ads"), catalog.get("ads"))
    styles.validate_brief(CampaignBrief(style_id="travel"), catalog.get("travel"))


def test_catalog_cache_reloads_on_change(tmp_path):
    path = tmp_path / "styles.yaml"
    path.write_text(
        "styles:\n  solo:\n    name: Solo\n    inputs: []\n    audio_strategy: none\n",
        encoding="utf-8",
    )
    first = styles.load_catalog(path)
    assert styles.load_catalog(path) is first
    path.write_text(
        "styles:\n  duo:\n    name: Duo\n    inputs: []\n    audio_strategy: dubbing\n",
        encoding="utf-8",
    )
    stamp = path.stat().st_mtime + 5
    os.utime(path, (stamp, stamp))
    assert set(styles.load_catalog(path).styles) == {"duo"}


def test_catalog_rejects_unknown_strategy(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("styles:\n  x:\n    audio_strategy: shouting\n", encoding="utf-8")
    with pytest.raises(styles.StyleConfigError):
        styles.load_catalog(path)
