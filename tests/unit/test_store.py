from __future__ import annotations

from campaign_studio.schemas import CampaignBrief, CreativePlan, RenderFailed, RenderSuccess
from campaign_studio.store import CampaignStore, RunState, build_metadata, seed_script


def _plan(**overrides) -> CreativePlan:
    payload = {
        "tiktokScript": "Fallback narration",
        "shotPrompts": ["p1", "p2", "p3"],
        "shotScripts": ["one", "", "three"],
        "tiktokMetadata": {"description": "Launch", "keywords": ["new", "drop"]},
    }
    payload.update(overrides)
    return CreativePlan.model_validate(payload)


def test_seed_script_joins_non_empty_lines():
    assert seed_script(_plan()) == "one\n\nthree"


def test_seed_script_falls_back_to_overall_script():
    assert seed_script(_plan(shotScripts=["", "  "])) == "Fallback narration"


def test_metadata_defaults():
    meta = build_metadata(_plan(tiktokMetadata=None))
    assert meta.title == "Campaign"
    assert meta.hashtags == ""
    assert build_metadata(_plan()).hashtags == "#new #drop"


def test_apply_plan_installs_loading_shots():
    store = CampaignStore()
    generation = store.begin_run(CampaignBrief(topic="t"))
    assert store.apply_plan(generation, _plan())
    shots = store.shots
    assert [shot.shot_number for shot in shots] == [1, 2, 3]
    assert all(shot.is_loading for shot in shots)
    assert shots[1].voiceover_script == ""
    assert store.state is RunState.PLANNING


def test_stale_generation_is_ignored():
    store = CampaignStore()
    old = store.begin_run(CampaignBrief(topic="t"))
    store.apply_plan(old, _plan())
    new = store.begin_run(CampaignBrief(topic="t2"))
    assert new == old + 1
    assert not store.set_shot_render(old, 0, RenderFailed(message="late"))
    assert not store.apply_plan(old, _plan())
    assert store.shots == []


def test_script_edit_survives_until_next_plan():
    store = CampaignStore()
    generation = store.begin_run(CampaignBrief(topic="t"))
    store.apply_plan(generation, _plan())
    store.edit_script("mine")
    assert store.script == "mine"
    generation = store.begin_run(CampaignBrief(topic="t"))
    assert store.script == "mine"
    store.apply_plan(generation, _plan())
    assert store.script == "one\n\nthree"


def test_discard_clears_everything():
    store = CampaignStore()
    generation = store.begin_run(CampaignBrief(topic="t"))
    store.apply_plan(generation, _plan())
    store.set_error("oops")
    store.discard()
    snapshot = store.snapshot()
    assert snapshot.shots == []
    assert snapshot.script == ""
    assert snapshot.error is None
    assert snapshot.state is RunState.IDLE


def test_attach_video_requires_success():
    store = CampaignStore()
    generation = store.begin_run(CampaignBrief(topic="t"))
    store.apply_plan(generation, _plan())
    assert not store.attach_video(generation, 0, "https://v")
    store.set_shot_render(generation, 0, RenderSuccess(image_url="data:image/png;base64,AA"))
    assert store.attach_video(generation, 0, "https://v")
    assert store.shot(0).video_url == "https://v"
    assert store.shot(0).image_url == "data:image/png;base64,AA"


def test_snapshot_serializes_tagged_render():
    store = CampaignStore()
    generation = store.begin_run(CampaignBrief(topic="t"))
    store.apply_plan(generation, _plan())
    store.set_shot_render(generation, 1, RenderFailed(message="nope"))
    dumped = store.snapshot().model_dump(mode="json")
    assert dumped["shots"][0]["render"] == {"status": "loading"}
    assert dumped["shots"][1]["render"] == {"status": "failed", "message": "nope"}
    assert dumped["state"] == "planning"


def test_dismiss_error_clears_reauth_flag():
    store = CampaignStore()
    generation = store.begin_run(CampaignBrief(topic="t"))
    store.require_reauth(generation, "reauth")
    assert store.reauth_required and store.state is RunState.ERROR
    store.dismiss_error()
    assert store.error is None and not store.reauth_required


def test_begin_run_clears_video_slot():
    store = CampaignStore()
    generation = store.begin_run(CampaignBrief(topic="t"))
    store.apply_plan(generation, _plan())
    store.set_shot_render(generation, 0, RenderSuccess(image_url="data:image/png;base64,AA"))
    old = store.begin_video(0)
    store.set_video_status(old, "Setting up cinematic lighting...")

    store.begin_run(CampaignBrief(topic="t"))
    store.finish_video(old)

    snapshot = store.snapshot()
    assert snapshot.video_index is None
    assert snapshot.video_status == ""
