from __future__ import annotations

import json

import pytest

from campaign_studio import planning, telemetry
from campaign_studio.prompt_templates import build_plan_request
from campaign_studio.providers.common import CredentialInvalidError
from campaign_studio.providers.fixture import FixturePlanningProvider
from campaign_studio.schemas import CampaignBrief, FileData


_PLAN = {
    "tiktokScript": "Overall narration.",
    "shotPrompts": ["Prompt A", "Prompt B"],
    "shotScripts": ["Line A"],
    "consistency_profile": "Same model",
    "tiktokMetadata": {"description": "Serum launch", "keywords": ["glow", "skincare"]},
}


def test_parse_plain_json():
    payload = planning.parse_plan_text(json.dumps(_PLAN))
    assert payload["shotPrompts"] == ["Prompt A", "Prompt B"]


def test_parse_strips_markdown_fences():
    fenced = "```json\n" + json.dumps(_PLAN) + "\n```"
    assert planning.parse_plan_text(fenced)["consistency_profile"] == "Same model"


def test_parse_rejects_garbage():
    with pytest.raises(planning.PlanParseError):
        planning.parse_plan_text("```json\nnot json at all\n```")


def test_parse_rejects_empty_response():
    with pytest.raises(planning.PlanParseError):
        planning.parse_plan_text("   ")


def test_parse_rejects_non_object():
    with pytest.raises(planning.PlanParseError):
        planning.parse_plan_text("[1, 2, 3]")


def test_coerce_plan_tolerates_misaligned_lists():
    plan = planning.coerce_plan(_PLAN)
    assert plan.shot_count == 2
    assert plan.script_at(1) == ""
    assert plan.platform_prompts_at(0) == {}


def test_coerce_plan_coerces_unexpected_types():
    plan = planning.coerce_plan({"shotPrompts": [["a", "b"], {"k": "v"}, True], "tiktokScript": None})
    assert plan.shot_prompts == ["a, b", "v", "Yes"]
    assert plan.tiktok_script == ""


def test_generate_plan_uses_default_shot_count(catalog, brief):
    provider = FixturePlanningProvider(fenced=True)
    plan, request = planning.generate_plan(brief, catalog.get("ugc"), provider, catalog=catalog)
    assert request.shot_count == 5
    assert plan.shot_count == 5
    assert [e["name"] for e in telemetry.get_events()] == ["campaign.plan.completed"]


def test_generate_plan_batch_style_counts_images(catalog):
    image = FileData(data="aGVsbG8=")
    brief = CampaignBrief(topic="Runway", style_id="treadmill", outfit_images=[image, image, image])
    provider = FixturePlanningProvider()
    plan, request = planning.generate_plan(brief, catalog.get("treadmill"), provider, catalog=catalog)
    assert request.shot_count == 3
    assert plan.shot_count == 3


def test_generate_plan_wraps_provider_failures(catalog, brief):
    provider = FixturePlanningProvider(fail_with="quota exhausted")
    with pytest.raises(planning.PlanningError, match="quota exhausted"):
        planning.generate_plan(brief, catalog.get("ugc"), provider, catalog=catalog)


def test_generate_plan_propagates_credential_errors(catalog, brief):
    class _Rejecting:
        def request_plan(self, request):
            raise CredentialInvalidError("Requested entity was not found.")

    with pytest.raises(CredentialInvalidError):
        planning.generate_plan(brief, catalog.get("ugc"), _Rejecting(), catalog=catalog)


def test_generate_plan_rejects_empty_plan(catalog, brief):
    class _Empty:
        def request_plan(self, request):
            return {"shotPrompts": []}

    with pytest.raises(planning.PlanningError):
        planning.generate_plan(brief, catalog.get("ugc"), _Empty(), catalog=catalog)


@pytest.mark.parametrize(
    "style_id,mode",
    [("foodie", "LIP SYNC MODE"), ("presentation", "DUBBING/VOICEOVER MODE"), ("ugc", "NO AUDIO MODE")],
)
def test_plan_request_takes_audio_mode_from_style(catalog, style_id, mode):
    request = build_plan_request(CampaignBrief(topic="Ramen", style_id=style_id), catalog.get(style_id), 5)
    assert mode in request.system_instruction


def test_plan_request_honours_explicit_audio_type(catalog):
    brief = CampaignBrief(topic="Ramen", style_id="foodie", audio_type="dubbing")
    request = build_plan_request(brief, catalog.get("foodie"), 5)
    assert "DUBBING/VOICEOVER MODE" in request.system_instruction
    assert "LIP SYNC MODE" not in request.system_instruction
