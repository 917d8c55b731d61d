from __future__ import annotations

import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from campaign_studio.app import create_app
from campaign_studio.providers.fixture import ONE_PIXEL_PNG_B64


@pytest.fixture
def client(settings, store, providers, catalog) -> TestClient:
    app = create_app(settings, store=store, providers=providers, catalog=catalog)
    return TestClient(app)


def _brief(**overrides):
    payload = {
        "topic": "Glow serum",
        "style_id": "ugc",
        "product_image": {"data": ONE_PIXEL_PNG_B64, "mimeType": "image/png"},
    }
    payload.update(overrides)
    return payload


def _start(client: TestClient) -> dict:
    resp = client.post("/campaigns", json=_brief())
    assert resp.status_code == 202
    return client.get("/campaign").json()


def test_healthcheck(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_styles_listing(client):
    body = client.get("/styles").json()
    ids = [style["id"] for style in body["styles"]]
    assert "ugc" in ids and "travel" in ids
    assert body["voices"][0] == {"id": "Puck", "name": "Male - Friendly"}


def test_campaign_run_via_background_task(client):
    campaign = _start(client)
    assert campaign["state"] == "done"
    assert len(campaign["shots"]) == 5
    assert {shot["render"]["status"] for shot in campaign["shots"]} == {"success"}
    assert campaign["metadata"]["title"] == "Glow serum campaign"


def test_invalid_brief_is_rejected_before_running(client, providers):
    resp = client.post("/campaigns", json=_brief(product_image=None))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_brief"
    assert providers.planning.calls == []


def test_unknown_style_is_rejected(client):
    resp = client.post("/campaigns", json=_brief(style_id="nope"))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_brief"


def test_discard_clears_campaign(client):
    _start(client)
    assert client.delete("/campaign").status_code == 200
    campaign = client.get("/campaign").json()
    assert campaign["shots"] == []
    assert campaign["state"] == "idle"


def test_script_edit_and_export(client):
    _start(client)
    resp = client.put("/campaign/script", json={"script": "My own words"})
    assert resp.json() == {"script": "My own words"}
    download = client.get("/campaign/export/script")
    assert download.text == "My own words"
    assert 'filename="Glow serum campaign_script.txt"' in download.headers["content-disposition"]


def test_image_export_zip(client):
    _start(client)
    resp = client.get("/campaign/export/images")
    assert resp.headers["content-type"] == "application/zip"
    names = zipfile.ZipFile(io.BytesIO(resp.content)).namelist()
    assert sorted(names) == [f"shot_{n}.png" for n in range(1, 6)]


def test_narration_requires_script(client):
    resp = client.post("/campaign/narration", json={})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "empty_script"
    assert client.get("/campaign/error").json()["error"] == "Script is empty."


def test_narration_roundtrip(client):
    _start(client)
    resp = client.post("/campaign/narration", json={"voice": "Kore"})
    assert resp.status_code == 200
    assert resp.json()["voice"] == "Kore"
    wav = client.get("/campaign/narration.wav")
    assert wav.headers["content-type"] == "audio/wav"
    assert wav.content[:4] == b"RIFF"


def test_narration_download_missing(client):
    resp = client.get("/campaign/narration.wav")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "narration_missing"


def test_video_attaches_url(client):
    _start(client)
    resp = client.post("/campaign/shots/1/video")
    assert resp.status_code == 202
    campaign = client.get("/campaign").json()
    assert campaign["shots"][1]["render"]["video_url"].endswith("&key=fixture-key")
    assert campaign["video_index"] is None


def test_video_rejects_busy_studio(client, store):
    _start(client)
    store.begin_video(0)
    resp = client.post("/campaign/shots/2/video")
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "video_busy"
    assert resp.json()["error"]["details"] == {"video_index": 0}


def test_unknown_shot_is_404(client):
    resp = client.post("/campaign/shots/3/video")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "shot_missing"


def test_regenerate_shot(client):
    _start(client)
    resp = client.post("/campaign/shots/0/regenerate")
    assert resp.status_code == 200
    assert resp.json()["render"]["status"] == "success"


def test_shot_prompts_bundle(client):
    _start(client)
    bundle = client.get("/campaign/shots/0/prompts").json()
    assert set(bundle) == {"grok", "meta", "dreamina"}
    assert bundle["grok"]


def test_error_banner_dismissal(client, store):
    store.set_error("Something broke")
    assert client.get("/campaign/error").json() == {"error": "Something broke", "reauth_required": False}
    client.delete("/campaign/error")
    assert client.get("/campaign/error").json()["error"] is None
