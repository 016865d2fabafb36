import time

import pytest
from fastapi.testclient import TestClient

from conftest import FakeGemini
from planner.main import app
from planner.pipeline import routes
from planner.pipeline.orchestrator import DecorPlanService


@pytest.fixture
def fake():
    return FakeGemini()


@pytest.fixture
def client(monkeypatch, fake):
    monkeypatch.setattr(routes, "_service", DecorPlanService(client=fake))
    with TestClient(app) as c:
        yield c


def wait_for(client, job_id, predicate, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        body = client.get(f"/plans/{job_id}").json()
        if predicate(body):
            return body
        time.sleep(0.01)
    raise AssertionError(f"Job {job_id} never reached expected state: {body}")


def finished(body):
    return body["status"] in ("COMPLETED", "FAILED", "CANCELLED")


def start_plan(client, **payload):
    resp = client.post("/plans", json=payload)
    assert resp.status_code == 202
    return resp.json()["job_id"]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert set(body) == {"status", "gemini_api_key_set"}


def test_plan_lifecycle(client):
    job_id = start_plan(client, form={"occasion": "Baby Shower", "decor_intensity": 4})
    body = wait_for(client, job_id, finished)

    assert body["status"] == "COMPLETED"
    assert body["progress_pct"] == 100
    output = body["output"]
    assert len(output["images"]) == 8
    assert output["tour"] == {"kind": "none"}

    metrics = client.get("/metrics").json()
    assert metrics["counters"]["requests.plan"] == 1


def test_plan_with_source_image_uses_edit(client, fake):
    job_id = start_plan(client, source_image="data:image/jpeg;base64,c291cmNl")
    wait_for(client, job_id, finished)
    assert len(fake.calls["edit_image"]) == 8


def test_invalid_form_is_rejected(client):
    resp = client.post("/plans", json={"form": {"space_type": "Moon Base"}})
    assert resp.status_code == 422


def test_unknown_job_404(client):
    assert client.get("/plans/does-not-exist").status_code == 404
    assert client.post("/plans/does-not-exist/cancel").status_code == 404
    assert client.post("/plans/does-not-exist/tour/video").status_code == 404


def test_failed_plan_has_single_message(monkeypatch):
    monkeypatch.setattr(
        routes, "_service", DecorPlanService(client=FakeGemini(text_error=RuntimeError("503")))
    )
    with TestClient(app) as c:
        job_id = start_plan(c)
        body = wait_for(c, job_id, finished)
    assert body["status"] == "FAILED"
    assert body["error"].startswith("Failed to generate the decor plan.")


def test_documents_download(client):
    job_id = start_plan(client)
    wait_for(client, job_id, finished)

    resp = client.get(f"/plans/{job_id}/documents/planning-guide")
    assert resp.status_code == 200
    assert resp.text.startswith("## Timeline")
    assert 'filename="planning_guide.md"' in resp.headers["content-disposition"]

    resp = client.get(f"/plans/{job_id}/documents/shopping-list")
    assert 'filename="shopping_list.md"' in resp.headers["content-disposition"]

    assert client.get(f"/plans/{job_id}/documents/guest-list").status_code == 404


def test_summaries_are_rendered(client):
    job_id = start_plan(client)
    wait_for(client, job_id, finished)
    body = client.get(f"/plans/{job_id}/summaries").json()
    kinds = [s["kind"] for s in body["planning_summary"]]
    assert kinds == ["text", "image"]
    assert body["planning_summary"][1]["image"]["title"] == "Overall View (Front)"


def test_video_then_slideshow_tours(client):
    job_id = start_plan(client)
    wait_for(client, job_id, finished)

    resp = client.post(f"/plans/{job_id}/tour/video")
    assert resp.status_code == 202
    body = wait_for(client, job_id, lambda b: b["tour_status"] in ("COMPLETED", "FAILED"))
    assert body["tour_status"] == "COMPLETED"
    video_url = body["output"]["tour"]["url"]

    media = client.get(video_url)
    assert media.status_code == 200
    assert media.content == b"fake-mp4-bytes"
    assert media.headers["content-type"] == "video/mp4"

    client.post(f"/plans/{job_id}/tour/slideshow")
    body = wait_for(
        client, job_id,
        lambda b: b["tour_status"] == "COMPLETED" and b["output"]["tour"]["kind"] == "slideshow",
    )
    assert len(body["output"]["tour"]["frames"]) == 8
    assert "url" not in body["output"]["tour"]


def test_tour_before_plan_completes_is_conflict(monkeypatch):
    service = DecorPlanService(client=FakeGemini(text_error=RuntimeError("down")))
    monkeypatch.setattr(routes, "_service", service)
    with TestClient(app) as c:
        job_id = start_plan(c)
        wait_for(c, job_id, finished)
        resp = c.post(f"/plans/{job_id}/tour/slideshow")
    assert resp.status_code == 409


def test_missing_media_404(client):
    assert client.get("/media/unknown").status_code == 404


def test_suggestions(client, fake):
    fake.suggestions = {"themes": ["Disco Night", "Garden Tea Party"]}
    assert client.get("/suggestions/themes", params={"occasion": "Birthday"}).json() == {
        "themes": ["Disco Night", "Garden Tea Party"]
    }

    fake.suggestion_error = RuntimeError("offline")
    schemes = client.get("/suggestions/color-schemes", params={"theme": "Disco"}).json()
    assert schemes["color_schemes"][0] == "Pastel Pinks, Golds, and Cream"

    occasions = client.get("/suggestions/occasions").json()["occasions"]
    assert "Baby Shower" in occasions
