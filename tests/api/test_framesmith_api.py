# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from framesmith.api.server import create_app
from framesmith.backends import MockCollaborator
from framesmith.session import EditorSession


@pytest.fixture
def client(monkeypatch) -> TestClient:
    monkeypatch.setenv("FRAMESMITH_SKIP_DOTENV", "1")
    session = EditorSession(MockCollaborator(latency_scale=0))
    return TestClient(create_app(session))


def test_health_and_catalog(client) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    js = client.get("/v1/models").json()
    assert js["count"] == 8
    seg = client.get("/v1/models", params={"category": "segmentation"}).json()
    assert {m["id"] for m in seg["models"]} == {"segmentation_sam3", "background_removal"}

    r = client.get("/v1/models/style_transfer")
    assert r.status_code == 200
    assert r.json()["estimated_time"] == 120
    assert client.get("/v1/models/teleport").status_code == 404


def test_analyze_and_format_time(client) -> None:
    r = client.post("/v1/planner/analyze", json={"prompt": "Replace the car with a bike"})
    js = r.json()
    assert js["intent"]["action"] == "replace"
    assert js["intent"]["replacement"] == "bike"
    assert js["complexity"] in {"low", "medium", "high"}
    assert client.post("/v1/planner/analyze", json={"prompt": ""}).status_code == 422
    r = client.get("/v1/planner/format-time", params={"seconds": 90})
    assert r.json()["formatted"] == "1m 30s"


def test_plan_lifecycle(client) -> None:
    assert client.get("/v1/plan").status_code == 404

    plan = client.post("/v1/plan", json={"prompt": "Remove the person in the background"}).json()
    assert plan["status"] == "pending_approval"
    assert plan["total_estimated_time"] == 45
    assert plan["progress"] == 0
    seg_id, removal_id = [s["id"] for s in plan["steps"]]

    # execution before approval is an invalid transition
    assert client.post(f"/v1/plan/steps/{seg_id}/execute").status_code == 409
    r = client.post(f"/v1/plan/reorder", json={"step_ids": [seg_id]})
    assert r.status_code == 400

    r = client.patch(f"/v1/plan/steps/{removal_id}", json={"parameters": {"feather": 2}})
    assert r.status_code == 400
    r = client.patch(f"/v1/plan/steps/{removal_id}", json={"parameters": {"feather": 0.5}})
    assert r.json()["parameters"]["feather"] == 0.5

    assert client.post("/v1/plan/approve").json()["status"] == "executing"
    assert client.post("/v1/plan/approve").status_code == 409

    r = client.post(f"/v1/plan/steps/{removal_id}/execute")
    assert r.status_code == 409
    assert "unmet dependencies" in r.json()["detail"]

    done = client.post("/v1/plan/execute", json={"max_workers": 2}).json()
    assert done["status"] == "completed"
    assert done["progress"] == 100
    assert all(s["result"]["success"] for s in done["steps"])

    r = client.post(f"/v1/plan/steps/{removal_id}/rollback")
    assert r.json()["status"] == "pending"
    assert client.get("/v1/plan").json()["status"] == "executing"

    hist = client.get("/v1/history", params={"step_id": removal_id}).json()
    names = [e["event"] for e in hist["events"]]
    assert "step_completed" in names and "step_rolled_back" in names
    assert hist["summary"]["plan_approved"] == 1


def test_plan_step_edits(client) -> None:
    plan = client.post("/v1/plan", json={"prompt": "add a lamp"}).json()
    placement_id = plan["steps"][0]["id"]
    r = client.post(
        "/v1/plan/steps",
        json={"model_type": "color_correction", "dependencies": ["missing"]},
    )
    assert r.status_code == 400
    r = client.post("/v1/plan/steps", json={"model_type": "color_correction"})
    step = r.json()
    assert step["explanation"] == "Apply Color Correction to the video"
    assert client.get("/v1/plan").json()["total_estimated_time"] == 15 + 90 + 10

    r = client.delete(f"/v1/plan/steps/{placement_id}")
    assert r.json()["removed"] == placement_id
    assert r.json()["plan"]["steps"][0]["dependencies"] == []
    assert client.delete("/v1/plan/steps/nope").status_code == 404
    assert client.post("/v1/plan/steps/nope/skip").status_code == 404
    assert client.post(f"/v1/plan/steps/{step['id']}/cancel").status_code == 409


def test_manual_pipeline(client) -> None:
    seg = client.post("/v1/manual/steps", json={"model_type": "segmentation_sam3"}).json()
    bg = client.post(
        "/v1/manual/steps",
        json={"model_type": "background_removal", "dependencies": [seg["id"]]},
    ).json()
    assert bg["is_recommended"] is False
    assert client.post("/v1/manual/steps", json={"model_type": "teleport"}).status_code == 422

    assert client.post(f"/v1/manual/steps/{bg['id']}/execute").status_code == 409
    pipeline = client.post("/v1/manual/run").json()
    assert [s["status"] for s in pipeline["steps"]] == ["completed", "completed"]
    assert pipeline["total_estimated_time"] == 40

    r = client.post(f"/v1/manual/steps/{seg['id']}/skip")
    assert r.status_code == 409
    r = client.post(f"/v1/manual/reorder", json={"step_ids": [bg["id"], seg["id"]]})
    assert r.json()["steps"][0]["id"] == bg["id"]

    assert client.delete("/v1/manual").json()["steps"] == []
