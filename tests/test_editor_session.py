# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio

import pytest

from framesmith.backends import HttpCollaborator, MockCollaborator
from framesmith.catalog import ModelType
from framesmith.engine.models import PlanStatus
from framesmith.errors import NoActivePlanError
from framesmith.session import EditorSession


def _session(**kwargs) -> EditorSession:
    return EditorSession(MockCollaborator(latency_scale=0), **kwargs)


def test_generate_plan_attaches_engine_and_history() -> None:
    session = _session(mode="ai")
    plan = session.generate_plan("Replace the car with a red sports car")
    assert session.plan is plan
    engine = session.require_plan_engine()
    engine.approve_plan()
    asyncio.run(engine.execute_plan())
    assert plan.status is PlanStatus.COMPLETED
    assert session.plan_progress() == 100
    assert session.history.summary()["step_completed"] == 2


def test_set_mode_discards_plan() -> None:
    session = _session()
    session.generate_plan("remove the logo")
    session.set_mode("ai")
    assert session.mode == "ai"
    assert session.plan is None
    with pytest.raises(NoActivePlanError):
        session.require_plan_engine()
    with pytest.raises(ValueError):
        session.set_mode("auto")  # type: ignore[arg-type]


def test_snapshot_and_reset() -> None:
    session = _session()
    session.manual_engine.add_manual_step(ModelType.COLOR_CORRECTION)
    session.generate_plan("color correct the clip")
    snap = session.snapshot()
    assert snap["mode"] == "manual"
    assert snap["plan"]["status"] == "pending_approval"
    assert snap["plan_progress"] == 0
    assert len(snap["manual"]["steps"]) == 1
    session.reset()
    assert session.plan is None
    assert session.manual.steps == []
    assert len(session.history) == 0


def test_default_collaborator_comes_from_env(monkeypatch) -> None:
    monkeypatch.setenv("FRAMESMITH_BACKEND", "http")
    monkeypatch.setenv("FRAMESMITH_BACKEND_URL", "http://models.local:9000")
    session = EditorSession()
    assert isinstance(session.collaborator, HttpCollaborator)
    assert session.collaborator.base_url == "http://models.local:9000/"
