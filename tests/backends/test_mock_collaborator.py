# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio

import pytest

from framesmith.backends import ExecutionCollaborator, MockCollaborator, collaborator_from_env
from framesmith.catalog import ModelType
from framesmith.engine.models import ExecutionStep


def _step(model_type=ModelType.OBJECT_REMOVAL) -> ExecutionStep:
    return ExecutionStep.for_model(model_type, explanation="")


def test_sleeps_in_proportion_to_estimate() -> None:
    delays: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        delays.append(seconds)

    collab = MockCollaborator(latency_scale=0.5, sleep=fake_sleep)
    step = _step()
    result = asyncio.run(collab.run(step))
    assert delays == [15.0]
    assert result.success
    assert result.output_ref == f"mock://object_removal/{step.id}/output.mp4"
    assert result.metadata["parameters"] == {"auto_detect": True, "feather": 0.3}
    assert collab.calls == [step.id]


def test_injected_failures_by_model_or_step() -> None:
    collab = MockCollaborator(latency_scale=0, failures={"style_transfer": "no style"})
    assert asyncio.run(collab.run(_step(ModelType.STYLE_TRANSFER))).error == "no style"
    step = _step()
    collab.fail(step.id)
    result = asyncio.run(collab.run(step))
    assert result.success is False
    assert result.error == "Model invocation failed."


def test_latency_scale_from_env(monkeypatch) -> None:
    monkeypatch.setenv("FRAMESMITH_MOCK_LATENCY_SCALE", "0.25")
    assert MockCollaborator().latency_scale == 0.25
    monkeypatch.setenv("FRAMESMITH_MOCK_LATENCY_SCALE", "fast")
    assert MockCollaborator().latency_scale == 0.1


def test_collaborator_from_env(monkeypatch) -> None:
    monkeypatch.delenv("FRAMESMITH_BACKEND", raising=False)
    collab = collaborator_from_env()
    assert isinstance(collab, MockCollaborator)
    assert isinstance(collab, ExecutionCollaborator)
    with pytest.raises(ValueError):
        collaborator_from_env("grpc")
