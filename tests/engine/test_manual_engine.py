# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio

import pytest

from framesmith.backends import MockCollaborator
from framesmith.catalog import ModelType
from framesmith.engine.core import ManualEngine
from framesmith.engine.models import ManualPipeline, StepStatus
from framesmith.errors import (
    CatalogError,
    DependencyError,
    InvalidTransitionError,
    ParameterError,
)


def _engine(**kwargs) -> ManualEngine:
    return ManualEngine(ManualPipeline(), MockCollaborator(latency_scale=0), **kwargs)


def test_add_manual_step_uses_catalog_defaults() -> None:
    engine = _engine()
    step = engine.add_manual_step("object_removal", {"feather": 0.5})
    assert step.model_type is ModelType.OBJECT_REMOVAL
    assert step.model_name == "Object Removal"
    assert step.explanation == "Apply Object Removal to the video"
    assert step.is_recommended is False
    assert step.parameters.to_dict() == {"auto_detect": True, "feather": 0.5}
    assert engine.pipeline.total_estimated_time == 30


def test_add_manual_step_validates_input() -> None:
    engine = _engine()
    with pytest.raises(CatalogError):
        engine.add_manual_step("teleportation")
    with pytest.raises(ParameterError):
        engine.add_manual_step(ModelType.COLOR_CORRECTION, {"exposure": 4})
    assert engine.pipeline.steps == []


def test_run_pending_executes_in_dependency_order() -> None:
    engine = _engine()
    seg = engine.add_manual_step(ModelType.SEGMENTATION_SAM3)
    removal = engine.add_manual_step(ModelType.OBJECT_REMOVAL, dependencies=[seg.id])
    with pytest.raises(DependencyError):
        asyncio.run(engine.execute_step(removal.id))
    asyncio.run(engine.run_pending())
    assert [s.status for s in engine.pipeline.steps] == [StepStatus.COMPLETED] * 2
    assert engine.collaborator.calls == [seg.id, removal.id]
    assert removal.result.output_ref.startswith("mock://object_removal/")


def test_remove_and_reorder_are_blocked_while_running() -> None:
    engine = _engine()
    first = engine.add_manual_step(ModelType.COLOR_CORRECTION)
    second = engine.add_manual_step(ModelType.STYLE_TRANSFER)
    first.status = StepStatus.RUNNING
    with pytest.raises(InvalidTransitionError):
        engine.remove_step(second.id)
    with pytest.raises(InvalidTransitionError):
        engine.reorder_steps([second.id, first.id])
    with pytest.raises(InvalidTransitionError):
        engine.clear()
    first.status = StepStatus.PENDING
    engine.reorder_steps([second.id, first.id])
    assert [s.order for s in engine.pipeline.steps] == [0, 1]
    assert engine.pipeline.steps[0] is second


def test_remove_clears_dangling_dependencies() -> None:
    events: list = []
    engine = _engine(event_hook=lambda n, p: events.append((n, p)))
    seg = engine.add_manual_step(ModelType.SEGMENTATION_SAM3)
    bg = engine.add_manual_step(ModelType.BACKGROUND_REMOVAL, dependencies=[seg.id])
    engine.remove_step(seg.id)
    assert bg.dependencies == []
    assert bg.order == 0
    removed = [p for n, p in events if n == "step_removed"]
    assert removed[0]["affected"] == [bg.id]


def test_clear_empties_pipeline() -> None:
    engine = _engine()
    engine.add_manual_step(ModelType.COLOR_CORRECTION)
    engine.clear()
    assert engine.pipeline.steps == []
    assert engine.pipeline.total_estimated_time == 0
