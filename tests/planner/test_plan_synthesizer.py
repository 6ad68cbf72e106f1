# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio

import pytest

from framesmith.catalog import MODEL_CATALOG, ModelType
from framesmith.engine.models import PlanStatus, StepStatus
from framesmith.errors import CatalogError
from framesmith.planner.classifier import PlannerAnalysis, PlannerIntent, classify
from framesmith.planner.synthesizer import (
    PlanSynthesizer,
    format_estimated_time,
    generate_plan_from_prompt,
    synthesize,
)


def _analysis(action: str, target: str | None = None, replacement: str | None = None):
    return PlannerAnalysis(
        intent=PlannerIntent(action, 0.9, target, replacement),  # type: ignore[arg-type]
        complexity="low",
        reasoning="",
    )


def test_remove_plan_segments_then_removes() -> None:
    prompt = "Remove the person walking in the background"
    plan = synthesize(prompt, classify(prompt))
    assert plan.status is PlanStatus.PENDING_APPROVAL
    assert plan.prompt == prompt
    assert plan.current_step_index == 0
    assert [s.model_type for s in plan.steps] == [
        ModelType.SEGMENTATION_SAM3,
        ModelType.OBJECT_REMOVAL,
    ]
    seg, removal = plan.steps
    assert removal.dependencies == [seg.id]
    assert seg.parameters["mode"] == "auto"
    assert seg.parameters["refine_edges"] is True
    assert removal.parameters["auto_detect"] is False
    assert removal.parameters["feather"] == 0.3
    assert "person walking in the background" in seg.explanation
    assert plan.total_estimated_time == 15 + 30


def test_replace_plan_carries_replacement_prompt() -> None:
    prompt = "Replace the car with a red sports car"
    plan = synthesize(prompt, classify(prompt))
    assert len(plan.steps) == 2
    seg, replace = plan.steps
    assert replace.model_type is ModelType.OBJECT_REPLACEMENT
    assert replace.parameters["prompt"] == "red sports car"
    assert replace.parameters["preserve_lighting"] is True
    assert replace.dependencies == [seg.id]
    assert "red sports car" in replace.explanation


def test_replace_without_replacement_uses_placeholder() -> None:
    plan = synthesize("x", _analysis("replace", "car"))
    assert plan.steps[1].parameters["prompt"] == "new object"


def test_insert_plan_marks_placement_optional() -> None:
    plan = synthesize("add a lamp", classify("add a lamp"))
    placement, insert = plan.steps
    assert placement.is_optional is True
    assert insert.is_optional is False
    assert insert.parameters["prompt"] == "lamp"
    assert insert.parameters["position"] == "center"
    assert insert.dependencies == [placement.id]
    assert all(s.is_recommended for s in plan.steps)


@pytest.mark.parametrize(
    "target,mode", [("the dancer", "text"), (None, "auto")]
)
def test_segment_mode_depends_on_target(target, mode) -> None:
    plan = synthesize("x", _analysis("segment", target))
    assert len(plan.steps) == 1
    assert plan.steps[0].parameters["mode"] == mode


def test_single_step_strategies() -> None:
    inpaint = synthesize("x", _analysis("inpaint", "scratch")).steps
    assert [s.model_type for s in inpaint] == [ModelType.VIDEO_INPAINTING]
    assert inpaint[0].parameters["quality"] == "standard"
    assert inpaint[0].parameters["temporal_consistency"] == 0.8

    correct = synthesize("x", _analysis("correct")).steps
    assert [s.model_type for s in correct] == [ModelType.COLOR_CORRECTION]
    assert correct[0].parameters.to_dict() == {
        "exposure": 0,
        "contrast": 0.1,
        "saturation": 0,
    }


def test_composite_plan_blends_after_segmentation() -> None:
    plan = synthesize("x", _analysis("composite", "layers"))
    seg, blend = plan.steps
    assert blend.model_type is ModelType.VIDEO_INPAINTING
    assert blend.parameters["quality"] == "high"
    assert blend.parameters["temporal_consistency"] == 0.9
    assert blend.dependencies == [seg.id]


def test_unknown_action_uses_default_strategy() -> None:
    plan = synthesize("x", _analysis("teleport"))
    assert len(plan.steps) == 1
    assert plan.steps[0].parameters["temporal_consistency"] == 0.7


def test_steps_are_fresh_pending_and_ordered() -> None:
    plan = synthesize("x", _analysis("remove", "sign"))
    ids = [s.id for s in plan.steps]
    assert len(set(ids)) == len(ids)
    assert [s.order for s in plan.steps] == [0, 1]
    assert all(s.status is StepStatus.PENDING for s in plan.steps)
    assert all(s.result is None for s in plan.steps)
    for step in plan.steps:
        descriptor = MODEL_CATALOG[step.model_type]
        assert step.estimated_time == descriptor.estimated_time
        assert step.model_name == descriptor.name


def test_total_estimate_matches_steps_for_every_action() -> None:
    for action in ("remove", "replace", "insert", "inpaint", "segment", "correct", "composite"):
        plan = synthesize("x", _analysis(action, "thing"))
        assert plan.total_estimated_time == sum(s.estimated_time for s in plan.steps)


def test_missing_descriptor_is_fatal() -> None:
    catalog = {
        k: v for k, v in MODEL_CATALOG.items() if k is not ModelType.OBJECT_REMOVAL
    }
    with pytest.raises(CatalogError):
        synthesize("x", _analysis("remove", "sign"), catalog)


def test_custom_synthesizer_registers_strategies() -> None:
    synth = PlanSynthesizer()

    @synth.register_strategy("segment")
    def _only(intent, step):
        return [step(ModelType.SEGMENTATION_SAM3, "custom", {"mode": "box"})]

    assert synth.actions == ["segment"]
    plan = synth.synthesize("x", _analysis("segment"))
    assert plan.steps[0].parameters["mode"] == "box"
    with pytest.raises(LookupError):
        synth.synthesize("x", _analysis("remove"))


def test_generate_plan_from_prompt_runs_classify_and_synthesize() -> None:
    plan = asyncio.run(generate_plan_from_prompt("erase the glare", delay=0))
    assert [s.model_type for s in plan.steps] == [
        ModelType.SEGMENTATION_SAM3,
        ModelType.OBJECT_REMOVAL,
    ]


@pytest.mark.parametrize(
    "seconds,expected", [(45, "45s"), (120, "2m"), (90, "1m 30s"), (0, "0s")]
)
def test_format_estimated_time(seconds, expected) -> None:
    assert format_estimated_time(seconds) == expected
