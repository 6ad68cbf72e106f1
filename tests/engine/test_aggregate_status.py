# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from framesmith.catalog import ModelType
from framesmith.engine.models import ExecutionStep, PlanStatus, StepStatus
from framesmith.engine.status import (
    aggregate_plan_status,
    blocking_dependencies,
    progress_percent,
    ready_steps,
    runnable_steps,
    status_index,
)


def _chain(*statuses: StepStatus) -> list[ExecutionStep]:
    steps: list[ExecutionStep] = []
    for status in statuses:
        deps = [steps[-1].id] if steps else []
        step = ExecutionStep.for_model(
            ModelType.COLOR_CORRECTION, explanation="", dependencies=deps
        )
        step.status = status
        steps.append(step)
    return steps


def test_pre_approval_status_untouched() -> None:
    steps = _chain(StepStatus.COMPLETED)
    assert (
        aggregate_plan_status(steps, PlanStatus.PENDING_APPROVAL)
        is PlanStatus.PENDING_APPROVAL
    )


def test_all_completed_or_skipped_is_completed() -> None:
    steps = _chain(StepStatus.COMPLETED, StepStatus.SKIPPED)
    assert aggregate_plan_status(steps, PlanStatus.EXECUTING) is PlanStatus.COMPLETED


def test_running_or_rollback_keeps_executing() -> None:
    steps = _chain(StepStatus.FAILED, StepStatus.PENDING)
    steps.append(_chain(StepStatus.ROLLBACK)[0])
    assert aggregate_plan_status(steps, PlanStatus.EXECUTING) is PlanStatus.EXECUTING


def test_failure_with_blocked_dependents_is_failed() -> None:
    steps = _chain(StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.PENDING)
    assert runnable_steps(steps) == []
    assert aggregate_plan_status(steps, PlanStatus.EXECUTING) is PlanStatus.FAILED


def test_failure_with_independent_pending_step_keeps_executing() -> None:
    steps = _chain(StepStatus.FAILED) + _chain(StepStatus.PENDING)
    assert aggregate_plan_status(steps, PlanStatus.EXECUTING) is PlanStatus.EXECUTING


def test_readiness_requires_satisfied_dependencies() -> None:
    steps = _chain(StepStatus.SKIPPED, StepStatus.PENDING, StepStatus.PENDING)
    assert ready_steps(steps) == [steps[1]]
    assert blocking_dependencies(steps[2], status_index(steps)) == [steps[1].id]


def test_progress_percent() -> None:
    assert progress_percent([]) == 0
    steps = _chain(StepStatus.COMPLETED, StepStatus.SKIPPED, StepStatus.PENDING, StepStatus.FAILED)
    assert progress_percent(steps) == 50


def test_diamond_graph_is_fully_runnable() -> None:
    root = ExecutionStep.for_model(ModelType.SEGMENTATION_SAM3, explanation="")
    left = ExecutionStep.for_model(
        ModelType.OBJECT_REMOVAL, explanation="", dependencies=[root.id]
    )
    right = ExecutionStep.for_model(
        ModelType.BACKGROUND_REMOVAL, explanation="", dependencies=[root.id]
    )
    join = ExecutionStep.for_model(
        ModelType.COLOR_CORRECTION, explanation="", dependencies=[left.id, right.id]
    )
    steps = [root, left, right, join]
    assert runnable_steps(steps) == steps
    root.status = StepStatus.FAILED
    assert runnable_steps(steps) == []


def test_finished_driver_settles_unfinished_plan() -> None:
    steps = _chain(StepStatus.FAILED) + _chain(StepStatus.PENDING)
    assert (
        aggregate_plan_status(steps, PlanStatus.EXECUTING, driver_finished=True)
        is PlanStatus.FAILED
    )
    running = _chain(StepStatus.FAILED) + _chain(StepStatus.RUNNING)
    assert (
        aggregate_plan_status(running, PlanStatus.EXECUTING, driver_finished=True)
        is PlanStatus.EXECUTING
    )
    done = _chain(StepStatus.COMPLETED, StepStatus.SKIPPED)
    assert (
        aggregate_plan_status(done, PlanStatus.EXECUTING, driver_finished=True)
        is PlanStatus.COMPLETED
    )
