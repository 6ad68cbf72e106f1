# SPDX-License-Identifier: Apache-2.0
"""Pure helpers deriving readiness and aggregate plan status from step states."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from framesmith.engine.models import ExecutionStep, PlanStatus, StepStatus

SATISFYING = frozenset({StepStatus.COMPLETED, StepStatus.SKIPPED})
ACTIVE = frozenset({StepStatus.RUNNING, StepStatus.ROLLBACK})
_PRE_EXECUTION = frozenset(
    {PlanStatus.IDLE, PlanStatus.PLANNING, PlanStatus.PENDING_APPROVAL}
)


def status_index(steps: Iterable[ExecutionStep]) -> dict[str, StepStatus]:
    return {s.id: s.status for s in steps}


def blocking_dependencies(
    step: ExecutionStep, statuses: Mapping[str, StepStatus]
) -> list[str]:
    """Dependency ids of ``step`` that are not completed or skipped."""
    return [d for d in step.dependencies if statuses.get(d) not in SATISFYING]


def is_ready(step: ExecutionStep, statuses: Mapping[str, StepStatus]) -> bool:
    return step.status is StepStatus.PENDING and not blocking_dependencies(
        step, statuses
    )


def ready_steps(steps: Sequence[ExecutionStep]) -> list[ExecutionStep]:
    statuses = status_index(steps)
    return [s for s in steps if is_ready(s, statuses)]


def _can_become_ready(
    step: ExecutionStep, by_id: Mapping[str, ExecutionStep], memo: dict[str, bool]
) -> bool:
    # a pending step is runnable eventually unless some ancestor failed
    cached = memo.get(step.id)
    if cached is not None:
        return cached
    memo[step.id] = False
    result = True
    for dep_id in step.dependencies:
        dep = by_id.get(dep_id)
        if dep is None or dep.status is StepStatus.FAILED:
            result = False
            break
        if dep.status is StepStatus.PENDING and not _can_become_ready(dep, by_id, memo):
            result = False
            break
    memo[step.id] = result
    return result


def runnable_steps(steps: Sequence[ExecutionStep]) -> list[ExecutionStep]:
    """Pending steps that are ready now or could become ready later."""
    by_id = {s.id: s for s in steps}
    memo: dict[str, bool] = {}
    return [
        s
        for s in steps
        if s.status is StepStatus.PENDING and _can_become_ready(s, by_id, memo)
    ]


def aggregate_plan_status(
    steps: Sequence[ExecutionStep],
    current: PlanStatus,
    *,
    driver_finished: bool = False,
) -> PlanStatus:
    """Derive the plan status from its steps once execution has begun.

    Pre-approval statuses are returned unchanged. With ``driver_finished``
    no further steps will be started, so a plan that is not fully
    completed or skipped and has nothing in flight is ``failed``.
    """
    if current in _PRE_EXECUTION:
        return current
    statuses = [s.status for s in steps]
    if all(st in SATISFYING for st in statuses):
        return PlanStatus.COMPLETED
    if any(st in ACTIVE for st in statuses):
        return PlanStatus.EXECUTING
    if driver_finished:
        return PlanStatus.FAILED
    if any(st is StepStatus.FAILED for st in statuses) and not runnable_steps(steps):
        return PlanStatus.FAILED
    return PlanStatus.EXECUTING


def progress_percent(steps: Sequence[ExecutionStep]) -> int:
    if not steps:
        return 0
    done = sum(1 for s in steps if s.status in SATISFYING)
    return round(done / len(steps) * 100)


__all__ = [
    "SATISFYING",
    "ACTIVE",
    "status_index",
    "blocking_dependencies",
    "is_ready",
    "ready_steps",
    "runnable_steps",
    "aggregate_plan_status",
    "progress_percent",
]
