# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from framesmith.backends.base import (
    CollaboratorResult,
    ExecutionCollaborator,
    StepCancelledError,
)
from framesmith.catalog import ModelDescriptor, ModelType, get_model
from framesmith.engine.models import (
    ExecutionPlan,
    ExecutionStep,
    ManualPipeline,
    PlanStatus,
    StepResult,
    StepStatus,
)
from framesmith.engine.status import (
    ACTIVE,
    aggregate_plan_status,
    blocking_dependencies,
    ready_steps,
    status_index,
)
from framesmith.errors import DependencyError, InvalidTransitionError

LOG = logging.getLogger("framesmith.engine.core")

EventHook = Callable[[str, dict[str, Any]], None]


class StepOwner(Protocol):
    steps: list[ExecutionStep]

    def find_step(self, step_id: str) -> ExecutionStep: ...

    def dependents_of(self, step_id: str) -> list[ExecutionStep]: ...

    def remove_step(self, step_id: str) -> tuple[ExecutionStep, list[str]]: ...

    def reorder(self, step_ids: list[str]) -> None: ...


class StepEngine:
    """Per-step lifecycle state machine over a plan or manual pipeline.

    The engine is the only writer of step ``status``, ``result`` and
    ``actual_time``. Precondition failures raise before any state changes;
    collaborator failures are recorded on the step and never raised.
    """

    def __init__(
        self,
        owner: StepOwner,
        collaborator: ExecutionCollaborator,
        *,
        event_hook: EventHook | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.owner = owner
        self.collaborator = collaborator
        self._event_hook = event_hook
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: dict[str, asyncio.Task[CollaboratorResult]] = {}
        self._cancel_requested: set[str] = set()

    @property
    def steps(self) -> list[ExecutionStep]:
        return self.owner.steps

    def _emit_event(self, name: str, payload: dict[str, Any]) -> None:
        if not self._event_hook:
            return
        try:
            self._event_hook(name, payload)
        except Exception:
            LOG.debug("engine event hook failed for %s", name, exc_info=True)

    def _lock(self, step_id: str) -> asyncio.Lock:
        lock = self._locks.get(step_id)
        if lock is None:
            lock = self._locks[step_id] = asyncio.Lock()
        return lock

    def _after_transition(self, *, driver_finished: bool = False) -> None:
        """Hook run after every step status change."""

    def _step_event(self, step: ExecutionStep, **extra: Any) -> dict[str, Any]:
        payload = {
            "step_id": step.id,
            "model_type": step.model_type.value,
            "status": step.status.value,
        }
        payload.update(extra)
        return payload

    def _set_status(self, step: ExecutionStep, status: StepStatus) -> None:
        step.status = status
        self._after_transition()

    def _require(self, step: ExecutionStep, *allowed: StepStatus, action: str) -> None:
        if step.status not in allowed:
            raise InvalidTransitionError(
                f"cannot {action} step {step.id} while it is {step.status.value}"
            )

    def _check_executable(self, step: ExecutionStep) -> None:
        self._require(step, StepStatus.PENDING, action="execute")
        blocking = blocking_dependencies(step, status_index(self.steps))
        if blocking:
            raise DependencyError(step.id, blocking)

    def _guard_structure(self, action: str) -> None:
        running = [s.id for s in self.steps if s.status in ACTIVE]
        if running:
            raise InvalidTransitionError(
                f"cannot {action} while step(s) {', '.join(running)} are in flight"
            )

    # -- per-step transitions -------------------------------------------------

    async def execute_step(self, step_id: str) -> ExecutionStep:
        step = self.owner.find_step(step_id)
        self._check_executable(step)
        async with self._lock(step.id):
            # state may have moved while waiting for the lock
            self._check_executable(step)
            step.result = None
            step.actual_time = None
            self._set_status(step, StepStatus.RUNNING)
            LOG.info("step %s (%s) started", step.id, step.model_type.value)
            self._emit_event("step_started", self._step_event(step))
            started = self._clock()
            task = asyncio.ensure_future(self.collaborator.run(step))
            self._tasks[step.id] = task
            error: str | None = None
            outcome: CollaboratorResult | None = None
            try:
                outcome = await task
            except asyncio.CancelledError:
                if step.id not in self._cancel_requested:
                    self._record_failure(step, str(StepCancelledError()), started)
                    raise
                error = str(StepCancelledError())
            except Exception as exc:
                error = str(exc) or exc.__class__.__name__
            finally:
                self._tasks.pop(step.id, None)
            cancelled = step.id in self._cancel_requested
            self._cancel_requested.discard(step.id)
            if outcome is not None and outcome.success and not cancelled:
                self._record_success(step, outcome, started)
            else:
                if cancelled:
                    error = str(StepCancelledError())
                elif outcome is not None and error is None:
                    error = outcome.error or "Model invocation failed."
                self._record_failure(
                    step,
                    error or "Model invocation failed.",
                    started,
                    cancelled=cancelled,
                )
        return step

    def _record_success(
        self, step: ExecutionStep, outcome: CollaboratorResult, started: float
    ) -> None:
        elapsed = max(0.0, self._clock() - started)
        processing = (
            outcome.processing_time if outcome.processing_time is not None else elapsed
        )
        step.actual_time = elapsed if elapsed > 0 else processing
        step.result = StepResult(
            success=True,
            output_ref=outcome.output_ref,
            preview_ref=outcome.preview_ref,
            processing_time=processing,
            metadata=dict(outcome.metadata),
        )
        self._set_status(step, StepStatus.COMPLETED)
        LOG.info("step %s completed in %.2fs", step.id, step.actual_time)
        self._emit_event(
            "step_completed", self._step_event(step, actual_time=step.actual_time)
        )

    def _record_failure(
        self,
        step: ExecutionStep,
        error: str,
        started: float,
        *,
        cancelled: bool = False,
    ) -> None:
        elapsed = max(0.0, self._clock() - started)
        step.actual_time = elapsed
        step.result = StepResult(success=False, processing_time=elapsed, error=error)
        self._set_status(step, StepStatus.FAILED)
        if cancelled:
            LOG.warning("step %s cancelled", step.id)
            self._emit_event("step_cancelled", self._step_event(step, error=error))
        else:
            LOG.warning("step %s failed: %s", step.id, error)
            self._emit_event("step_failed", self._step_event(step, error=error))

    async def cancel_step(self, step_id: str) -> ExecutionStep:
        step = self.owner.find_step(step_id)
        self._require(step, StepStatus.RUNNING, action="cancel")
        task = self._tasks.get(step.id)
        self._cancel_requested.add(step.id)
        hook = getattr(self.collaborator, "cancel", None)
        if hook is not None:
            try:
                await hook(step)
            except Exception:
                LOG.debug("collaborator cancel hook failed for %s", step.id, exc_info=True)
        if task is None:
            # running without an in-flight call from this engine
            self._cancel_requested.discard(step.id)
            self._record_failure(step, str(StepCancelledError()), self._clock(), cancelled=True)
            return step
        task.cancel()
        # execute_step holds the lock until the failure is recorded
        async with self._lock(step.id):
            pass
        return step

    def _check_rollback(self, step: ExecutionStep) -> None:
        self._require(step, StepStatus.COMPLETED, action="roll back")
        busy = [s.id for s in self.owner.dependents_of(step.id) if s.status in ACTIVE]
        if busy:
            raise InvalidTransitionError(
                f"cannot roll back step {step.id} while dependent step(s) "
                f"{', '.join(busy)} are in flight"
            )

    async def rollback_step(self, step_id: str) -> ExecutionStep:
        step = self.owner.find_step(step_id)
        self._check_rollback(step)
        async with self._lock(step.id):
            self._check_rollback(step)
            self._set_status(step, StepStatus.ROLLBACK)
            self._emit_event("step_rollback_started", self._step_event(step))
            hook = getattr(self.collaborator, "rollback", None)
            try:
                if hook is not None:
                    await hook(step)
            except Exception as exc:
                error = str(exc) or exc.__class__.__name__
                step.result = StepResult(success=False, error=error)
                self._set_status(step, StepStatus.FAILED)
                LOG.warning("rollback of step %s failed: %s", step.id, error)
                self._emit_event("step_failed", self._step_event(step, error=error))
                return step
            step.result = None
            step.actual_time = None
            self._set_status(step, StepStatus.PENDING)
            LOG.info("step %s rolled back", step.id)
            self._emit_event("step_rolled_back", self._step_event(step))
        return step

    def skip_step(self, step_id: str) -> ExecutionStep:
        step = self.owner.find_step(step_id)
        self._require(step, StepStatus.PENDING, action="skip")
        self._set_status(step, StepStatus.SKIPPED)
        LOG.info("step %s skipped", step.id)
        self._emit_event("step_skipped", self._step_event(step))
        return step

    def update_step(
        self,
        step_id: str,
        *,
        parameters: Mapping[str, Any] | None = None,
        explanation: str | None = None,
    ) -> ExecutionStep:
        """Edit a pending step; all parameters are validated before any is applied."""
        step = self.owner.find_step(step_id)
        self._require(step, StepStatus.PENDING, action="edit")
        if parameters:
            descriptor = step.parameters.descriptor
            coerced = {k: descriptor.parameter(k).coerce(v) for k, v in parameters.items()}
            for key, value in coerced.items():
                step.parameters[key] = value
        if explanation is not None:
            step.explanation = explanation
        self._emit_event(
            "step_updated",
            self._step_event(step, parameters=sorted((parameters or {}).keys())),
        )
        return step

    # -- drivers ---------------------------------------------------------------

    def _on_step_selected(self, step: ExecutionStep) -> None:
        """Hook run before the driver executes ``step``."""

    async def _run_round(
        self, steps: list[ExecutionStep], max_workers: int
    ) -> list[ExecutionStep]:
        sem = asyncio.Semaphore(max(1, max_workers))
        LOG.debug("running %d ready step(s) (pool=%d)", len(steps), max_workers)

        async def run_one(step: ExecutionStep) -> ExecutionStep:
            async with sem:
                self._on_step_selected(step)
                return await self.execute_step(step.id)

        return list(await asyncio.gather(*(run_one(s) for s in steps)))

    async def _drive(self, max_workers: int = 1, halt_on_failure: bool = True) -> None:
        while True:
            ready = ready_steps(self.steps)
            if not ready:
                break
            batch = ready if max_workers > 1 else ready[:1]
            done = await self._run_round(batch, max_workers)
            if halt_on_failure and any(s.status is StepStatus.FAILED for s in done):
                LOG.info("driver halted after failed step")
                break

    async def run_pending(
        self, max_workers: int = 1, halt_on_failure: bool = True
    ) -> list[ExecutionStep]:
        """Execute every ready pending step in order until none remain ready."""
        await self._drive(max_workers, halt_on_failure)
        return self.steps


class PlanEngine(StepEngine):
    """Step engine plus approval gating and aggregate status for a plan."""

    owner: ExecutionPlan

    def __init__(
        self,
        plan: ExecutionPlan,
        collaborator: ExecutionCollaborator,
        *,
        event_hook: EventHook | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        super().__init__(plan, collaborator, event_hook=event_hook, clock=clock)

    @property
    def plan(self) -> ExecutionPlan:
        return self.owner

    def _after_transition(self, *, driver_finished: bool = False) -> None:
        plan = self.plan
        previous = plan.status
        plan.status = aggregate_plan_status(
            plan.steps, previous, driver_finished=driver_finished
        )
        plan.touch()
        if plan.status is not previous:
            LOG.info("plan %s is now %s", plan.id, plan.status.value)
            self._emit_event(
                "plan_status_changed",
                {"plan_id": plan.id, "from": previous.value, "to": plan.status.value},
            )

    def _require_plan(self, *allowed: PlanStatus, action: str) -> None:
        if self.plan.status not in allowed:
            raise InvalidTransitionError(
                f"cannot {action} while the plan is {self.plan.status.value}"
            )

    def _check_executable(self, step: ExecutionStep) -> None:
        self._require_plan(PlanStatus.EXECUTING, action="execute a step")
        super()._check_executable(step)

    def _on_step_selected(self, step: ExecutionStep) -> None:
        self.plan.current_step_index = step.order

    def approve_plan(self) -> ExecutionPlan:
        self._require_plan(PlanStatus.PENDING_APPROVAL, action="approve")
        previous = self.plan.status
        self.plan.status = PlanStatus.EXECUTING
        self.plan.touch()
        LOG.info("plan %s approved (%d steps)", self.plan.id, len(self.plan.steps))
        self._emit_event("plan_approved", {"plan_id": self.plan.id})
        self._emit_event(
            "plan_status_changed",
            {"plan_id": self.plan.id, "from": previous.value, "to": self.plan.status.value},
        )
        # an empty plan has nothing left to do
        self._after_transition()
        return self.plan

    def reorder_steps(self, step_ids: Iterable[str]) -> ExecutionPlan:
        self._require_plan(PlanStatus.PENDING_APPROVAL, action="reorder steps")
        self.plan.reorder(list(step_ids))
        self._emit_event(
            "plan_reordered", {"plan_id": self.plan.id, "order": self.plan.step_ids()}
        )
        return self.plan

    def add_step(self, step: ExecutionStep) -> ExecutionStep:
        self._guard_structure("add a step")
        self.plan.add_step(step)
        self._emit_event("step_added", self._step_event(step, order=step.order))
        self._after_transition()
        return step

    def remove_step(self, step_id: str) -> ExecutionStep:
        self._guard_structure("remove a step")
        step, affected = self.plan.remove_step(step_id)
        if affected:
            LOG.warning(
                "removed step %s was a dependency of %s; reference cleared",
                step_id,
                ", ".join(affected),
            )
        self._locks.pop(step_id, None)
        self._emit_event("step_removed", self._step_event(step, affected=affected))
        self._after_transition()
        return step

    async def execute_plan(
        self, max_workers: int = 1, halt_on_failure: bool = True
    ) -> ExecutionPlan:
        self._require_plan(PlanStatus.EXECUTING, action="execute the plan")
        await self._drive(max_workers, halt_on_failure)
        # nothing else will start these steps; the plan is settled
        self._after_transition(driver_finished=True)
        return self.plan


class ManualEngine(StepEngine):
    """Step engine over a flat manual pipeline; no approval gate."""

    owner: ManualPipeline

    def __init__(
        self,
        pipeline: ManualPipeline,
        collaborator: ExecutionCollaborator,
        *,
        event_hook: EventHook | None = None,
        clock: Callable[[], float] = time.perf_counter,
        catalog: Mapping[ModelType, ModelDescriptor] | None = None,
    ) -> None:
        super().__init__(pipeline, collaborator, event_hook=event_hook, clock=clock)
        self.catalog = catalog

    @property
    def pipeline(self) -> ManualPipeline:
        return self.owner

    def add_manual_step(
        self,
        model_type: ModelType | str,
        parameters: Mapping[str, Any] | None = None,
        *,
        dependencies: Iterable[str] = (),
    ) -> ExecutionStep:
        descriptor = get_model(model_type, self.catalog)
        step = ExecutionStep.for_model(
            descriptor.id,
            explanation=f"Apply {descriptor.name} to the video",
            parameters=parameters,
            dependencies=dependencies,
            is_recommended=False,
            catalog=self.catalog,
        )
        self.pipeline.add_step(step)
        self._emit_event("step_added", self._step_event(step, order=step.order))
        return step

    def remove_step(self, step_id: str) -> ExecutionStep:
        self._guard_structure("remove a step")
        step, affected = self.pipeline.remove_step(step_id)
        if affected:
            LOG.warning(
                "removed step %s was a dependency of %s; reference cleared",
                step_id,
                ", ".join(affected),
            )
        self._locks.pop(step_id, None)
        self._emit_event("step_removed", self._step_event(step, affected=affected))
        return step

    def reorder_steps(self, step_ids: Iterable[str]) -> ManualPipeline:
        self._guard_structure("reorder steps")
        self.pipeline.reorder(list(step_ids))
        self._emit_event("plan_reordered", {"order": self.pipeline.step_ids()})
        return self.pipeline

    def clear(self) -> None:
        self._guard_structure("clear the pipeline")
        self.pipeline.clear()
        self._locks.clear()


__all__ = ["StepEngine", "PlanEngine", "ManualEngine", "EventHook"]
