# SPDX-License-Identifier: Apache-2.0
"""Step, plan, and manual-pipeline data model.

These objects are plain mutable containers. Lifecycle rules live in
``framesmith.engine.core``; the only invariants enforced here are structural
ones that must hold regardless of who mutates the plan: the running total of
estimated time, the ``order`` field matching list position, and a dependency
graph without dangling ids, self references, or cycles.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from framesmith.catalog import (
    MODEL_CATALOG,
    ModelDescriptor,
    ModelType,
    ParamValue,
    default_parameters,
    get_model,
)
from framesmith.errors import DependencyGraphError, ParameterError, StepNotFoundError


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    ROLLBACK = "rollback"


class PlanStatus(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    PENDING_APPROVAL = "pending_approval"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    PAUSED = "paused"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_step_id() -> str:
    return uuid.uuid4().hex


class ParameterMap(MutableMapping[str, Any]):
    """Step parameters validated against a model's parameter schema.

    Values are stored as ``ParamValue``; item access returns the plain value
    and ``typed()`` the tagged one. Keys outside the schema are rejected.
    """

    def __init__(
        self,
        descriptor: ModelDescriptor,
        values: Mapping[str, Any] | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._values: dict[str, ParamValue] = {}
        for key, value in (values or {}).items():
            self[key] = value

    @classmethod
    def with_defaults(
        cls, descriptor: ModelDescriptor, overrides: Mapping[str, Any] | None = None
    ) -> ParameterMap:
        pm = cls(descriptor)
        pm._values.update(default_parameters(descriptor))
        for key, value in (overrides or {}).items():
            pm[key] = value
        return pm

    @property
    def descriptor(self) -> ModelDescriptor:
        return self._descriptor

    def typed(self, key: str) -> ParamValue:
        return self._values[key]

    def __getitem__(self, key: str) -> Any:
        return self._values[key].value

    def __setitem__(self, key: str, value: Any) -> None:
        spec = self._descriptor.parameter(key)
        self._values[key] = spec.coerce(value)

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ParameterMap):
            return self._values == other._values
        if isinstance(other, Mapping):
            return dict(self.items()) == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"ParameterMap({dict(self.items())!r})"

    def to_dict(self) -> dict[str, Any]:
        return dict(self.items())


@dataclass
class StepResult:
    success: bool
    output_ref: str | None = None
    preview_ref: str | None = None
    processing_time: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "output_ref": self.output_ref,
            "preview_ref": self.preview_ref,
            "processing_time": self.processing_time,
            "metadata": dict(self.metadata),
            "error": self.error,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> StepResult:
        return cls(
            success=bool(data.get("success")),
            output_ref=data.get("output_ref"),
            preview_ref=data.get("preview_ref"),
            processing_time=float(data.get("processing_time") or 0.0),
            metadata=dict(data.get("metadata") or {}),
            error=data.get("error"),
        )


@dataclass
class ExecutionStep:
    """One model invocation within a plan or manual pipeline."""

    model_type: ModelType
    parameters: ParameterMap
    explanation: str
    estimated_time: float
    id: str = field(default_factory=new_step_id)
    order: int = 0
    model_name: str = ""
    status: StepStatus = StepStatus.PENDING
    actual_time: float | None = None
    dependencies: list[str] = field(default_factory=list)
    is_optional: bool = False
    is_recommended: bool = True
    result: StepResult | None = None

    @classmethod
    def for_model(
        cls,
        model_type: ModelType | str,
        *,
        explanation: str,
        parameters: Mapping[str, Any] | None = None,
        dependencies: Iterable[str] = (),
        is_optional: bool = False,
        is_recommended: bool = True,
        catalog: Mapping[ModelType, ModelDescriptor] | None = None,
    ) -> ExecutionStep:
        """Build a pending step from a catalog descriptor and parameter overrides."""
        descriptor = get_model(model_type, catalog)
        return cls(
            model_type=descriptor.id,
            model_name=descriptor.name,
            parameters=ParameterMap.with_defaults(descriptor, parameters),
            explanation=explanation,
            estimated_time=descriptor.estimated_time,
            dependencies=list(dependencies),
            is_optional=is_optional,
            is_recommended=is_recommended,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order": self.order,
            "model_type": self.model_type.value,
            "model_name": self.model_name,
            "status": self.status.value,
            "parameters": self.parameters.to_dict(),
            "explanation": self.explanation,
            "estimated_time": self.estimated_time,
            "actual_time": self.actual_time,
            "dependencies": list(self.dependencies),
            "is_optional": self.is_optional,
            "is_recommended": self.is_recommended,
            "result": self.result.to_dict() if self.result else None,
        }

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        catalog: Mapping[ModelType, ModelDescriptor] | None = None,
    ) -> ExecutionStep:
        if not isinstance(data, Mapping):
            raise TypeError("ExecutionStep.from_mapping expects a mapping")
        descriptor = get_model(data.get("model_type") or "", catalog)
        try:
            status = StepStatus(data.get("status") or StepStatus.PENDING.value)
        except ValueError as exc:
            raise ParameterError(f"invalid step status: {data.get('status')!r}") from exc
        result = data.get("result")
        actual = data.get("actual_time")
        return cls(
            id=str(data.get("id") or new_step_id()),
            order=int(data.get("order") or 0),
            model_type=descriptor.id,
            model_name=str(data.get("model_name") or descriptor.name),
            status=status,
            parameters=ParameterMap.with_defaults(
                descriptor, data.get("parameters") or {}
            ),
            explanation=str(data.get("explanation") or ""),
            estimated_time=float(data.get("estimated_time", descriptor.estimated_time)),
            actual_time=float(actual) if actual is not None else None,
            dependencies=[str(d) for d in data.get("dependencies") or [] if d],
            is_optional=bool(data.get("is_optional", False)),
            is_recommended=bool(data.get("is_recommended", True)),
            result=StepResult.from_mapping(result) if isinstance(result, Mapping) else None,
        )


def validate_dependency_graph(steps: Iterable[ExecutionStep]) -> None:
    """Raise DependencyGraphError unless dependencies form a DAG over ``steps``."""
    step_list = list(steps)
    ids = [s.id for s in step_list]
    if len(set(ids)) != len(ids):
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        raise DependencyGraphError(f"duplicate step ids: {', '.join(dupes)}")
    known = set(ids)
    graph: dict[str, list[str]] = {}
    for step in step_list:
        for dep in step.dependencies:
            if dep == step.id:
                raise DependencyGraphError(f"step {step.id} depends on itself")
            if dep not in known:
                raise DependencyGraphError(
                    f"step {step.id} depends on unknown step {dep}"
                )
        graph[step.id] = list(step.dependencies)
    # Kahn's algorithm; anything left over sits on a cycle
    indegree = {sid: len(deps) for sid, deps in graph.items()}
    dependents: dict[str, list[str]] = {sid: [] for sid in graph}
    for sid, deps in graph.items():
        for dep in deps:
            dependents[dep].append(sid)
    queue = [sid for sid, n in indegree.items() if n == 0]
    visited = 0
    while queue:
        sid = queue.pop()
        visited += 1
        for child in dependents[sid]:
            indegree[child] -= 1
            if indegree[child] == 0:
                queue.append(child)
    if visited != len(graph):
        cyclic = sorted(sid for sid, n in indegree.items() if n > 0)
        raise DependencyGraphError(
            f"dependency cycle between steps: {', '.join(cyclic)}"
        )


class _StepList:
    """Shared lookup, ordering, and removal helpers for plans and pipelines."""

    steps: list[ExecutionStep]

    @property
    def total_estimated_time(self) -> float:
        return sum(s.estimated_time for s in self.steps)

    def find_step(self, step_id: str) -> ExecutionStep:
        for step in self.steps:
            if step.id == step_id:
                return step
        raise StepNotFoundError(step_id)

    def step_ids(self) -> list[str]:
        return [s.id for s in self.steps]

    def dependents_of(self, step_id: str) -> list[ExecutionStep]:
        return [s for s in self.steps if step_id in s.dependencies]

    def _resequence(self) -> None:
        for index, step in enumerate(self.steps):
            step.order = index

    def _append(self, step: ExecutionStep) -> ExecutionStep:
        validate_dependency_graph([*self.steps, step])
        step.order = len(self.steps)
        self.steps.append(step)
        return step

    def _detach(self, step_id: str) -> tuple[ExecutionStep, list[str]]:
        step = self.find_step(step_id)
        self.steps = [s for s in self.steps if s.id != step_id]
        affected: list[str] = []
        for other in self.dependents_of(step_id):
            other.dependencies = [d for d in other.dependencies if d != step_id]
            affected.append(other.id)
        self._resequence()
        return step, affected

    def _apply_order(self, step_ids: list[str]) -> None:
        current = self.step_ids()
        if len(step_ids) != len(current) or set(step_ids) != set(current):
            raise ValueError("reorder must list every existing step id exactly once")
        by_id = {s.id: s for s in self.steps}
        self.steps = [by_id[sid] for sid in step_ids]
        self._resequence()


@dataclass
class ExecutionPlan(_StepList):
    """Ordered, dependency-annotated steps awaiting approval or execution.

    ``total_estimated_time`` is derived from the steps on every read.
    """

    steps: list[ExecutionStep] = field(default_factory=list)
    prompt: str | None = None
    id: str = field(default_factory=new_step_id)
    status: PlanStatus = PlanStatus.PENDING_APPROVAL
    current_step_index: int = 0
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        validate_dependency_graph(self.steps)
        self._resequence()

    def touch(self) -> None:
        self.updated_at = _utc_now()

    def add_step(self, step: ExecutionStep) -> ExecutionStep:
        self._append(step)
        self.touch()
        return step

    def remove_step(self, step_id: str) -> tuple[ExecutionStep, list[str]]:
        """Remove a step and clear references to it; returns (step, affected ids)."""
        removed = self._detach(step_id)
        self.touch()
        return removed

    def reorder(self, step_ids: list[str]) -> None:
        self._apply_order(list(step_ids))
        self.touch()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "prompt": self.prompt,
            "status": self.status.value,
            "current_step_index": self.current_step_index,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "total_estimated_time": self.total_estimated_time,
            "steps": [s.to_dict() for s in self.steps],
        }

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        catalog: Mapping[ModelType, ModelDescriptor] | None = None,
    ) -> ExecutionPlan:
        if not isinstance(data, Mapping):
            raise TypeError("ExecutionPlan.from_mapping expects a mapping")
        raw_steps = data.get("steps") or []
        steps = [ExecutionStep.from_mapping(s, catalog) for s in raw_steps]
        steps.sort(key=lambda s: s.order)
        try:
            status = PlanStatus(data.get("status") or PlanStatus.PENDING_APPROVAL.value)
        except ValueError as exc:
            raise ParameterError(f"invalid plan status: {data.get('status')!r}") from exc
        plan = cls(
            steps=steps,
            prompt=data.get("prompt"),
            id=str(data.get("id") or new_step_id()),
            status=status,
            current_step_index=int(data.get("current_step_index") or 0),
        )
        for key in ("created_at", "updated_at"):
            raw = data.get(key)
            if isinstance(raw, datetime):
                setattr(plan, key, raw)
            elif isinstance(raw, str) and raw:
                setattr(plan, key, datetime.fromisoformat(raw))
        return plan


@dataclass
class ManualPipeline(_StepList):
    """Flat, user-assembled step list with no approval gate or plan status."""

    steps: list[ExecutionStep] = field(default_factory=list)

    def add_step(self, step: ExecutionStep) -> ExecutionStep:
        return self._append(step)

    def remove_step(self, step_id: str) -> tuple[ExecutionStep, list[str]]:
        return self._detach(step_id)

    def reorder(self, step_ids: list[str]) -> None:
        self._apply_order(list(step_ids))

    def clear(self) -> None:
        self.steps = []

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_estimated_time": self.total_estimated_time,
            "steps": [s.to_dict() for s in self.steps],
        }


__all__ = [
    "StepStatus",
    "PlanStatus",
    "ParameterMap",
    "StepResult",
    "ExecutionStep",
    "ExecutionPlan",
    "ManualPipeline",
    "validate_dependency_graph",
    "new_step_id",
    "MODEL_CATALOG",
]
