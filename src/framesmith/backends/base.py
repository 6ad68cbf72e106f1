# SPDX-License-Identifier: Apache-2.0
"""Contract between the step engine and whatever performs model invocations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from framesmith.errors import FramesmithError

if TYPE_CHECKING:  # pragma: no cover
    from framesmith.engine.models import ExecutionStep


class CollaboratorError(FramesmithError):
    """A model invocation failed on the collaborator side."""


class CollaboratorTimeoutError(CollaboratorError):
    pass


class StepCancelledError(CollaboratorError):
    def __init__(self, message: str = "Step execution was cancelled.") -> None:
        super().__init__(message)


JOB_STATUSES = ("queued", "processing", "completed", "failed")
TERMINAL_JOB_STATUSES = frozenset({"completed", "failed"})


@dataclass
class CollaboratorResult:
    success: bool
    output_ref: str | None = None
    preview_ref: str | None = None
    processing_time: float | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class JobHandle:
    job_id: str
    status_url: str | None = None


@dataclass
class JobState:
    status: str
    progress: float = 0.0
    output_ref: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.status not in JOB_STATUSES:
            raise ValueError(f"unknown job status: {self.status!r}")
        self.progress = max(0.0, min(float(self.progress or 0.0), 100.0))

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> JobState:
        return cls(
            status=str(data.get("status") or "queued"),
            progress=float(data.get("progress") or 0.0),
            output_ref=data.get("outputUrl") or data.get("output_url"),
            error=data.get("error"),
        )


@runtime_checkable
class ExecutionCollaborator(Protocol):
    """Performs one step's model invocation.

    Implementations may also define ``async rollback(step)`` and
    ``async cancel(step)``; the engine calls them when present.
    """

    async def run(self, step: ExecutionStep) -> CollaboratorResult:  # pragma: no cover
        ...


__all__ = [
    "CollaboratorError",
    "CollaboratorTimeoutError",
    "StepCancelledError",
    "CollaboratorResult",
    "JobHandle",
    "JobState",
    "ExecutionCollaborator",
    "JOB_STATUSES",
]
