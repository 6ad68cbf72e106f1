# SPDX-License-Identifier: Apache-2.0
"""Exception hierarchy shared by the catalog, planner, and engine."""

from __future__ import annotations


class FramesmithError(Exception):
    """Base class for all framesmith errors."""


class CatalogError(FramesmithError):
    """A model descriptor referenced by a plan is missing from the catalog."""


class ParameterError(FramesmithError, ValueError):
    """A parameter value does not match its ParameterSpec."""


class DependencyGraphError(FramesmithError, ValueError):
    """Step dependencies are dangling, self-referential, or cyclic."""


class StepNotFoundError(FramesmithError, KeyError):
    """No step with the given id exists in the owning plan or pipeline."""

    def __init__(self, step_id: str) -> None:
        super().__init__(step_id)
        self.step_id = step_id

    def __str__(self) -> str:
        return f"step not found: {self.step_id}"


class NoActivePlanError(FramesmithError, LookupError):
    """An operation needs a plan but the session has none."""


class InvalidTransitionError(FramesmithError):
    """The requested lifecycle transition is not allowed from the current state."""


class DependencyError(InvalidTransitionError):
    """A step was asked to run before all of its dependencies were satisfied."""

    def __init__(self, step_id: str, blocking: list[str]) -> None:
        self.step_id = step_id
        self.blocking = list(blocking)
        super().__init__(
            f"step {step_id} has unmet dependencies: {', '.join(self.blocking)}"
        )


__all__ = [
    "FramesmithError",
    "CatalogError",
    "ParameterError",
    "DependencyGraphError",
    "StepNotFoundError",
    "NoActivePlanError",
    "InvalidTransitionError",
    "DependencyError",
]
