# SPDX-License-Identifier: Apache-2.0
"""Execution collaborators: who actually runs a step's model invocation."""

from __future__ import annotations

from framesmith.backends.base import (
    CollaboratorError,
    CollaboratorResult,
    CollaboratorTimeoutError,
    ExecutionCollaborator,
    JobHandle,
    JobState,
    StepCancelledError,
)
from framesmith.backends.http import DEFAULT_BASE_URL, HttpCollaborator
from framesmith.backends.mock import MockCollaborator
from framesmith.backends.polling import poll_job
from framesmith.utils.env import coalesce, env, env_float, env_int, env_seconds


def collaborator_from_env(
    backend: str | None = None, base_url: str | None = None
) -> ExecutionCollaborator:
    """Build the collaborator selected by ``FRAMESMITH_BACKEND`` (mock|http)."""
    kind = str(coalesce(backend, env("BACKEND"), "mock")).strip().lower()
    if kind == "mock":
        return MockCollaborator()
    if kind == "http":
        return HttpCollaborator(
            coalesce(base_url, env("BACKEND_URL"), DEFAULT_BASE_URL),
            timeout=env_seconds("HTTP_TIMEOUT", 60.0),
            poll_interval=env_float("POLL_INTERVAL", 1.0),
            poll_max_attempts=env_int("POLL_MAX_ATTEMPTS", 120),
        )
    raise ValueError(f"unknown backend: {kind!r} (expected mock or http)")


__all__ = [
    "CollaboratorError",
    "CollaboratorResult",
    "CollaboratorTimeoutError",
    "ExecutionCollaborator",
    "JobHandle",
    "JobState",
    "StepCancelledError",
    "HttpCollaborator",
    "MockCollaborator",
    "poll_job",
    "collaborator_from_env",
]
