# SPDX-License-Identifier: Apache-2.0
"""In-process collaborator for development and tests.

Sleeps in proportion to each model's nominal duration and returns fake output
references. Failures can be injected per model type or per step id.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from framesmith.backends.base import CollaboratorResult
from framesmith.utils.env import env_float

if TYPE_CHECKING:  # pragma: no cover
    from framesmith.engine.models import ExecutionStep

LOG = logging.getLogger(__name__)

DEFAULT_LATENCY_SCALE = 0.1


class MockCollaborator:
    def __init__(
        self,
        *,
        latency_scale: float | None = None,
        failures: Mapping[str, str] | None = None,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ) -> None:
        if latency_scale is None:
            latency_scale = env_float("MOCK_LATENCY_SCALE", DEFAULT_LATENCY_SCALE)
        self.latency_scale = max(0.0, float(latency_scale))
        # keys are model type values or step ids; values are error messages
        self.failures: dict[str, str] = dict(failures or {})
        self._clock = clock
        self._sleep = sleep
        self.calls: list[str] = []
        self.rollbacks: list[str] = []
        self.cancelled: list[str] = []

    def fail(self, key: str, message: str = "Model invocation failed.") -> None:
        self.failures[key] = message

    def _failure_for(self, step: ExecutionStep) -> str | None:
        if step.id in self.failures:
            return self.failures[step.id]
        return self.failures.get(step.model_type.value)

    async def run(self, step: ExecutionStep) -> CollaboratorResult:
        self.calls.append(step.id)
        started = self._clock()
        delay = step.estimated_time * self.latency_scale
        if delay > 0:
            await self._sleep(delay)
        elapsed = max(0.0, self._clock() - started)
        error = self._failure_for(step)
        if error is not None:
            LOG.debug("mock failure injected for %s (%s)", step.id, step.model_type.value)
            return CollaboratorResult(success=False, error=error, processing_time=elapsed)
        return CollaboratorResult(
            success=True,
            output_ref=f"mock://{step.model_type.value}/{step.id}/output.mp4",
            preview_ref=f"mock://{step.model_type.value}/{step.id}/preview.jpg",
            processing_time=elapsed,
            metadata={"model": step.model_type.value, "parameters": step.parameters.to_dict()},
        )

    async def rollback(self, step: ExecutionStep) -> None:
        self.rollbacks.append(step.id)

    async def cancel(self, step: ExecutionStep) -> None:
        self.cancelled.append(step.id)


__all__ = ["MockCollaborator", "DEFAULT_LATENCY_SCALE"]
