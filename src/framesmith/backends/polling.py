# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from framesmith.backends.base import CollaboratorError, CollaboratorTimeoutError, JobState

LOG = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_POLL_MAX_ATTEMPTS = 120
TIMEOUT_MESSAGE = "Video processing timed out."


async def poll_job(
    fetch_status: Callable[[str], Awaitable[JobState]],
    job_id: str,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS,
    on_progress: Callable[[JobState], None] | None = None,
) -> JobState:
    """Poll ``fetch_status(job_id)`` until the job completes.

    Returns the completed state. A failed job raises ``CollaboratorError``
    carrying the job's error; running out of attempts raises
    ``CollaboratorTimeoutError``.
    """
    for attempt in range(max(1, int(max_attempts))):
        state = await fetch_status(job_id)
        if on_progress is not None:
            try:
                on_progress(state)
            except Exception:
                LOG.debug("progress callback failed for job %s", job_id, exc_info=True)
        if state.status == "completed":
            return state
        if state.status == "failed":
            raise CollaboratorError(state.error or "Video processing failed.")
        LOG.debug(
            "job %s %s (%.0f%%), attempt %d", job_id, state.status, state.progress, attempt + 1
        )
        await asyncio.sleep(interval)
    raise CollaboratorTimeoutError(TIMEOUT_MESSAGE)


__all__ = ["poll_job", "DEFAULT_POLL_INTERVAL", "DEFAULT_POLL_MAX_ATTEMPTS", "TIMEOUT_MESSAGE"]
