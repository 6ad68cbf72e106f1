# SPDX-License-Identifier: Apache-2.0
"""HTTP collaborator for a remote segmentation/inpainting service.

Requests are issued with ``requests`` on worker threads so the event loop
stays free while a call is in flight. Endpoints that return a job id are
polled through :func:`framesmith.backends.polling.poll_job`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any
from urllib.parse import urljoin

import requests

from framesmith.backends.base import (
    CollaboratorError,
    CollaboratorResult,
    JobHandle,
    JobState,
)
from framesmith.backends.polling import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_MAX_ATTEMPTS,
    poll_job,
)
from framesmith.catalog import ModelType

if TYPE_CHECKING:  # pragma: no cover
    from framesmith.engine.models import ExecutionStep

LOG = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 60.0

_ROUTES: dict[ModelType, str] = {
    ModelType.SEGMENTATION_SAM3: "/api/v1/segment",
    ModelType.VIDEO_INPAINTING: "/api/v1/remove-video-objects",
    ModelType.OBJECT_REMOVAL: "/api/v1/remove-video-objects",
}


def route_for(model_type: ModelType) -> str:
    return _ROUTES.get(model_type, f"/api/v1/models/{model_type.value}/run")


def _error_detail(response: Any) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    reason = getattr(response, "reason", None) or ""
    return f"API error: {response.status_code} {reason}".strip()


def _job_id(data: dict[str, Any]) -> str | None:
    value = data.get("jobId") or data.get("job_id")
    return str(value) if value else None


class HttpCollaborator:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS,
        session: requests.Session | None = None,
        source_ref: str | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.poll_max_attempts = poll_max_attempts
        self.session = session or requests.Session()
        self.source_ref = source_ref

    def _url(self, path: str) -> str:
        return urljoin(self.base_url, path.lstrip("/"))

    def _request(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        url = self._url(path)
        try:
            r = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise CollaboratorError(f"request to {url} failed: {exc}") from exc
        if not r.ok:
            raise CollaboratorError(_error_detail(r))
        try:
            data = r.json()
        except ValueError as exc:
            raise CollaboratorError(f"invalid JSON from {url}") from exc
        return data if isinstance(data, dict) else {"data": data}

    async def _call(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await asyncio.to_thread(self._request, method, path, payload)

    async def fetch_job(self, job_id: str) -> JobState:
        data = await self._call("GET", f"/api/v1/jobs/{job_id}")
        return JobState.from_mapping(data)

    async def health(self) -> dict[str, Any]:
        return await self._call("GET", "/api/v1/health")

    def _payload(self, step: ExecutionStep) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "step_id": step.id,
            "model_type": step.model_type.value,
            "parameters": step.parameters.to_dict(),
        }
        if self.source_ref:
            payload["source_ref"] = self.source_ref
        return payload

    async def run(self, step: ExecutionStep) -> CollaboratorResult:
        started = time.perf_counter()
        path = route_for(step.model_type)
        LOG.debug("POST %s for step %s", path, step.id)
        data = await self._call("POST", path, self._payload(step))
        job_id = _job_id(data)
        metadata: dict[str, Any] = {"route": path}
        output_ref = data.get("outputUrl") or data.get("output_url") or data.get("image_url")
        if job_id:
            handle = JobHandle(job_id, status_url=self._url(f"/api/v1/jobs/{job_id}"))
            metadata["job_id"] = handle.job_id
            metadata["status_url"] = handle.status_url
            state = await poll_job(
                self.fetch_job,
                handle.job_id,
                interval=self.poll_interval,
                max_attempts=self.poll_max_attempts,
            )
            output_ref = state.output_ref or output_ref
        segments = data.get("segments")
        if isinstance(segments, list):
            metadata["segments"] = len(segments)
        return CollaboratorResult(
            success=True,
            output_ref=output_ref,
            preview_ref=data.get("previewUrl") or data.get("preview_url"),
            processing_time=time.perf_counter() - started,
            metadata=metadata,
        )


__all__ = ["HttpCollaborator", "route_for", "DEFAULT_BASE_URL", "DEFAULT_TIMEOUT"]
