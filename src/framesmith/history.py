# SPDX-License-Identifier: Apache-2.0
"""In-memory record of engine events for the current editing session."""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class HistoryStore:
    """Collects engine events; attach with ``as_event_hook()``."""

    def __init__(self, session_id: str | None = None, *, limit: int | None = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self.limit = limit
        self._events: list[dict[str, Any]] = []
        self._seq = 0

    def handle_event(self, name: str, payload: dict[str, Any]) -> None:
        self._seq += 1
        self._events.append(
            {
                "seq": self._seq,
                "event": name,
                "step_id": payload.get("step_id") if isinstance(payload, dict) else None,
                "created": _utc_now(),
                "payload": dict(payload or {}),
            }
        )
        if self.limit and len(self._events) > self.limit:
            del self._events[: len(self._events) - self.limit]

    def as_event_hook(self) -> Callable[[str, dict[str, Any]], None]:
        def _hook(name: str, payload: dict[str, Any] | None) -> None:
            self.handle_event(name, payload or {})

        return _hook

    def events(
        self, *, step_id: str | None = None, event: str | None = None
    ) -> list[dict[str, Any]]:
        out = self._events
        if step_id is not None:
            out = [e for e in out if e["step_id"] == step_id]
        if event is not None:
            out = [e for e in out if e["event"] == event]
        return [dict(e) for e in out]

    def summary(self) -> dict[str, int]:
        return dict(Counter(e["event"] for e in self._events))

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


class NullHistoryStore(HistoryStore):
    """Discards every event."""

    def handle_event(self, name: str, payload: dict[str, Any]) -> None:  # noqa: ARG002
        return None


__all__ = ["HistoryStore", "NullHistoryStore"]
