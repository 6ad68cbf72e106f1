# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from framesmith.history import HistoryStore, NullHistoryStore


def test_events_are_sequenced_and_filterable() -> None:
    store = HistoryStore("s1")
    hook = store.as_event_hook()
    hook("step_started", {"step_id": "a"})
    hook("step_completed", {"step_id": "a"})
    hook("plan_status_changed", {"plan_id": "p", "to": "completed"})
    assert len(store) == 3
    assert [e["seq"] for e in store.events()] == [1, 2, 3]
    assert [e["event"] for e in store.events(step_id="a")] == [
        "step_started",
        "step_completed",
    ]
    assert store.events(event="plan_status_changed")[0]["step_id"] is None
    assert store.summary() == {
        "step_started": 1,
        "step_completed": 1,
        "plan_status_changed": 1,
    }


def test_limit_keeps_most_recent() -> None:
    store = HistoryStore(limit=2)
    for i in range(4):
        store.handle_event("tick", {"n": i})
    assert [e["payload"]["n"] for e in store.events()] == [2, 3]
    store.clear()
    assert len(store) == 0
    assert store.session_id


def test_null_store_discards() -> None:
    store = NullHistoryStore()
    store.as_event_hook()("step_started", {"step_id": "a"})
    assert store.events() == []
