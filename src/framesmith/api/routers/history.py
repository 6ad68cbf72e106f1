# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from framesmith.api.deps import get_session
from framesmith.session import EditorSession

router = APIRouter(tags=["history"])


@router.get("/history")
def history(
    step_id: str | None = None,
    event: str | None = None,
    session: EditorSession = Depends(get_session),
) -> dict[str, Any]:
    events = session.history.events(step_id=step_id, event=event)
    return {
        "session_id": session.history.session_id,
        "events": events,
        "summary": session.history.summary(),
    }
