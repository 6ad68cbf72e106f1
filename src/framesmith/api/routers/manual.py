# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from framesmith.api.deps import get_session
from framesmith.api.models import (
    ReorderRequest,
    RunRequest,
    StepCreateRequest,
    StepUpdateRequest,
)
from framesmith.session import EditorSession

router = APIRouter(tags=["manual"])


@router.get("/manual")
def get_pipeline(session: EditorSession = Depends(get_session)) -> dict[str, Any]:
    return session.manual.to_dict()


@router.delete("/manual")
def clear_pipeline(session: EditorSession = Depends(get_session)) -> dict[str, Any]:
    session.manual_engine.clear()
    return session.manual.to_dict()


@router.post("/manual/steps")
def add_step(
    req: StepCreateRequest, session: EditorSession = Depends(get_session)
) -> dict[str, Any]:
    step = session.manual_engine.add_manual_step(
        req.model_type, req.parameters, dependencies=req.dependencies
    )
    if req.explanation:
        step.explanation = req.explanation
    step.is_optional = req.is_optional
    return step.to_dict()


@router.patch("/manual/steps/{step_id}")
def update_step(
    step_id: str,
    req: StepUpdateRequest,
    session: EditorSession = Depends(get_session),
) -> dict[str, Any]:
    step = session.manual_engine.update_step(
        step_id, parameters=req.parameters, explanation=req.explanation
    )
    return step.to_dict()


@router.delete("/manual/steps/{step_id}")
def remove_step(
    step_id: str, session: EditorSession = Depends(get_session)
) -> dict[str, Any]:
    step = session.manual_engine.remove_step(step_id)
    return {"removed": step.id, "pipeline": session.manual.to_dict()}


@router.post("/manual/steps/{step_id}/execute")
async def execute_step(
    step_id: str, session: EditorSession = Depends(get_session)
) -> dict[str, Any]:
    return (await session.manual_engine.execute_step(step_id)).to_dict()


@router.post("/manual/steps/{step_id}/rollback")
async def rollback_step(
    step_id: str, session: EditorSession = Depends(get_session)
) -> dict[str, Any]:
    return (await session.manual_engine.rollback_step(step_id)).to_dict()


@router.post("/manual/steps/{step_id}/skip")
def skip_step(
    step_id: str, session: EditorSession = Depends(get_session)
) -> dict[str, Any]:
    return session.manual_engine.skip_step(step_id).to_dict()


@router.post("/manual/run")
async def run_pending(
    req: RunRequest | None = None, session: EditorSession = Depends(get_session)
) -> dict[str, Any]:
    opts = req or RunRequest()
    await session.manual_engine.run_pending(
        max_workers=opts.max_workers, halt_on_failure=opts.halt_on_failure
    )
    return session.manual.to_dict()


@router.post("/manual/reorder")
def reorder(
    req: ReorderRequest, session: EditorSession = Depends(get_session)
) -> dict[str, Any]:
    try:
        session.manual_engine.reorder_steps(req.step_ids)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return session.manual.to_dict()
