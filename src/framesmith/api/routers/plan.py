# SPDX-License-Identifier: Apache-2.0
"""Plan endpoints: generate, approve, edit, and execute the session's plan.

Engine errors propagate to the exception handlers registered in
``framesmith.api.server`` (404 not found, 409 invalid transition, 400 bad
parameters or dependency graph).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from framesmith.api.deps import get_plan_engine, get_session
from framesmith.api.models import (
    PromptRequest,
    ReorderRequest,
    RunRequest,
    StepCreateRequest,
    StepUpdateRequest,
)
from framesmith.engine.core import PlanEngine
from framesmith.engine.models import ExecutionStep
from framesmith.engine.status import progress_percent
from framesmith.session import EditorSession

router = APIRouter(tags=["plan"])


def _plan_payload(engine: PlanEngine) -> dict[str, Any]:
    out = engine.plan.to_dict()
    out["progress"] = progress_percent(engine.plan.steps)
    return out


@router.post("/plan")
def create_plan(
    req: PromptRequest, session: EditorSession = Depends(get_session)
) -> dict[str, Any]:
    session.set_mode("ai")
    session.generate_plan(req.prompt)
    return _plan_payload(session.require_plan_engine())


@router.get("/plan")
def get_plan(engine: PlanEngine = Depends(get_plan_engine)) -> dict[str, Any]:
    return _plan_payload(engine)


@router.post("/plan/approve")
def approve(engine: PlanEngine = Depends(get_plan_engine)) -> dict[str, Any]:
    engine.approve_plan()
    return _plan_payload(engine)


@router.post("/plan/execute")
async def execute(
    req: RunRequest | None = None, engine: PlanEngine = Depends(get_plan_engine)
) -> dict[str, Any]:
    opts = req or RunRequest()
    await engine.execute_plan(
        max_workers=opts.max_workers, halt_on_failure=opts.halt_on_failure
    )
    return _plan_payload(engine)


@router.post("/plan/reorder")
def reorder(
    req: ReorderRequest, engine: PlanEngine = Depends(get_plan_engine)
) -> dict[str, Any]:
    try:
        engine.reorder_steps(req.step_ids)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _plan_payload(engine)


@router.post("/plan/steps")
def add_step(
    req: StepCreateRequest, engine: PlanEngine = Depends(get_plan_engine)
) -> dict[str, Any]:
    step = ExecutionStep.for_model(
        req.model_type,
        explanation=req.explanation or "",
        parameters=req.parameters,
        dependencies=req.dependencies,
        is_optional=req.is_optional,
    )
    if not step.explanation:
        step.explanation = f"Apply {step.model_name} to the video"
    engine.add_step(step)
    return step.to_dict()


@router.patch("/plan/steps/{step_id}")
def update_step(
    step_id: str,
    req: StepUpdateRequest,
    engine: PlanEngine = Depends(get_plan_engine),
) -> dict[str, Any]:
    return engine.update_step(
        step_id, parameters=req.parameters, explanation=req.explanation
    ).to_dict()


@router.delete("/plan/steps/{step_id}")
def remove_step(
    step_id: str, engine: PlanEngine = Depends(get_plan_engine)
) -> dict[str, Any]:
    step = engine.remove_step(step_id)
    return {"removed": step.id, "plan": _plan_payload(engine)}


@router.post("/plan/steps/{step_id}/execute")
async def execute_step(
    step_id: str, engine: PlanEngine = Depends(get_plan_engine)
) -> dict[str, Any]:
    return (await engine.execute_step(step_id)).to_dict()


@router.post("/plan/steps/{step_id}/rollback")
async def rollback_step(
    step_id: str, engine: PlanEngine = Depends(get_plan_engine)
) -> dict[str, Any]:
    return (await engine.rollback_step(step_id)).to_dict()


@router.post("/plan/steps/{step_id}/skip")
def skip_step(
    step_id: str, engine: PlanEngine = Depends(get_plan_engine)
) -> dict[str, Any]:
    return engine.skip_step(step_id).to_dict()


@router.post("/plan/steps/{step_id}/cancel")
async def cancel_step(
    step_id: str, engine: PlanEngine = Depends(get_plan_engine)
) -> dict[str, Any]:
    return (await engine.cancel_step(step_id)).to_dict()
