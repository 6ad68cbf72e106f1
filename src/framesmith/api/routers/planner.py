# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from framesmith.api.models import PromptRequest
from framesmith.planner.classifier import classify
from framesmith.planner.synthesizer import format_estimated_time

router = APIRouter(tags=["planner"])


@router.post("/planner/analyze")
def analyze(req: PromptRequest) -> dict[str, Any]:
    """Classify an instruction without building a plan."""
    return classify(req.prompt).to_dict()


@router.get("/planner/format-time")
def format_time(seconds: float) -> dict[str, Any]:
    return {"seconds": seconds, "formatted": format_estimated_time(seconds)}
