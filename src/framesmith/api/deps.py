# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from fastapi import Request

from framesmith.engine.core import PlanEngine
from framesmith.session import EditorSession


def get_session(request: Request) -> EditorSession:
    return request.app.state.session


def get_plan_engine(request: Request) -> PlanEngine:
    """Raises NoActivePlanError (mapped to 404) when no plan exists."""
    return get_session(request).require_plan_engine()
