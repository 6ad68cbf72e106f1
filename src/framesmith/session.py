# SPDX-License-Identifier: Apache-2.0
"""Editing session aggregate owning the plan, the manual pipeline, and history."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Literal

from framesmith.backends import ExecutionCollaborator, collaborator_from_env
from framesmith.catalog import ModelDescriptor, ModelType
from framesmith.engine.core import ManualEngine, PlanEngine
from framesmith.engine.models import ExecutionPlan, ManualPipeline
from framesmith.engine.status import progress_percent
from framesmith.errors import NoActivePlanError
from framesmith.history import HistoryStore
from framesmith.planner.classifier import PlannerAnalysis, classify
from framesmith.planner.synthesizer import synthesize

LOG = logging.getLogger(__name__)

Mode = Literal["manual", "ai"]
_MODES = ("manual", "ai")


class EditorSession:
    """Single-user editing session.

    Holds at most one plan (AI mode) and one manual pipeline. Engines share
    the session's history store as their event hook.
    """

    def __init__(
        self,
        collaborator: ExecutionCollaborator | None = None,
        *,
        mode: Mode = "manual",
        history: HistoryStore | None = None,
        catalog: Mapping[ModelType, ModelDescriptor] | None = None,
    ) -> None:
        if mode not in _MODES:
            raise ValueError(f"mode must be one of {_MODES}, got {mode!r}")
        self.collaborator = collaborator or collaborator_from_env()
        self.history = history if history is not None else HistoryStore()
        self.catalog = catalog
        self._mode: Mode = mode
        self.plan: ExecutionPlan | None = None
        self.plan_engine: PlanEngine | None = None
        self.manual = ManualPipeline()
        self.manual_engine = ManualEngine(
            self.manual,
            self.collaborator,
            event_hook=self.history.as_event_hook(),
            catalog=catalog,
        )

    @property
    def mode(self) -> Mode:
        return self._mode

    def set_mode(self, mode: Mode) -> None:
        """Switch authoring mode; the current plan is discarded."""
        if mode not in _MODES:
            raise ValueError(f"mode must be one of {_MODES}, got {mode!r}")
        self._mode = mode
        self.clear_plan()

    def analyze(self, prompt: str) -> PlannerAnalysis:
        return classify(prompt)

    def generate_plan(self, prompt: str) -> ExecutionPlan:
        analysis = classify(prompt)
        plan = synthesize(prompt, analysis, self.catalog)
        self.set_plan(plan)
        LOG.info(
            "generated plan %s for %r: %s, %d step(s)",
            plan.id,
            prompt,
            analysis.intent.action,
            len(plan.steps),
        )
        return plan

    def set_plan(self, plan: ExecutionPlan) -> PlanEngine:
        self.plan = plan
        self.plan_engine = PlanEngine(
            plan, self.collaborator, event_hook=self.history.as_event_hook()
        )
        return self.plan_engine

    def clear_plan(self) -> None:
        self.plan = None
        self.plan_engine = None

    def require_plan_engine(self) -> PlanEngine:
        if self.plan_engine is None:
            raise NoActivePlanError("no plan has been generated for this session")
        return self.plan_engine

    def plan_progress(self) -> int:
        if self.plan is None:
            return 0
        return progress_percent(self.plan.steps)

    def reset(self) -> None:
        self.clear_plan()
        self.manual_engine.clear()
        self.history.clear()

    def snapshot(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "plan": self.plan.to_dict() if self.plan else None,
            "plan_progress": self.plan_progress(),
            "manual": self.manual.to_dict(),
        }


__all__ = ["EditorSession"]
