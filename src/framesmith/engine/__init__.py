# SPDX-License-Identifier: Apache-2.0
"""Step execution engine: data model, status rules, and lifecycle drivers."""

from framesmith.engine.core import ManualEngine, PlanEngine, StepEngine
from framesmith.engine.models import (
    ExecutionPlan,
    ExecutionStep,
    ManualPipeline,
    ParameterMap,
    PlanStatus,
    StepResult,
    StepStatus,
    validate_dependency_graph,
)
from framesmith.engine.status import aggregate_plan_status, progress_percent

__all__ = [
    "ManualEngine",
    "PlanEngine",
    "StepEngine",
    "ExecutionPlan",
    "ExecutionStep",
    "ManualPipeline",
    "ParameterMap",
    "PlanStatus",
    "StepResult",
    "StepStatus",
    "validate_dependency_graph",
    "aggregate_plan_status",
    "progress_percent",
]
