# SPDX-License-Identifier: Apache-2.0
"""Instruction classification and plan synthesis."""

from framesmith.planner.classifier import (
    COMMON_OBJECTS,
    INTENT_RULES,
    IntentClassifier,
    IntentRule,
    PlannerAnalysis,
    PlannerIntent,
    classify,
)
from framesmith.planner.synthesizer import (
    PlanSynthesizer,
    format_estimated_time,
    generate_plan_from_prompt,
    synthesize,
)

__all__ = [
    "COMMON_OBJECTS",
    "INTENT_RULES",
    "IntentClassifier",
    "IntentRule",
    "PlannerAnalysis",
    "PlannerIntent",
    "classify",
    "PlanSynthesizer",
    "format_estimated_time",
    "generate_plan_from_prompt",
    "synthesize",
]
