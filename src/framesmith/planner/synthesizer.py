# SPDX-License-Identifier: Apache-2.0
"""Turn a classified intent into an ``ExecutionPlan`` awaiting approval."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from framesmith.catalog import MODEL_CATALOG, ModelDescriptor, ModelType
from framesmith.engine.models import ExecutionPlan, ExecutionStep
from framesmith.planner.classifier import PlannerAnalysis, PlannerIntent, classify

LOG = logging.getLogger(__name__)

Catalog = Mapping[ModelType, ModelDescriptor]


class _StepFactory:
    """Build pending steps against a single catalog."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def __call__(
        self,
        model_type: ModelType,
        explanation: str,
        parameters: Mapping[str, Any],
        *,
        dependencies: list[str] | None = None,
        is_optional: bool = False,
    ) -> ExecutionStep:
        return ExecutionStep.for_model(
            model_type,
            explanation=explanation,
            parameters=parameters,
            dependencies=dependencies or (),
            is_optional=is_optional,
            is_recommended=True,
            catalog=self.catalog,
        )


Strategy = Callable[[PlannerIntent, _StepFactory], list[ExecutionStep]]


class PlanSynthesizer:
    """Dispatch an intent action to the strategy registered for it."""

    def __init__(self) -> None:
        self._strategies: dict[str, Strategy] = {}
        self._default: Strategy | None = None

    def register_strategy(self, action: str | None) -> Callable[[Strategy], Strategy]:
        """Decorator registering a step builder; ``None`` registers the default."""

        def decorator(func: Strategy) -> Strategy:
            if action is None:
                self._default = func
            else:
                self._strategies[action] = func
            return func

        return decorator

    @property
    def actions(self) -> list[str]:
        return list(self._strategies)

    def synthesize(
        self,
        prompt: str,
        analysis: PlannerAnalysis,
        catalog: Catalog | None = None,
    ) -> ExecutionPlan:
        registry = MODEL_CATALOG if catalog is None else catalog
        intent = analysis.intent
        strategy = self._strategies.get(intent.action, self._default)
        if strategy is None:
            raise LookupError(f"no plan strategy for action {intent.action!r}")
        steps = strategy(intent, _StepFactory(registry))
        plan = ExecutionPlan(steps=steps, prompt=prompt)
        LOG.debug(
            "synthesized %d step(s) for %s (total %ss)",
            len(plan.steps),
            intent.action,
            plan.total_estimated_time,
        )
        return plan


synthesizer = PlanSynthesizer()


@synthesizer.register_strategy("remove")
def _removal_plan(intent: PlannerIntent, step: _StepFactory) -> list[ExecutionStep]:
    segment = step(
        ModelType.SEGMENTATION_SAM3,
        f'First, I\'ll use SAM 3 to precisely segment "{intent.target}". '
        "This creates an accurate mask for removal.",
        {"mode": "auto", "refine_edges": True},
    )
    removal = step(
        ModelType.OBJECT_REMOVAL,
        "Now I'll remove the segmented object using intelligent inpainting "
        "to fill the background naturally.",
        {"auto_detect": False, "feather": 0.3},
        dependencies=[segment.id],
    )
    return [segment, removal]


@synthesizer.register_strategy("replace")
def _replacement_plan(intent: PlannerIntent, step: _StepFactory) -> list[ExecutionStep]:
    segment = step(
        ModelType.SEGMENTATION_SAM3,
        f'I\'ll start by segmenting "{intent.target}" to create a precise mask '
        "for replacement.",
        {"mode": "auto", "refine_edges": True},
    )
    replacement = intent.replacement or "new object"
    replace = step(
        ModelType.OBJECT_REPLACEMENT,
        f'Now I\'ll replace the segmented area with "{replacement}" while '
        "preserving lighting and perspective.",
        {"prompt": replacement, "preserve_lighting": True},
        dependencies=[segment.id],
    )
    return [segment, replace]


@synthesizer.register_strategy("insert")
def _insertion_plan(intent: PlannerIntent, step: _StepFactory) -> list[ExecutionStep]:
    placement = step(
        ModelType.SEGMENTATION_SAM3,
        "I'll analyze the scene structure to determine optimal placement for "
        f'"{intent.target}".',
        {"mode": "auto", "refine_edges": True},
        is_optional=True,
    )
    insert = step(
        ModelType.OBJECT_INSERTION,
        f'I\'ll insert "{intent.target}" into the scene with realistic lighting '
        "and shadows.",
        {"prompt": intent.target or "", "position": "center"},
        dependencies=[placement.id],
    )
    return [placement, insert]


@synthesizer.register_strategy("inpaint")
def _inpainting_plan(intent: PlannerIntent, step: _StepFactory) -> list[ExecutionStep]:
    region = intent.target or "the specified region"
    return [
        step(
            ModelType.VIDEO_INPAINTING,
            f'I\'ll use ProPainter to inpaint "{region}" with high-quality, '
            "temporally consistent results.",
            {"quality": "standard", "temporal_consistency": 0.8},
        )
    ]


@synthesizer.register_strategy("segment")
def _segmentation_plan(intent: PlannerIntent, step: _StepFactory) -> list[ExecutionStep]:
    subject = intent.target or "the specified objects"
    return [
        step(
            ModelType.SEGMENTATION_SAM3,
            f'I\'ll segment "{subject}" using SAM 3 for precise isolation.',
            {"mode": "text" if intent.target else "auto", "refine_edges": True},
        )
    ]


@synthesizer.register_strategy("correct")
def _correction_plan(intent: PlannerIntent, step: _StepFactory) -> list[ExecutionStep]:
    return [
        step(
            ModelType.COLOR_CORRECTION,
            f"I'll apply color correction to adjust {intent.target or 'the video'} "
            "with fine-tuned parameters.",
            {"exposure": 0, "contrast": 0.1, "saturation": 0},
        )
    ]


@synthesizer.register_strategy("composite")
def _composite_plan(intent: PlannerIntent, step: _StepFactory) -> list[ExecutionStep]:
    segment = step(
        ModelType.SEGMENTATION_SAM3,
        "I'll start by segmenting the elements that need to be composited.",
        {"mode": "auto", "refine_edges": True},
    )
    blend = step(
        ModelType.VIDEO_INPAINTING,
        "Then I'll blend the composited elements with the background for "
        "seamless integration.",
        {"quality": "high", "temporal_consistency": 0.9},
        dependencies=[segment.id],
    )
    return [segment, blend]


@synthesizer.register_strategy(None)
def _default_plan(intent: PlannerIntent, step: _StepFactory) -> list[ExecutionStep]:
    return [
        step(
            ModelType.VIDEO_INPAINTING,
            "I'll apply general video inpainting to address your request.",
            {"quality": "standard", "temporal_consistency": 0.7},
        )
    ]


def synthesize(
    prompt: str,
    analysis: PlannerAnalysis,
    catalog: Catalog | None = None,
) -> ExecutionPlan:
    return synthesizer.synthesize(prompt, analysis, catalog)


async def generate_plan_from_prompt(
    prompt: str,
    *,
    delay: float = 0.0,
    catalog: Catalog | None = None,
) -> ExecutionPlan:
    """Classify and synthesize, optionally pausing ``delay`` seconds first."""
    analysis = classify(prompt)
    if delay > 0:
        await asyncio.sleep(delay)
    return synthesize(prompt, analysis, catalog)


def format_estimated_time(seconds: float) -> str:
    total = int(seconds)
    if total < 60:
        return f"{total}s"
    minutes, rest = divmod(total, 60)
    if rest == 0:
        return f"{minutes}m"
    return f"{minutes}m {rest}s"


__all__ = [
    "PlanSynthesizer",
    "synthesizer",
    "synthesize",
    "generate_plan_from_prompt",
    "format_estimated_time",
]
