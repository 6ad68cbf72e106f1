# SPDX-License-Identifier: Apache-2.0
"""Static registry of the model operations a plan step can invoke.

Descriptors are immutable and built once at import time. Each descriptor
carries a typed parameter schema; ``ParameterSpec.coerce`` turns raw values
into ``ParamValue`` tagged values so step parameter maps never hold a value
that does not match its declared kind.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from framesmith.errors import CatalogError, ParameterError


class ModelType(str, Enum):
    VIDEO_INPAINTING = "video_inpainting"
    OBJECT_REMOVAL = "object_removal"
    OBJECT_REPLACEMENT = "object_replacement"
    SEGMENTATION_SAM3 = "segmentation_sam3"
    OBJECT_INSERTION = "object_insertion"
    BACKGROUND_REMOVAL = "background_removal"
    STYLE_TRANSFER = "style_transfer"
    COLOR_CORRECTION = "color_correction"


class ModelCategory(str, Enum):
    INPAINTING = "inpainting"
    SEGMENTATION = "segmentation"
    GENERATION = "generation"
    CORRECTION = "correction"


class ParameterKind(str, Enum):
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"
    TEXT = "text"
    SLIDER = "slider"


_NUMERIC_KINDS = {ParameterKind.NUMBER, ParameterKind.SLIDER}


@dataclass(frozen=True, slots=True)
class ParamValue:
    """A parameter value tagged with the kind it was validated against."""

    kind: ParameterKind
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "value": self.value}


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    id: str
    name: str
    kind: ParameterKind
    default: Any
    min: float | None = None
    max: float | None = None
    step: float | None = None
    options: tuple[tuple[str, str], ...] = ()
    description: str | None = None

    @property
    def option_values(self) -> tuple[str, ...]:
        return tuple(value for _label, value in self.options)

    def coerce(self, value: Any) -> ParamValue:
        """Validate ``value`` against this spec and return it as a tagged value."""
        if isinstance(value, ParamValue):
            if value.kind is not self.kind:
                raise ParameterError(
                    f"{self.id}: expected {self.kind.value} value, got {value.kind.value}"
                )
            value = value.value
        if self.kind in _NUMERIC_KINDS:
            # bool is an int subclass; reject it explicitly
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ParameterError(f"{self.id}: expected a number, got {value!r}")
            if isinstance(value, float) and not math.isfinite(value):
                raise ParameterError(f"{self.id}: value must be finite")
            if self.min is not None and value < self.min:
                raise ParameterError(f"{self.id}: {value} is below minimum {self.min}")
            if self.max is not None and value > self.max:
                raise ParameterError(f"{self.id}: {value} is above maximum {self.max}")
        elif self.kind is ParameterKind.BOOLEAN:
            if not isinstance(value, bool):
                raise ParameterError(f"{self.id}: expected a boolean, got {value!r}")
        elif self.kind is ParameterKind.SELECT:
            if value not in self.option_values:
                allowed = ", ".join(self.option_values)
                raise ParameterError(
                    f"{self.id}: {value!r} is not one of [{allowed}]"
                )
        elif self.kind is ParameterKind.TEXT:
            if not isinstance(value, str):
                raise ParameterError(f"{self.id}: expected text, got {value!r}")
        return ParamValue(self.kind, value)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.kind.value,
            "default": self.default,
        }
        for key in ("min", "max", "step", "description"):
            val = getattr(self, key)
            if val is not None:
                out[key] = val
        if self.options:
            out["options"] = [
                {"label": label, "value": value} for label, value in self.options
            ]
        return out


@dataclass(frozen=True, slots=True)
class ModelDescriptor:
    id: ModelType
    name: str
    description: str
    category: ModelCategory
    estimated_time: int
    requires_mask: bool
    requires_prompt: bool
    parameters: tuple[ParameterSpec, ...] = field(default_factory=tuple)

    def parameter(self, param_id: str) -> ParameterSpec:
        for spec in self.parameters:
            if spec.id == param_id:
                return spec
        raise ParameterError(f"{self.id.value} has no parameter '{param_id}'")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id.value,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "estimated_time": self.estimated_time,
            "requires_mask": self.requires_mask,
            "requires_prompt": self.requires_prompt,
            "parameters": [spec.to_dict() for spec in self.parameters],
        }


def _slider(
    pid: str,
    name: str,
    default: float,
    *,
    lo: float,
    hi: float,
    step: float,
    description: str,
) -> ParameterSpec:
    return ParameterSpec(
        pid,
        name,
        ParameterKind.SLIDER,
        default,
        min=lo,
        max=hi,
        step=step,
        description=description,
    )


_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id=ModelType.VIDEO_INPAINTING,
        name="Video Inpainting",
        description="Remove unwanted objects and fill the background naturally using ProPainter",
        category=ModelCategory.INPAINTING,
        estimated_time=45,
        requires_mask=True,
        requires_prompt=False,
        parameters=(
            ParameterSpec(
                "quality",
                "Quality",
                ParameterKind.SELECT,
                "high",
                options=(
                    ("Draft (Fast)", "draft"),
                    ("Standard", "standard"),
                    ("High Quality", "high"),
                ),
                description="Trade-off between quality and processing time",
            ),
            _slider(
                "temporal_consistency",
                "Temporal Consistency",
                0.8,
                lo=0,
                hi=1,
                step=0.1,
                description="Ensure consistency across frames",
            ),
        ),
    ),
    ModelDescriptor(
        id=ModelType.OBJECT_REMOVAL,
        name="Object Removal",
        description="Detect and remove objects automatically",
        category=ModelCategory.INPAINTING,
        estimated_time=30,
        requires_mask=True,
        requires_prompt=False,
        parameters=(
            ParameterSpec(
                "auto_detect",
                "Auto Detect",
                ParameterKind.BOOLEAN,
                True,
                description="Automatically detect object boundaries",
            ),
            _slider(
                "feather",
                "Edge Feather",
                0.3,
                lo=0,
                hi=1,
                step=0.05,
                description="Smooth edges of removed area",
            ),
        ),
    ),
    ModelDescriptor(
        id=ModelType.OBJECT_REPLACEMENT,
        name="Object Replacement",
        description="Replace objects with new content while maintaining lighting and perspective",
        category=ModelCategory.GENERATION,
        estimated_time=60,
        requires_mask=True,
        requires_prompt=True,
        parameters=(
            ParameterSpec(
                "prompt",
                "Replacement Description",
                ParameterKind.TEXT,
                "",
                description="Describe what to replace the object with",
            ),
            ParameterSpec(
                "preserve_lighting",
                "Preserve Lighting",
                ParameterKind.BOOLEAN,
                True,
                description="Match lighting of the original scene",
            ),
        ),
    ),
    ModelDescriptor(
        id=ModelType.SEGMENTATION_SAM3,
        name="SAM 3 Segmentation",
        description="Advanced segmentation using Segment Anything Model 3",
        category=ModelCategory.SEGMENTATION,
        estimated_time=15,
        requires_mask=False,
        requires_prompt=False,
        parameters=(
            ParameterSpec(
                "mode",
                "Segmentation Mode",
                ParameterKind.SELECT,
                "auto",
                options=(
                    ("Auto (All Objects)", "auto"),
                    ("Point Prompt", "point"),
                    ("Box Prompt", "box"),
                    ("Text Prompt", "text"),
                ),
                description="How to select objects for segmentation",
            ),
            ParameterSpec(
                "refine_edges",
                "Refine Edges",
                ParameterKind.BOOLEAN,
                True,
                description="Apply edge refinement",
            ),
        ),
    ),
    ModelDescriptor(
        id=ModelType.OBJECT_INSERTION,
        name="Object Insertion",
        description="Insert new objects into the video with realistic blending",
        category=ModelCategory.GENERATION,
        estimated_time=90,
        requires_mask=True,
        requires_prompt=True,
        parameters=(
            ParameterSpec(
                "prompt",
                "Object Description",
                ParameterKind.TEXT,
                "",
                description="Describe the object to insert",
            ),
            ParameterSpec(
                "position",
                "Position",
                ParameterKind.SELECT,
                "center",
                options=(
                    ("Center", "center"),
                    ("Foreground", "foreground"),
                    ("Background", "background"),
                ),
                description="Depth placement of the object",
            ),
        ),
    ),
    ModelDescriptor(
        id=ModelType.BACKGROUND_REMOVAL,
        name="Background Removal",
        description="Remove the background while keeping foreground subjects",
        category=ModelCategory.SEGMENTATION,
        estimated_time=25,
        requires_mask=False,
        requires_prompt=False,
        parameters=(
            ParameterSpec(
                "subject",
                "Subject Selection",
                ParameterKind.SELECT,
                "auto",
                options=(
                    ("Auto-detect", "auto"),
                    ("Person", "person"),
                    ("Custom", "custom"),
                ),
                description="What to keep as foreground",
            ),
        ),
    ),
    ModelDescriptor(
        id=ModelType.COLOR_CORRECTION,
        name="Color Correction",
        description="Adjust colors, exposure, and tone",
        category=ModelCategory.CORRECTION,
        estimated_time=10,
        requires_mask=False,
        requires_prompt=False,
        parameters=(
            _slider(
                "exposure",
                "Exposure",
                0,
                lo=-1,
                hi=1,
                step=0.1,
                description="Adjust brightness",
            ),
            _slider(
                "contrast",
                "Contrast",
                0,
                lo=-1,
                hi=1,
                step=0.1,
                description="Adjust contrast",
            ),
            _slider(
                "saturation",
                "Saturation",
                0,
                lo=-1,
                hi=1,
                step=0.1,
                description="Adjust color saturation",
            ),
        ),
    ),
    ModelDescriptor(
        id=ModelType.STYLE_TRANSFER,
        name="Style Transfer",
        description="Apply artistic styles to video",
        category=ModelCategory.GENERATION,
        estimated_time=120,
        requires_mask=False,
        requires_prompt=True,
        parameters=(
            ParameterSpec(
                "style",
                "Style",
                ParameterKind.SELECT,
                "cinematic",
                options=(
                    ("Cinematic", "cinematic"),
                    ("Vintage", "vintage"),
                    ("Noir", "noir"),
                    ("Anime", "anime"),
                    ("Custom", "custom"),
                ),
                description="Choose a visual style",
            ),
            _slider(
                "intensity",
                "Intensity",
                0.7,
                lo=0,
                hi=1,
                step=0.1,
                description="How strongly to apply the style",
            ),
        ),
    ),
)

MODEL_CATALOG: Mapping[ModelType, ModelDescriptor] = MappingProxyType(
    {m.id: m for m in _MODELS}
)


def get_model(
    model_type: ModelType | str,
    catalog: Mapping[ModelType, ModelDescriptor] | None = None,
) -> ModelDescriptor:
    """Look up a descriptor; a miss is a programming error, not user input."""
    registry = MODEL_CATALOG if catalog is None else catalog
    try:
        key = ModelType(model_type)
    except ValueError as exc:
        raise CatalogError(f"unknown model type: {model_type!r}") from exc
    descriptor = registry.get(key)
    if descriptor is None:
        raise CatalogError(f"model {key.value} is not in the catalog")
    return descriptor


def default_parameters(descriptor: ModelDescriptor) -> dict[str, ParamValue]:
    return {spec.id: spec.coerce(spec.default) for spec in descriptor.parameters}


def iter_models(
    catalog: Mapping[ModelType, ModelDescriptor] | None = None,
) -> Iterable[ModelDescriptor]:
    registry = MODEL_CATALOG if catalog is None else catalog
    return list(registry.values())


__all__ = [
    "ModelType",
    "ModelCategory",
    "ParameterKind",
    "ParamValue",
    "ParameterSpec",
    "ModelDescriptor",
    "MODEL_CATALOG",
    "get_model",
    "default_parameters",
    "iter_models",
]
