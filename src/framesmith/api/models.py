# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from framesmith.catalog import ModelType


class PromptRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="Free-text editing instruction")


class ReorderRequest(BaseModel):
    step_ids: list[str] = Field(
        ..., description="Every existing step id, in the desired order"
    )


class StepCreateRequest(BaseModel):
    model_type: ModelType
    parameters: dict[str, Any] = Field(
        default_factory=dict, description="Overrides for the model's default parameters"
    )
    dependencies: list[str] = Field(default_factory=list)
    explanation: str | None = None
    is_optional: bool = False


class StepUpdateRequest(BaseModel):
    parameters: dict[str, Any] | None = None
    explanation: str | None = None


class RunRequest(BaseModel):
    max_workers: int = Field(default=1, ge=1, le=32)
    halt_on_failure: bool = True
