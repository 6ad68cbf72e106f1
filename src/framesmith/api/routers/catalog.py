# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query

from framesmith.catalog import ModelCategory, ModelType, get_model, iter_models

router = APIRouter(tags=["models"])


@router.get("/models")
def list_models(category: ModelCategory | None = Query(None)) -> dict[str, Any]:
    models = [
        m.to_dict() for m in iter_models() if category is None or m.category is category
    ]
    return {"models": models, "count": len(models)}


@router.get("/models/{model_type}")
def model_detail(model_type: str) -> dict[str, Any]:
    try:
        key = ModelType(model_type)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=f"unknown model: {model_type}") from exc
    return get_model(key).to_dict()
