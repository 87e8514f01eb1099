# snap2spoon/app/schemas/recipes.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from snap2spoon.app.domain.models import RecipeRecord


class RecipeListResponse(BaseModel):
    recipes: list[RecipeRecord] = Field(default_factory=list)
    refreshing: bool = False
    lastError: Optional[str] = None


class AnalysisResponse(BaseModel):
    analysis: str
    annotated: bool
    recipe: RecipeRecord
