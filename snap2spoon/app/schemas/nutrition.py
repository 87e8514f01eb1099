# snap2spoon/app/schemas/nutrition.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class NutritionQuestionRequest(BaseModel):
    question: str = Field(..., min_length=1)
    recipeId: Optional[str] = None


class NutritionAnswerResponse(BaseModel):
    question: str
    answer: str
    recipeId: Optional[str] = None
