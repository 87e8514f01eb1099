# snap2spoon/app/services/nutrition_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from starlette.concurrency import run_in_threadpool

from snap2spoon.app.domain.models import RecipeRecord
from snap2spoon.app.services.sync_engine import DualStoreSyncEngine
from snap2spoon.services.nutrition import extract_health_benefits, extract_nutritional_info
from snap2spoon.services.recipe_agent import RecipeModelClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NutritionAnalysis:
    analysis: str
    recipe: RecipeRecord
    annotated: bool


@dataclass(frozen=True)
class NutritionAnswer:
    question: str
    answer: str
    recipe_id: Optional[str] = None


class NutritionService:
    """Nutrition analysis that annotates stored recipes, plus free-form nutritionist questions."""

    def __init__(self, model_client: RecipeModelClient, sync_engine: DualStoreSyncEngine):
        self._model = model_client
        self._sync = sync_engine

    async def analyze(self, recipe: RecipeRecord) -> NutritionAnalysis:
        analysis = await run_in_threadpool(self._model.analyze_recipe, recipe)

        # recipes that already carry nutrition data keep it
        if recipe.nutritional_info:
            return NutritionAnalysis(analysis=analysis, recipe=recipe, annotated=False)

        nutritional_info = extract_nutritional_info(analysis)
        if not nutritional_info:
            logger.info("No nutrition values found in analysis for %s", recipe.id)
            return NutritionAnalysis(analysis=analysis, recipe=recipe, annotated=False)

        changes: dict = {"nutritional_info": nutritional_info}
        if not recipe.health_benefits:
            changes["health_benefits"] = extract_health_benefits(analysis)

        updated = recipe.model_copy(update=changes)
        self._sync.update(updated)
        logger.info("Annotated recipe %s with %d nutrition value(s)", recipe.id, len(nutritional_info))
        return NutritionAnalysis(analysis=analysis, recipe=updated, annotated=True)

    async def ask(self, question: str, recipe: Optional[RecipeRecord] = None) -> NutritionAnswer:
        question = question.strip()
        if not question:
            raise ValueError("Please enter a nutrition question.")

        answer = await run_in_threadpool(self._model.answer_question, question, recipe)
        logger.info("Answered nutrition question (%d chars)", len(answer))
        return NutritionAnswer(question=question, answer=answer, recipe_id=recipe.id if recipe else None)
