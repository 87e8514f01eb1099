# snap2spoon/app/routers/nutrition.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from snap2spoon.app.deps import get_nutrition_service, get_sync_engine
from snap2spoon.app.schemas.nutrition import NutritionAnswerResponse, NutritionQuestionRequest
from snap2spoon.app.services.nutrition_service import NutritionService
from snap2spoon.app.services.sync_engine import DualStoreSyncEngine
from snap2spoon.services.errors import RateLimitedError, ServiceError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/nutrition", tags=["nutrition"])


@router.post("/questions", response_model=NutritionAnswerResponse)
async def ask_question(
    payload: NutritionQuestionRequest,
    engine: DualStoreSyncEngine = Depends(get_sync_engine),
    nutrition: NutritionService = Depends(get_nutrition_service),
) -> NutritionAnswerResponse:
    recipe = None
    if payload.recipeId:
        recipe = engine.find(payload.recipeId)
        if recipe is None:
            raise HTTPException(status_code=404, detail="Recipe not found")

    try:
        result = await nutrition.ask(payload.question, recipe)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except RateLimitedError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    except ServiceError as exc:
        logger.warning("Nutrition question failed: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc))

    return NutritionAnswerResponse(question=result.question, answer=result.answer, recipeId=result.recipe_id)
