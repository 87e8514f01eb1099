# snap2spoon/app/routers/recipes.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from snap2spoon.app.deps import get_nutrition_service, get_sync_engine
from snap2spoon.app.domain.state import SyncState
from snap2spoon.app.schemas.recipes import AnalysisResponse, RecipeListResponse
from snap2spoon.app.services.nutrition_service import NutritionService
from snap2spoon.app.services.sync_engine import DualStoreSyncEngine
from snap2spoon.services.errors import RateLimitedError, ServiceError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/recipes", tags=["recipes"])


def _list_response(state: SyncState) -> RecipeListResponse:
    return RecipeListResponse(
        recipes=list(state.recipes),
        refreshing=state.refreshing,
        lastError=state.last_error,
    )


@router.get("/", response_model=RecipeListResponse)
async def list_recipes(
    engine: DualStoreSyncEngine = Depends(get_sync_engine),
) -> RecipeListResponse:
    return _list_response(engine.state)


@router.post("/refresh", response_model=RecipeListResponse)
async def refresh_recipes(
    engine: DualStoreSyncEngine = Depends(get_sync_engine),
) -> RecipeListResponse:
    await engine.refresh_from_remote()
    return _list_response(engine.state)


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recipe(
    recipe_id: str,
    engine: DualStoreSyncEngine = Depends(get_sync_engine),
) -> Response:
    recipe = engine.find(recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")
    engine.delete(recipe)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{recipe_id}/analysis", response_model=AnalysisResponse)
async def analyze_recipe(
    recipe_id: str,
    engine: DualStoreSyncEngine = Depends(get_sync_engine),
    nutrition: NutritionService = Depends(get_nutrition_service),
) -> AnalysisResponse:
    recipe = engine.find(recipe_id)
    if recipe is None:
        raise HTTPException(status_code=404, detail="Recipe not found")

    try:
        result = await nutrition.analyze(recipe)
    except RateLimitedError as exc:
        raise HTTPException(status_code=429, detail=str(exc))
    except ServiceError as exc:
        logger.warning("Nutrition analysis for %s failed: %s", recipe_id, exc)
        raise HTTPException(status_code=503, detail=str(exc))

    return AnalysisResponse(analysis=result.analysis, annotated=result.annotated, recipe=result.recipe)
