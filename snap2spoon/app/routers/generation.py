# snap2spoon/app/routers/generation.py
from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from snap2spoon.app.deps import get_orchestrator
from snap2spoon.app.domain.models import (
    CameraCapture,
    CaptureImage,
    ErrorKind,
    GenerationInput,
    HealthyRecipeRequest,
    IngredientList,
)
from snap2spoon.app.schemas.generation import (
    GenerationAccepted,
    GenerationStateResponse,
    HealthyRecipesRequest,
    IngredientsRequest,
)
from snap2spoon.app.services.generation_orchestrator import GenerationOrchestrator

router = APIRouter(prefix="/generation", tags=["generation"])

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/heic", "image/webp"}

# Max upload size (10MB)
MAX_IMAGE_BYTES = 10 * 1024 * 1024

_REJECTION_STATUS = {
    ErrorKind.BUSY: status.HTTP_409_CONFLICT,
    ErrorKind.EMPTY_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SIGNED_OUT: status.HTTP_401_UNAUTHORIZED,
}


def _start(orchestrator: GenerationOrchestrator, payload: GenerationInput) -> GenerationAccepted:
    request = orchestrator.start(payload)
    if request.error is not None:
        code = _REJECTION_STATUS.get(request.error.kind, status.HTTP_400_BAD_REQUEST)
        raise HTTPException(status_code=code, detail=request.error.message)
    return GenerationAccepted.from_request(request)


@router.post("/ingredients", response_model=GenerationAccepted, status_code=status.HTTP_202_ACCEPTED)
async def generate_from_ingredients(
    payload: IngredientsRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationAccepted:
    return _start(orchestrator, IngredientList.of(payload.ingredients, allergies=payload.allergies))


@router.post("/image", response_model=GenerationAccepted, status_code=status.HTTP_202_ACCEPTED)
async def generate_from_image(
    file: UploadFile = File(...),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationAccepted:
    content_type = file.content_type or "image/jpeg"
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Content type '{content_type}' not allowed. Allowed types: {', '.join(sorted(ALLOWED_IMAGE_TYPES))}",
        )

    data = await file.read()
    if len(data) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Image too large. Maximum size: {MAX_IMAGE_BYTES // (1024 * 1024)}MB",
        )
    return _start(orchestrator, CaptureImage(data=data, mime_type=content_type))


@router.post("/camera", response_model=GenerationAccepted, status_code=status.HTTP_202_ACCEPTED)
async def generate_from_camera(
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationAccepted:
    return _start(orchestrator, CameraCapture())


@router.post("/healthy", response_model=GenerationAccepted, status_code=status.HTTP_202_ACCEPTED)
async def generate_healthy(
    payload: HealthyRecipesRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationAccepted:
    return _start(orchestrator, HealthyRecipeRequest(dietary_preferences=payload.dietaryPreferences))


@router.get("/state", response_model=GenerationStateResponse)
async def generation_state(
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerationStateResponse:
    return GenerationStateResponse.from_state(orchestrator.state)
