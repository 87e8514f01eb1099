# snap2spoon/app/schemas/generation.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from snap2spoon.app.domain.models import (
    ErrorKind,
    GenerationError,
    GenerationKind,
    GenerationPhase,
    GenerationRequest,
    RecipeRecord,
)
from snap2spoon.app.domain.state import OrchestratorState


class IngredientsRequest(BaseModel):
    ingredients: list[str] = Field(default_factory=list)
    allergies: str = Field(default="", max_length=500)


class HealthyRecipesRequest(BaseModel):
    dietaryPreferences: str = Field(default="", max_length=500)


class GenerationErrorResponse(BaseModel):
    kind: ErrorKind
    message: str

    @classmethod
    def from_error(cls, error: Optional[GenerationError]) -> Optional["GenerationErrorResponse"]:
        if error is None:
            return None
        return cls(kind=error.kind, message=error.message)


class GenerationAccepted(BaseModel):
    requestId: str
    kind: GenerationKind
    phase: GenerationPhase
    error: Optional[GenerationErrorResponse] = None

    @classmethod
    def from_request(cls, request: GenerationRequest) -> "GenerationAccepted":
        return cls(
            requestId=request.request_id,
            kind=request.kind,
            phase=request.phase,
            error=GenerationErrorResponse.from_error(request.error),
        )


class GenerationStateResponse(BaseModel):
    phase: GenerationPhase
    loading: bool
    requestKind: Optional[GenerationKind] = None
    lastError: Optional[GenerationErrorResponse] = None
    lastResult: list[RecipeRecord] = Field(default_factory=list)

    @classmethod
    def from_state(cls, state: OrchestratorState) -> "GenerationStateResponse":
        return cls(
            phase=state.phase,
            loading=state.loading,
            requestKind=state.request_kind,
            lastError=GenerationErrorResponse.from_error(state.last_error),
            lastResult=list(state.last_result),
        )
