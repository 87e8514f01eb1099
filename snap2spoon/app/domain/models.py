# snap2spoon/app/domain/models.py
"""
Domain models for recipe generation and synchronization.
Records are pydantic models because they cross the JSON boundary (model output,
local cache, remote store); everything else is a plain dataclass.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PROFILE_EMOJI = "👨‍🍳"


def new_record_id() -> str:
    return str(uuid4()).upper()


class RecipeRecord(BaseModel):
    """A generated recipe. `id` is assigned by the engine and never changes."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=new_record_id, frozen=True)
    user_id: str = Field(default="", alias="userId")
    name: str
    duration: str
    difficulty: str
    ingredients: list[str]
    instructions: list[str]
    nutritional_info: dict[str, str] = Field(default_factory=dict, alias="nutritionalInfo")
    health_benefits: list[str] = Field(default_factory=list, alias="healthBenefits")

    @field_validator("nutritional_info", mode="before")
    @classmethod
    def _coerce_nutritional_info(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(key): str(item) for key, item in value.items()}
        return value

    @field_validator("health_benefits", mode="before")
    @classmethod
    def _coerce_health_benefits(cls, value: Any) -> Any:
        return [] if value is None else value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RecipeRecord):
            return self.id == other.id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.id)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class UserProfileRecord(BaseModel):
    """One profile per user. `recipe_count` mirrors the recipe collection size."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=new_record_id, frozen=True)
    user_id: str = Field(alias="userId")
    name: str = ""
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    profile_emoji: str = Field(default=DEFAULT_PROFILE_EMOJI, alias="profileEmoji")
    recipe_count: int = Field(default=0, alias="recipeCount")

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("profile_emoji", mode="before")
    @classmethod
    def _coerce_emoji(cls, value: Any) -> Any:
        return value or DEFAULT_PROFILE_EMOJI

    @field_validator("recipe_count", mode="before")
    @classmethod
    def _coerce_recipe_count(cls, value: Any) -> Any:
        return 0 if value is None else value

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class Session:
    """Signed-in context threaded through the engine instead of global state."""
    user_id: str
    is_signed_in: bool = True

    @classmethod
    def signed_out(cls) -> "Session":
        return cls(user_id="", is_signed_in=False)


@dataclass(frozen=True)
class CaptureImage:
    """An already-captured photo, JPEG-encoded."""
    data: bytes
    mime_type: str = "image/jpeg"
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class CameraCapture:
    """Ask the orchestrator to take the photo itself through the capture bridge."""


@dataclass(frozen=True)
class IngredientList:
    items: tuple[str, ...]
    allergies: str = ""

    @classmethod
    def of(cls, items: list[str] | tuple[str, ...], allergies: str = "") -> "IngredientList":
        return cls(items=tuple(items), allergies=allergies)

    @property
    def cleaned_items(self) -> list[str]:
        return [item.strip() for item in self.items if item and item.strip()]


@dataclass(frozen=True)
class HealthyRecipeRequest:
    dietary_preferences: str = ""


GenerationInput = Union[CaptureImage, CameraCapture, IngredientList, HealthyRecipeRequest]


class GenerationKind(str, Enum):
    IMAGE = "image"
    INGREDIENT_LIST = "ingredient_list"
    HEALTHY = "healthy"


class GenerationPhase(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ErrorKind(str, Enum):
    BUSY = "busy"
    EMPTY_INPUT = "empty_input"
    SIGNED_OUT = "signed_out"
    CAPTURE = "capture"
    MALFORMED_RESPONSE = "malformed_response"
    RATE_LIMITED = "rate_limited"
    MODEL_UNAVAILABLE = "model_unavailable"
    REMOTE_UNAVAILABLE = "remote_unavailable"


@dataclass(frozen=True)
class GenerationError:
    kind: ErrorKind
    message: str


@dataclass
class GenerationRequest:
    """One generation attempt. Lives only as long as the orchestrator needs it."""
    kind: GenerationKind
    payload: GenerationInput
    phase: GenerationPhase = GenerationPhase.IDLE
    error: Optional[GenerationError] = None
    request_id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def is_rejected(self) -> bool:
        return self.phase == GenerationPhase.FAILED and self.error is not None


def kind_for_input(payload: GenerationInput) -> GenerationKind:
    if isinstance(payload, (CaptureImage, CameraCapture)):
        return GenerationKind.IMAGE
    if isinstance(payload, IngredientList):
        return GenerationKind.INGREDIENT_LIST
    if isinstance(payload, HealthyRecipeRequest):
        return GenerationKind.HEALTHY
    raise TypeError(f"Unsupported generation input: {type(payload).__name__}")
