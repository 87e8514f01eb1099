from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from google.api_core import exceptions as google_exceptions

from snap2spoon.app.config import settings
from snap2spoon.app.domain.models import (
    CaptureImage,
    GenerationInput,
    HealthyRecipeRequest,
    IngredientList,
    RecipeRecord,
)
from snap2spoon.services.errors import ModelUnavailableError, RateLimitedError, ServiceError
from snap2spoon.services.gemini_client import GeminiClient

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent / "prompts"
RECIPE_SYSTEM_PROMPT = PROMPTS_DIR / "RECIPE_SYSTEM_PROMPT.txt"
ANALYSIS_SYSTEM_PROMPT = PROMPTS_DIR / "ANALYSIS_SYSTEM_PROMPT.txt"
NUTRITIONIST_SYSTEM_PROMPT = PROMPTS_DIR / "NUTRITIONIST_SYSTEM_PROMPT.txt"

RATE_LIMIT_MESSAGE = "Gemini API rate limit reached. Try again in a few moments."


class RecipeModelClient(ABC):
    """
    Remote language model used by the engine.

    Implementations are blocking; callers run them in a thread pool.
    """

    @abstractmethod
    def generate_recipes(
        self,
        payload: GenerationInput,
        image: Optional[CaptureImage] = None,
    ) -> str:
        """Return the raw model text for a generation request."""
        pass

    @abstractmethod
    def analyze_recipe(self, recipe: RecipeRecord) -> str:
        """Return a free-text nutrition analysis of the recipe."""
        pass

    @abstractmethod
    def answer_question(self, question: str, recipe: Optional[RecipeRecord] = None) -> str:
        """Answer a free-form nutrition question, optionally about one recipe."""
        pass


def build_image_prompt() -> str:
    return (
        "The picture provided is of a grocery receipt.\n"
        "Read through the receipt and list the ingredients strictly from it.\n"
        "Generate an array of 1 recipe using those ingredients."
    )


def build_ingredient_prompt(ingredients: IngredientList) -> str:
    prompt_sections = [
        "Ingredients I have:\n" + ", ".join(ingredients.cleaned_items),
    ]

    allergies = ingredients.allergies.strip()
    if allergies:
        prompt_sections.append(
            "Exclude any ingredients that conflict with the following allergies:\n"
            f"{allergies}"
        )

    prompt_sections.append("Generate an array of 1 recipe.")
    return "\n\n".join(prompt_sections)


def build_healthy_prompt(request: HealthyRecipeRequest) -> str:
    prompt_sections = [
        "Create three different very healthy recipes that are nutritionally balanced.",
    ]

    preferences = request.dietary_preferences.strip()
    if preferences:
        prompt_sections.append(f"Consider these dietary preferences: {preferences}")

    prompt_sections.append(
        "Every recipe must include complete \"nutritionalInfo\" "
        "(calories, protein, carbs, fat, fiber) and \"healthBenefits\"."
    )
    return "\n\n".join(prompt_sections)


def build_analysis_prompt(recipe: RecipeRecord) -> str:
    return "\n".join(
        [
            f"Recipe: {recipe.name}",
            f"Ingredients: {', '.join(recipe.ingredients)}",
            f"Instructions: {'. '.join(recipe.instructions)}",
        ]
    )


def build_question_prompt(question: str, recipe: Optional[RecipeRecord] = None) -> str:
    prompt_sections = []
    if recipe is not None:
        prompt_sections.append(build_analysis_prompt(recipe))
    prompt_sections.append(f"Question: {question.strip()}")
    return "\n\n".join(prompt_sections)


def build_prompt(payload: GenerationInput) -> str:
    if isinstance(payload, IngredientList):
        return build_ingredient_prompt(payload)
    if isinstance(payload, HealthyRecipeRequest):
        return build_healthy_prompt(payload)
    return build_image_prompt()


def _is_rate_limited_error(exc: Exception) -> bool:
    if isinstance(exc, google_exceptions.ResourceExhausted):
        return True
    status_code = getattr(exc, "status_code", None) or getattr(exc, "code", None)
    if status_code == 429:
        return True
    return "RESOURCE_EXHAUSTED" in str(exc)


class GeminiRecipeAgent(RecipeModelClient):
    def __init__(self, client: Optional[GeminiClient] = None) -> None:
        self._client = client or GeminiClient(
            api_key=settings.GEMINI_API_KEY.get_secret_value(),
            model_name=settings.GEMINI_MODEL,
        )

    def generate_recipes(
        self,
        payload: GenerationInput,
        image: Optional[CaptureImage] = None,
    ) -> str:
        prompt = build_prompt(payload)
        return self._call(
            prompt,
            RECIPE_SYSTEM_PROMPT,
            image.data if image else None,
            image.mime_type if image else "image/jpeg",
        )

    def analyze_recipe(self, recipe: RecipeRecord) -> str:
        return self._call(build_analysis_prompt(recipe), ANALYSIS_SYSTEM_PROMPT).strip()

    def answer_question(self, question: str, recipe: Optional[RecipeRecord] = None) -> str:
        return self._call(build_question_prompt(question, recipe), NUTRITIONIST_SYSTEM_PROMPT).strip()

    def _call(
        self,
        prompt: str,
        system_prompt_path: Path,
        image: Optional[bytes] = None,
        image_mime_type: str = "image/jpeg",
    ) -> str:
        try:
            return self._client.generate_content(
                prompt,
                system_prompt_path,
                image=image,
                image_mime_type=image_mime_type,
            )
        except ServiceError:
            raise
        except google_exceptions.GoogleAPIError as err:
            if _is_rate_limited_error(err):
                raise RateLimitedError(RATE_LIMIT_MESSAGE) from err
            logger.error("Gemini request failed: %s", err)
            raise ModelUnavailableError(str(err)) from err
        except (ConnectionError, TimeoutError) as err:
            logger.error("Network error calling Gemini: %s", err)
            raise ModelUnavailableError(str(err)) from err
