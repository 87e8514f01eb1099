from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest
from google.api_core import exceptions as google_exceptions

from snap2spoon.app.domain.models import (
    CameraCapture,
    CaptureImage,
    HealthyRecipeRequest,
    IngredientList,
    RecipeRecord,
)
from snap2spoon.services.errors import ModelUnavailableError, RateLimitedError
from snap2spoon.services.recipe_agent import (
    ANALYSIS_SYSTEM_PROMPT,
    NUTRITIONIST_SYSTEM_PROMPT,
    RECIPE_SYSTEM_PROMPT,
    GeminiRecipeAgent,
    build_analysis_prompt,
    build_ingredient_prompt,
    build_prompt,
)


class GeminiClientStub:
    def __init__(self, response: str = "[]", error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def generate_content(self, user_prompt, system_prompt_path: Path, image=None, image_mime_type="image/jpeg") -> str:
        self.calls.append(
            {
                "prompt": user_prompt,
                "system": system_prompt_path,
                "image": image,
                "mime": image_mime_type,
            }
        )
        if self.error is not None:
            raise self.error
        return self.response


class TestPrompts:
    def test_ingredient_prompt_lists_items_and_allergies(self) -> None:
        prompt = build_ingredient_prompt(IngredientList.of(["eggs", " ", "spinach"], allergies="peanuts"))

        assert "eggs, spinach" in prompt
        assert "peanuts" in prompt

    def test_ingredient_prompt_without_allergies(self) -> None:
        prompt = build_ingredient_prompt(IngredientList.of(["eggs"]))
        assert "allergies" not in prompt

    def test_healthy_prompt_asks_for_nutrition(self) -> None:
        prompt = build_prompt(HealthyRecipeRequest(dietary_preferences="low sodium"))

        assert "three" in prompt
        assert "low sodium" in prompt
        assert "nutritionalInfo" in prompt

    def test_image_prompt(self) -> None:
        assert "receipt" in build_prompt(CameraCapture())
        assert build_prompt(CaptureImage(data=b"x")) == build_prompt(CameraCapture())

    def test_analysis_prompt(self) -> None:
        recipe = RecipeRecord(
            name="Soup",
            duration="10",
            difficulty="Easy",
            ingredients=["water", "salt"],
            instructions=["boil"],
        )
        prompt = build_analysis_prompt(recipe)
        assert "Soup" in prompt
        assert "water, salt" in prompt

    def test_system_prompts_ship_with_package(self) -> None:
        assert RECIPE_SYSTEM_PROMPT.is_file()
        assert ANALYSIS_SYSTEM_PROMPT.is_file()
        assert NUTRITIONIST_SYSTEM_PROMPT.is_file()


class TestGeminiRecipeAgent:
    def test_generate_with_image(self) -> None:
        client = GeminiClientStub(response='[{"name": "x"}]')
        agent = GeminiRecipeAgent(client=client)
        image = CaptureImage(data=b"\xff\xd8", mime_type="image/png")

        raw = agent.generate_recipes(image, image)

        assert raw == '[{"name": "x"}]'
        assert client.calls[0]["system"] == RECIPE_SYSTEM_PROMPT
        assert client.calls[0]["image"] == b"\xff\xd8"
        assert client.calls[0]["mime"] == "image/png"

    def test_generate_without_image(self) -> None:
        client = GeminiClientStub()
        GeminiRecipeAgent(client=client).generate_recipes(IngredientList.of(["rice"]))

        assert client.calls[0]["image"] is None

    def test_analysis_uses_analysis_prompt(self) -> None:
        client = GeminiClientStub(response="  ESTIMATED MACRONUTRIENTS ...  ")
        recipe = RecipeRecord(name="Soup", duration="10", difficulty="Easy", ingredients=[], instructions=[])

        analysis = GeminiRecipeAgent(client=client).analyze_recipe(recipe)

        assert analysis == "ESTIMATED MACRONUTRIENTS ..."
        assert client.calls[0]["system"] == ANALYSIS_SYSTEM_PROMPT

    def test_resource_exhausted_is_rate_limited(self) -> None:
        client = GeminiClientStub(error=google_exceptions.ResourceExhausted("quota"))

        with pytest.raises(RateLimitedError):
            GeminiRecipeAgent(client=client).generate_recipes(IngredientList.of(["rice"]))

    def test_other_api_errors_are_unavailable(self) -> None:
        client = GeminiClientStub(error=google_exceptions.ServiceUnavailable("down"))

        with pytest.raises(ModelUnavailableError):
            GeminiRecipeAgent(client=client).generate_recipes(IngredientList.of(["rice"]))

    def test_network_errors_are_unavailable(self) -> None:
        client = GeminiClientStub(error=ConnectionError("reset"))

        with pytest.raises(ModelUnavailableError) as exc_info:
            GeminiRecipeAgent(client=client).generate_recipes(IngredientList.of(["rice"]))
        assert exc_info.value.reason == "reset"

    def test_question_uses_nutritionist_prompt(self) -> None:
        client = GeminiClientStub(response=" Yes, in moderation. ")
        recipe = RecipeRecord(name="Soup", duration="10", difficulty="Easy", ingredients=["lentils"], instructions=[])

        answer = GeminiRecipeAgent(client=client).answer_question("Is it filling?", recipe)

        assert answer == "Yes, in moderation."
        assert client.calls[0]["system"] == NUTRITIONIST_SYSTEM_PROMPT
        assert "Question: Is it filling?" in client.calls[0]["prompt"]
        assert "lentils" in client.calls[0]["prompt"]
