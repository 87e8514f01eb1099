from __future__ import annotations

from snap2spoon.services.nutrition import extract_health_benefits, extract_nutritional_info

ANALYSIS = """OVERALL ASSESSMENT
A balanced plate with lean protein.

ESTIMATED MACRONUTRIENTS
- Calories: about 450
- Protein: 32 g
- Carbohydrates: 40g
- Fat: 14 g
- Fiber: 8 g

NUTRITIONAL STRENGTHS
- High in lean protein
• Good source of fiber

AREAS FOR IMPROVEMENT
- Reduce added salt
"""


class TestExtractNutritionalInfo:
    def test_reads_macronutrient_section(self) -> None:
        info = extract_nutritional_info(ANALYSIS)

        assert info["calories"] == "Calories: about 450"
        assert info["protein"] == "Protein: 32 g"
        assert info["carbs"] == "Carbohydrates: 40g"
        assert info["fat"] == "Fat: 14 g"
        assert info["fiber"] == "Fiber: 8 g"

    def test_falls_back_to_generic_patterns(self) -> None:
        text = "This dish has roughly 520 kcal with 25g protein and 10 g of fat."
        info = extract_nutritional_info(text)

        assert info == {"calories": "520 kcal", "protein": "25g protein", "fat": "10 g of fat"}

    def test_degrades_to_empty(self) -> None:
        assert extract_nutritional_info("") == {}
        assert extract_nutritional_info("Tastes great, no numbers here.") == {}


class TestExtractHealthBenefits:
    def test_reads_bullets_from_strengths_section(self) -> None:
        assert extract_health_benefits(ANALYSIS) == [
            "High in lean protein",
            "Good source of fiber",
        ]

    def test_degrades_to_empty(self) -> None:
        assert extract_health_benefits("") == []
        assert extract_health_benefits("No sections at all") == []
