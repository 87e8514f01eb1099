"""
Best-effort extraction of structured nutrition data from a free-text analysis.

These are heuristics over model prose. Every function degrades to an empty
result instead of raising.
"""
from __future__ import annotations

import re

_MACRO_SECTION_RE = re.compile(
    r"(ESTIMATED MACRONUTRIENTS|MACRONUTRIENTS|NUTRITIONAL INFORMATION)", re.IGNORECASE
)
_MACRO_SECTION_END_RE = re.compile(
    r"(NUTRITIONAL STRENGTHS|STRENGTHS|AREAS FOR IMPROVEMENT)", re.IGNORECASE
)
_STRENGTHS_SECTION_RE = re.compile(
    r"(NUTRITIONAL STRENGTHS|STRENGTHS|HEALTH BENEFITS)", re.IGNORECASE
)
_STRENGTHS_SECTION_END_RE = re.compile(
    r"(AREAS FOR IMPROVEMENT|IMPROVEMENTS|QUICK TIPS)", re.IGNORECASE
)
_BULLET_PREFIX_RE = re.compile(r"^\s*(-|•|\*)\s*")

_SECTION_PATTERNS = (
    ("calories", re.compile(r"calories\s*:.*?\d+", re.IGNORECASE)),
    ("protein", re.compile(r"protein\s*:.*?\d+\s*g", re.IGNORECASE)),
    ("carbs", re.compile(r"(carbs|carbohydrates)\s*:.*?\d+\s*g", re.IGNORECASE)),
    ("fat", re.compile(r"fat\s*:.*?\d+\s*g", re.IGNORECASE)),
    ("fiber", re.compile(r"fiber\s*:.*?\d+\s*g", re.IGNORECASE)),
)

_GENERIC_CALORIES_RE = re.compile(r"\d+\s*(calories|kcal)")
_GENERIC_NUTRIENTS = ("protein", "carbs", "fat", "fiber")


def _section(text: str, start_re: re.Pattern[str], end_re: re.Pattern[str]) -> str | None:
    start = start_re.search(text)
    if not start:
        return None
    section = text[start.start():]
    # skip the header itself so a header word is not taken as the section end
    end = end_re.search(section, start.end() - start.start())
    return section[: end.start()] if end else section


def extract_nutritional_info(analysis: str) -> dict[str, str]:
    if not analysis:
        return {}

    info: dict[str, str] = {}
    macro_section = _section(analysis, _MACRO_SECTION_RE, _MACRO_SECTION_END_RE)
    if macro_section:
        for key, pattern in _SECTION_PATTERNS:
            match = pattern.search(macro_section)
            if match:
                info[key] = match.group(0).strip()

    if info:
        return info

    calories = _GENERIC_CALORIES_RE.search(analysis)
    if calories:
        info["calories"] = calories.group(0).strip()

    for nutrient in _GENERIC_NUTRIENTS:
        match = re.search(rf"\d+\s*g\s*(of\s*)?{nutrient}", analysis, re.IGNORECASE)
        if match:
            info[nutrient] = match.group(0).strip()

    return info


def extract_health_benefits(analysis: str) -> list[str]:
    if not analysis:
        return []

    strengths = _section(analysis, _STRENGTHS_SECTION_RE, _STRENGTHS_SECTION_END_RE)
    if not strengths:
        return []

    benefits: list[str] = []
    for line in strengths.splitlines():
        if "-" not in line and "•" not in line:
            continue
        cleaned = _BULLET_PREFIX_RE.sub("", line.strip()).strip()
        if cleaned:
            benefits.append(cleaned)
    return benefits
