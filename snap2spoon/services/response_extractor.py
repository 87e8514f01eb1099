"""
Turns raw model text into validated recipe records.

The model is asked for a bare JSON array but regularly wraps it in prose,
markdown fences or Python-style quoting. Parsing runs an ordered chain of
repair stages, least destructive first, and stops at the first one that yields
schema-valid records. Only structure is repaired; missing fields are never
invented.
"""
from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from snap2spoon.app.config import settings
from snap2spoon.app.domain.errors import MalformedResponseError
from snap2spoon.app.domain.models import RecipeRecord

logger = logging.getLogger(__name__)

_ARRAY_START_RE = re.compile(r"\[\s*\{")
_ARRAY_END_RE = re.compile(r"\}\s*\]")
_CODE_FENCE_RE = re.compile(r"```[ \t]*[A-Za-z0-9_+-]*")

# identity and ownership are assigned by the engine, never taken from the model
_UNTRUSTED_FIELDS = ("id", "userId", "user_id")


class ExtractionStage(str, Enum):
    DIRECT = "direct"
    BOUNDARY_TRIM = "boundary_trim"
    MARKDOWN_STRIP = "markdown_strip"
    QUOTE_REPAIR = "quote_repair"


def trim_to_boundaries(text: str) -> Optional[str]:
    """Return the span from the first `[{` to the last `}]`, inclusive."""
    start = _ARRAY_START_RE.search(text)
    if not start:
        return None

    end_match = None
    for end_match in _ARRAY_END_RE.finditer(text, start.start()):
        pass
    if end_match is None:
        return None

    return text[start.start():end_match.end()]


def strip_markdown_fences(text: str) -> str:
    return _CODE_FENCE_RE.sub("", text)


def repair_quotes_and_brackets(text: str) -> str:
    fixed = text.replace("'", '"').strip()
    if not fixed.startswith("["):
        fixed = f"[{fixed}"
    if not fixed.endswith("]"):
        fixed = f"{fixed}]"
    return fixed


def _decode_items(text: str) -> Optional[list[dict[str, Any]]]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None

    if not isinstance(data, list) or not data:
        return None
    if not all(isinstance(item, dict) for item in data):
        return None
    return data


class ResponseExtractor:
    def __init__(self, snippet_limit: Optional[int] = None) -> None:
        self.snippet_limit = snippet_limit if snippet_limit is not None else settings.RAW_SNIPPET_LIMIT

    def extract(self, raw: str, owner: str) -> list[RecipeRecord]:
        records, _ = self.extract_with_stage(raw, owner)
        return records

    def extract_with_stage(self, raw: str, owner: str) -> tuple[list[RecipeRecord], ExtractionStage]:
        for stage, candidate in self._candidates(raw or ""):
            if candidate is None:
                continue
            records = self._decode(candidate, owner)
            if records is not None:
                logger.debug("Extracted %d recipe(s) at stage %s", len(records), stage.value)
                return records, stage

        snippet = (raw or "")[: self.snippet_limit]
        logger.warning("Model response could not be repaired (length=%d)", len(raw or ""))
        raise MalformedResponseError(snippet)

    def _candidates(self, raw: str):
        yield ExtractionStage.DIRECT, raw
        yield ExtractionStage.BOUNDARY_TRIM, trim_to_boundaries(raw)

        stripped = strip_markdown_fences(raw)
        yield ExtractionStage.MARKDOWN_STRIP, stripped
        yield ExtractionStage.MARKDOWN_STRIP, trim_to_boundaries(stripped)

        trimmed = trim_to_boundaries(stripped) or stripped
        yield ExtractionStage.QUOTE_REPAIR, repair_quotes_and_brackets(trimmed)

    def _decode(self, text: str, owner: str) -> Optional[list[RecipeRecord]]:
        items = _decode_items(text)
        if items is None:
            return None

        records: list[RecipeRecord] = []
        for item in items:
            trusted = {key: value for key, value in item.items() if key not in _UNTRUSTED_FIELDS}
            try:
                records.append(RecipeRecord.model_validate({**trusted, "userId": owner}))
            except ValidationError:
                return None
        return records
