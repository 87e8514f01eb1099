from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import google.generativeai as genai

from snap2spoon.services.errors import (
    EmptyModelResponseError,
    GeminiConfigurationError,
    GeminiPromptError,
)


class GeminiClient:
    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash") -> None:
        self.api_key = api_key
        self.model_name = model_name
        self._configure_api()

    def _configure_api(self) -> None:
        if not self.api_key:
            raise GeminiConfigurationError("Missing Google API key.")
        genai.configure(api_key=self.api_key)

    def _load_system_prompt(self, file_path: Path) -> str:
        try:
            return file_path.read_text(encoding="utf-8")
        except FileNotFoundError as not_found_error:
            raise GeminiPromptError(f"Prompt file not found: {file_path}") from not_found_error
        except (OSError, IOError) as io_error:
            raise GeminiPromptError(f"Unable to read prompt file: {io_error}") from io_error

    def _serialize_prompt(self, user_prompt: str | dict[str, Any]) -> str:
        if isinstance(user_prompt, str):
            return user_prompt
        try:
            return json.dumps(user_prompt, indent=2, ensure_ascii=False)
        except TypeError:
            return str(user_prompt)

    def generate_content(
        self,
        user_prompt: str | dict[str, Any],
        system_prompt_path: Path,
        image: bytes | None = None,
        image_mime_type: str = "image/jpeg",
    ) -> str:
        system_instruction = self._load_system_prompt(system_prompt_path)
        model = genai.GenerativeModel(
            model_name=self.model_name,
            system_instruction=system_instruction,
        )

        payload: list[Any] = [self._serialize_prompt(user_prompt)]
        if image:
            payload.append({"mime_type": image_mime_type, "data": image})

        response = model.generate_content(payload)
        try:
            text = response.text
        except ValueError as blocked:
            # raised by the SDK when the candidate has no text part
            raise EmptyModelResponseError() from blocked
        if not text:
            raise EmptyModelResponseError()
        return text
