from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from snap2spoon.app.config import settings
from snap2spoon.app.domain.models import RecipeRecord, UserProfileRecord
from snap2spoon.app.infra.storage.base import LocalStore

logger = logging.getLogger(__name__)


class JsonFileLocalStore(LocalStore):
    def __init__(self, cache_dir: Optional[Path | str] = None):
        self.cache_dir = Path(cache_dir or settings.LOCAL_CACHE_DIR)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def _read(self, key: str) -> Any:
        path = self._path(key)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as error:
            logger.warning("Local cache %s is unreadable, treating as empty: %s", path, error)
            return None

    def _write(self, key: str, payload: Any) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as error:
            logger.error("Failed to write local cache %s: %s", path, error)

    def load_recipes(self, owner_id: str) -> list[RecipeRecord]:
        data = self._read(self.recipes_key(owner_id))
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Local recipe cache for %s is not a list, treating as empty", owner_id)
            return []

        try:
            recipes = [RecipeRecord.model_validate(item) for item in data]
        except ValidationError as error:
            logger.warning("Local recipe cache for %s is corrupted, treating as empty: %s", owner_id, error)
            return []

        return [recipe for recipe in recipes if recipe.user_id == owner_id]

    def save_recipes(self, owner_id: str, recipes: list[RecipeRecord]) -> None:
        self._write(self.recipes_key(owner_id), [recipe.to_json_dict() for recipe in recipes])

    def load_profile(self, owner_id: str) -> Optional[UserProfileRecord]:
        data = self._read(self.profile_key(owner_id))
        if data is None:
            return None

        try:
            profile = UserProfileRecord.model_validate(data)
        except ValidationError as error:
            logger.warning("Local profile cache for %s is corrupted: %s", owner_id, error)
            return None

        return profile if profile.user_id == owner_id else None

    def save_profile(self, owner_id: str, profile: UserProfileRecord) -> None:
        self._write(self.profile_key(owner_id), profile.to_json_dict())
