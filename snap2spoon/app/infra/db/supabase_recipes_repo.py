from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError
from supabase import Client, create_client

from snap2spoon.app.domain.errors import RemoteUnavailableError
from snap2spoon.app.domain.models import RecipeRecord, UserProfileRecord
from snap2spoon.app.infra.db.base import ProfileRepository, RecipeRepository

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_CODE = "23505"
REMOTE_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)


def _create_supabase_client() -> Client:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY required")
    return create_client(url, key)


def is_already_exists_error(error: Exception) -> bool:
    if getattr(error, "code", None) == UNIQUE_VIOLATION_CODE:
        return True
    message = str(error).lower()
    return "already exists" in message or "duplicate key" in message


def _rows(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    if isinstance(data, dict):
        return [data]
    return []


class SupabaseRecipeRepository(RecipeRepository):
    TABLE_NAME = "recipes"

    def __init__(self, client: Client | None = None):
        self._client = client or _create_supabase_client()
        logger.info("SupabaseRecipeRepository initialized")

    def list_recipes(self, owner_id: str) -> list[RecipeRecord]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("userId", owner_id)
                .execute()
            )
        except REMOTE_ERRORS as error:
            logger.error("Remote error listing recipes for %s: %s", owner_id, error)
            raise RemoteUnavailableError("list_recipes", str(error)) from error

        recipes: list[RecipeRecord] = []
        for row in _rows(result.data):
            try:
                recipes.append(RecipeRecord.model_validate(row))
            except ValidationError as error:
                logger.warning("Skipping unreadable remote recipe %s: %s", row.get("id"), error)
        return recipes

    def insert_recipe(self, recipe: RecipeRecord) -> bool:
        try:
            self._client.table(self.TABLE_NAME).insert(recipe.to_json_dict()).execute()
        except REMOTE_ERRORS as error:
            if is_already_exists_error(error):
                logger.info("Recipe %s already exists remotely, skipping duplicate save", recipe.id)
                return False
            logger.error("Remote error saving recipe %s: %s", recipe.id, error)
            raise RemoteUnavailableError("insert_recipe", str(error)) from error

        logger.info("Saved recipe %s remotely", recipe.id)
        return True

    def upsert_recipe(self, recipe: RecipeRecord) -> None:
        try:
            self._client.table(self.TABLE_NAME).upsert(recipe.to_json_dict()).execute()
        except REMOTE_ERRORS as error:
            logger.error("Remote error updating recipe %s: %s", recipe.id, error)
            raise RemoteUnavailableError("upsert_recipe", str(error)) from error

    def delete_recipe(self, recipe_id: str) -> None:
        try:
            self._client.table(self.TABLE_NAME).delete().eq("id", recipe_id).execute()
        except REMOTE_ERRORS as error:
            logger.error("Remote error deleting recipe %s: %s", recipe_id, error)
            raise RemoteUnavailableError("delete_recipe", str(error)) from error


class SupabaseProfileRepository(ProfileRepository):
    TABLE_NAME = "user_profiles"

    def __init__(self, client: Client | None = None):
        self._client = client or _create_supabase_client()

    def get_profile(self, owner_id: str) -> Optional[UserProfileRecord]:
        try:
            result = (
                self._client.table(self.TABLE_NAME)
                .select("*")
                .eq("userId", owner_id)
                .limit(1)
                .execute()
            )
        except REMOTE_ERRORS as error:
            logger.error("Remote error fetching profile for %s: %s", owner_id, error)
            raise RemoteUnavailableError("get_profile", str(error)) from error

        rows = _rows(result.data)
        if not rows:
            return None
        try:
            return UserProfileRecord.model_validate(rows[0])
        except ValidationError as error:
            # a default profile must not overwrite the unreadable row
            logger.error("Unreadable remote profile %s for %s: %s", rows[0].get("id"), owner_id, error)
            raise RemoteUnavailableError("get_profile", "unreadable profile row") from error

    def upsert_profile(self, profile: UserProfileRecord) -> UserProfileRecord:
        try:
            result = self._client.table(self.TABLE_NAME).upsert(profile.to_json_dict()).execute()
        except REMOTE_ERRORS as error:
            logger.error("Remote error saving profile %s: %s", profile.id, error)
            raise RemoteUnavailableError("upsert_profile", str(error)) from error

        rows = _rows(result.data)
        if not rows:
            return profile
        try:
            return UserProfileRecord.model_validate(rows[0])
        except ValidationError as error:
            logger.warning("Remote returned an unreadable profile %s, keeping local copy: %s", profile.id, error)
            return profile
