from __future__ import annotations

from typing import Optional

import pytest

from snap2spoon.app.domain.errors import RemoteUnavailableError
from snap2spoon.app.domain.models import RecipeRecord, UserProfileRecord
from snap2spoon.app.infra.db.base import ProfileRepository, RecipeRepository
from snap2spoon.app.infra.storage.json_file_store import JsonFileLocalStore


class RecipeRepositoryStub(RecipeRepository):
    def __init__(self) -> None:
        self.rows: dict[str, RecipeRecord] = {}
        self.available = True
        self.insert_calls: list[str] = []
        self.deleted: list[str] = []
        self.upserted: list[str] = []

    def _check(self, operation: str) -> None:
        if not self.available:
            raise RemoteUnavailableError(operation, "connection refused")

    def list_recipes(self, owner_id: str) -> list[RecipeRecord]:
        self._check("list_recipes")
        return [row for row in self.rows.values() if row.user_id == owner_id]

    def insert_recipe(self, recipe: RecipeRecord) -> bool:
        self.insert_calls.append(recipe.id)
        self._check("insert_recipe")
        if recipe.id in self.rows:
            return False
        self.rows[recipe.id] = recipe
        return True

    def upsert_recipe(self, recipe: RecipeRecord) -> None:
        self._check("upsert_recipe")
        self.upserted.append(recipe.id)
        self.rows[recipe.id] = recipe

    def delete_recipe(self, recipe_id: str) -> None:
        self._check("delete_recipe")
        self.deleted.append(recipe_id)
        self.rows.pop(recipe_id, None)


class ProfileRepositoryStub(ProfileRepository):
    def __init__(self, profile: Optional[UserProfileRecord] = None) -> None:
        self.profile = profile
        self.available = True
        self.saved: list[UserProfileRecord] = []

    def get_profile(self, owner_id: str) -> Optional[UserProfileRecord]:
        if not self.available:
            raise RemoteUnavailableError("get_profile", "timeout")
        return self.profile

    def upsert_profile(self, profile: UserProfileRecord) -> UserProfileRecord:
        if not self.available:
            raise RemoteUnavailableError("upsert_profile", "timeout")
        self.saved.append(profile)
        self.profile = profile
        return profile


@pytest.fixture
def recipes_repo() -> RecipeRepositoryStub:
    return RecipeRepositoryStub()


@pytest.fixture
def profiles_repo() -> ProfileRepositoryStub:
    return ProfileRepositoryStub()


@pytest.fixture
def store(tmp_path) -> JsonFileLocalStore:
    return JsonFileLocalStore(tmp_path)


