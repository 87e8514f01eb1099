# snap2spoon/app/infra/db/base.py
"""
Abstract interfaces for the remote authoritative store.
Remote methods are blocking; the sync engine runs them in a thread pool.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from snap2spoon.app.domain.models import RecipeRecord, UserProfileRecord


class RecipeRepository(ABC):
    """
    Remote store for recipe records.

    Implementations:
    - SupabaseRecipeRepository: `recipes` table in Supabase
    """

    @abstractmethod
    def list_recipes(self, owner_id: str) -> list[RecipeRecord]:
        """
        Fetch every recipe owned by a user.

        Raises:
            RemoteUnavailableError: If the store cannot be reached
        """
        pass

    @abstractmethod
    def insert_recipe(self, recipe: RecipeRecord) -> bool:
        """
        Create a recipe remotely.

        Returns:
            True if created, False if a record with that id already existed

        Raises:
            RemoteUnavailableError: On any other failure
        """
        pass

    @abstractmethod
    def upsert_recipe(self, recipe: RecipeRecord) -> None:
        """Create or replace a recipe remotely."""
        pass

    @abstractmethod
    def delete_recipe(self, recipe_id: str) -> None:
        """Delete a recipe by id. Deleting a missing record is not an error."""
        pass


class ProfileRepository(ABC):
    """
    Remote store for user profiles (one per user).
    """

    @abstractmethod
    def get_profile(self, owner_id: str) -> Optional[UserProfileRecord]:
        """
        Fetch the user's profile.

        Returns:
            The profile, or None if the user has none yet
        """
        pass

    @abstractmethod
    def upsert_profile(self, profile: UserProfileRecord) -> UserProfileRecord:
        """
        Create or update the profile and return the stored version.
        """
        pass
