# snap2spoon/app/infra/storage/base.py
"""
Abstract base class for the local record cache.
The cache exists so the UI can read and write without a network round trip;
it is never the source of truth.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote

from snap2spoon.app.domain.models import RecipeRecord, UserProfileRecord


class LocalStore(ABC):
    """
    Abstract interface for per-owner local persistence.

    Implementations:
    - JsonFileLocalStore: one JSON file per key under a cache directory
    """

    @abstractmethod
    def load_recipes(self, owner_id: str) -> list[RecipeRecord]:
        """
        Read the cached recipes for an owner.

        Returns:
            The cached recipes; empty if nothing is cached or the cache is unreadable
        """
        pass

    @abstractmethod
    def save_recipes(self, owner_id: str, recipes: list[RecipeRecord]) -> None:
        """Replace the cached recipe collection for an owner."""
        pass

    @abstractmethod
    def load_profile(self, owner_id: str) -> Optional[UserProfileRecord]:
        """Read the cached profile, or None."""
        pass

    @abstractmethod
    def save_profile(self, owner_id: str, profile: UserProfileRecord) -> None:
        """Replace the cached profile for an owner."""
        pass

    @staticmethod
    def recipes_key(owner_id: str) -> str:
        return f"recipes_{LocalStore.sanitize_owner(owner_id)}"

    @staticmethod
    def profile_key(owner_id: str) -> str:
        return f"userProfile_{LocalStore.sanitize_owner(owner_id)}"

    @staticmethod
    def sanitize_owner(owner_id: str) -> str:
        # injective: distinct owners never share a file
        return quote(owner_id, safe="")
