# snap2spoon/app/services/sync_engine.py
"""
Keeps the local cache and the remote store of recipes and profiles consistent.

Local-first: every mutation is applied to memory and the local cache before
the call returns, then mirrored remotely in a background task. Remote failures
are published as state and never roll back the local change. On refresh the
remote collection replaces the local one wholesale (no per-field merge), so the
last refresh wins when two devices edit the same record.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Iterable, Optional

from starlette.concurrency import run_in_threadpool

from snap2spoon.app.domain.errors import RemoteUnavailableError
from snap2spoon.app.domain.models import RecipeRecord, Session, UserProfileRecord
from snap2spoon.app.domain.state import StatePublisher, SyncState
from snap2spoon.app.infra.db.base import ProfileRepository, RecipeRepository
from snap2spoon.app.infra.storage.base import LocalStore

logger = logging.getLogger(__name__)

REMOTE_FAILURES = (RemoteUnavailableError, ConnectionError, TimeoutError)

_UNSET: Any = object()


class DualStoreSyncEngine:
    def __init__(
        self,
        session: Session,
        recipe_repository: RecipeRepository,
        profile_repository: ProfileRepository,
        local_store: LocalStore,
    ):
        self.session = session
        self._recipe_repo = recipe_repository
        self._profile_repo = profile_repository
        self._local = local_store
        self._recipes: list[RecipeRecord] = []
        self._profile: Optional[UserProfileRecord] = None
        self._refreshing = False
        self._last_error: Optional[str] = None
        self._pending: set[asyncio.Task[None]] = set()
        self._inserts: dict[str, asyncio.Task[None]] = {}
        self._publisher: StatePublisher[SyncState] = StatePublisher(SyncState())

    @property
    def owner(self) -> str:
        return self.session.user_id

    @property
    def recipes(self) -> list[RecipeRecord]:
        return list(self._recipes)

    @property
    def profile(self) -> Optional[UserProfileRecord]:
        return self._profile

    @property
    def state(self) -> SyncState:
        return self._publisher.current

    def subscribe(self, callback):
        return self._publisher.subscribe(callback)

    # Recipes

    def load_local(self, owner: Optional[str] = None) -> list[RecipeRecord]:
        owner = self._check_owner(owner)
        self._recipes = self._local.load_recipes(owner)
        self._profile = self._local.load_profile(owner) or self._profile
        self._publish()
        return self.recipes

    async def refresh_from_remote(self, owner: Optional[str] = None) -> None:
        owner = self._check_owner(owner)
        self._refreshing = True
        self._publish()

        try:
            remote = await run_in_threadpool(self._recipe_repo.list_recipes, owner)
        except Exception as error:
            if isinstance(error, REMOTE_FAILURES):
                logger.warning("Refresh from remote failed for %s: %s", owner, error)
            else:
                logger.exception("Refresh from remote failed unexpectedly for %s", owner)
            self._refreshing = False
            self._report(error, "refresh")
            return

        self._recipes = [recipe for recipe in remote if recipe.user_id == owner]
        await run_in_threadpool(self._local.save_recipes, owner, list(self._recipes))
        self._refreshing = False
        self._last_error = None
        logger.info("Refreshed %d recipe(s) from remote for %s", len(self._recipes), owner)
        self._publish()
        self._on_recipes_changed()

    def commit(self, records: Iterable[RecipeRecord]) -> Optional[asyncio.Task[None]]:
        records = list(records)
        if not records:
            return None
        for record in records:
            if record.user_id != self.owner:
                raise ValueError(f"Recipe {record.id} is not owned by {self.owner}")

        self._recipes.extend(records)
        self._local.save_recipes(self.owner, self._recipes)
        self._publish()
        self._on_recipes_changed()
        task = self._spawn(self._push_new_recipes(records), "commit")
        record_ids = [record.id for record in records]
        for record_id in record_ids:
            self._inserts[record_id] = task
        task.add_done_callback(lambda done: self._forget_inserts(record_ids, done))
        return task

    def update(self, record: RecipeRecord) -> Optional[asyncio.Task[None]]:
        for index, existing in enumerate(self._recipes):
            if existing.id == record.id:
                break
        else:
            logger.warning("Ignoring update for unknown recipe %s", record.id)
            return None

        self._recipes[index] = record
        self._local.save_recipes(self.owner, self._recipes)
        self._publish()
        return self._spawn(self._remote_call("update", self._recipe_repo.upsert_recipe, record), "update")

    def delete(self, record: RecipeRecord) -> Optional[asyncio.Task[None]]:
        remaining = [recipe for recipe in self._recipes if recipe.id != record.id]
        if len(remaining) != len(self._recipes):
            self._recipes = remaining
            self._local.save_recipes(self.owner, self._recipes)
            self._publish()
            self._on_recipes_changed()
        return self._spawn(self._delete_remote(record.id, self._inserts.get(record.id)), "delete")

    def find(self, recipe_id: str) -> Optional[RecipeRecord]:
        return next((recipe for recipe in self._recipes if recipe.id == recipe_id), None)

    # Profile

    async def load_profile(self) -> Optional[UserProfileRecord]:
        owner = self.owner
        cached = self._local.load_profile(owner)
        if cached is not None:
            self._profile = cached
            self._publish()

        try:
            remote = await run_in_threadpool(self._profile_repo.get_profile, owner)
        except Exception as error:
            if isinstance(error, REMOTE_FAILURES):
                logger.warning("Loading profile from remote failed for %s: %s", owner, error)
            else:
                logger.exception("Loading profile from remote failed unexpectedly for %s", owner)
            self._report(error, "load_profile")
            return self._profile

        if remote is None:
            if self._profile is None:
                await self.save_profile(UserProfileRecord(user_id=owner, recipe_count=len(self._recipes)))
            return self._profile

        self._apply_profile_locally(remote)
        self._on_recipes_changed()
        return self._profile

    async def save_profile(self, profile: UserProfileRecord) -> UserProfileRecord:
        if profile.user_id != self.owner:
            raise ValueError(f"Profile {profile.id} is not owned by {self.owner}")
        self._apply_profile_locally(profile)
        await self._push_profile(profile)
        return self._profile or profile

    async def update_profile(
        self,
        *,
        name: Optional[str] = None,
        phone_number: Optional[str] = _UNSET,
        profile_emoji: Optional[str] = None,
    ) -> Optional[UserProfileRecord]:
        if self._profile is None:
            return None

        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if phone_number is not _UNSET:
            changes["phone_number"] = phone_number
        if profile_emoji is not None:
            changes["profile_emoji"] = profile_emoji
        if not changes:
            return self._profile

        return await self.save_profile(self._profile.model_copy(update=changes))

    # Background work

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _spawn(self, coroutine: Awaitable[None], operation: str) -> asyncio.Task[None]:
        task = asyncio.ensure_future(coroutine)
        self._pending.add(task)
        task.add_done_callback(lambda done: self._task_finished(done, operation))
        return task

    def _task_finished(self, task: asyncio.Task[None], operation: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Remote %s failed unexpectedly", operation, exc_info=error)
            self._report(error, operation)

    async def _push_new_recipes(self, records: list[RecipeRecord]) -> None:
        failed = 0
        last_error: Optional[BaseException] = None
        for record in records:
            try:
                created = await run_in_threadpool(self._recipe_repo.insert_recipe, record)
            except REMOTE_FAILURES as error:
                failed += 1
                last_error = error
                continue
            if not created:
                logger.info("Recipe %s already stored remotely", record.id)

        if last_error is not None:
            logger.warning("%d of %d recipe(s) not saved remotely", failed, len(records))
            self._report(last_error, "commit")

    async def _delete_remote(self, recipe_id: str, pending_insert: Optional[asyncio.Task[None]]) -> None:
        # the insert must land first or a later refresh resurrects the record
        if pending_insert is not None and not pending_insert.done():
            await asyncio.wait({pending_insert})
        await self._remote_call("delete", self._recipe_repo.delete_recipe, recipe_id)

    def _forget_inserts(self, record_ids: list[str], task: asyncio.Task[None]) -> None:
        for record_id in record_ids:
            if self._inserts.get(record_id) is task:
                del self._inserts[record_id]

    async def _remote_call(self, operation: str, func, *args: Any) -> None:
        try:
            await run_in_threadpool(func, *args)
        except REMOTE_FAILURES as error:
            logger.warning("Remote %s failed: %s", operation, error)
            self._report(error, operation)

    async def _push_profile(self, profile: UserProfileRecord) -> None:
        try:
            stored = await run_in_threadpool(self._profile_repo.upsert_profile, profile)
        except REMOTE_FAILURES as error:
            logger.warning("Saving profile %s remotely failed: %s", profile.id, error)
            self._report(error, "save_profile")
            return
        self._apply_profile_locally(stored)

    def _apply_profile_locally(self, profile: UserProfileRecord) -> None:
        self._profile = profile
        self._local.save_profile(self.owner, profile)
        self._publish()

    def _on_recipes_changed(self) -> None:
        profile = self._profile
        if profile is None or profile.recipe_count == len(self._recipes):
            return
        updated = profile.model_copy(update={"recipe_count": len(self._recipes)})
        self._apply_profile_locally(updated)
        self._spawn(self._push_profile(updated), "save_profile")

    def _check_owner(self, owner: Optional[str]) -> str:
        owner = owner or self.owner
        if owner != self.owner:
            raise ValueError(f"Sync engine for {self.owner} cannot serve {owner}")
        return owner

    def _report(self, error: BaseException, operation: str) -> None:
        if isinstance(error, RemoteUnavailableError):
            self._last_error = str(error)
        else:
            self._last_error = str(RemoteUnavailableError(operation, str(error)))
        self._publish()

    def _publish(self) -> None:
        self._publisher.publish(
            SyncState(
                recipes=tuple(self._recipes),
                profile=self._profile,
                refreshing=self._refreshing,
                last_error=self._last_error,
            )
        )
