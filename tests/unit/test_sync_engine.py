from __future__ import annotations

import asyncio
import threading
import time
from unittest.mock import MagicMock

import pytest

from snap2spoon.app.domain.models import (
    DEFAULT_PROFILE_EMOJI,
    RecipeRecord,
    Session,
    UserProfileRecord,
)
from snap2spoon.app.infra.db.supabase_recipes_repo import SupabaseProfileRepository
from snap2spoon.app.services.sync_engine import DualStoreSyncEngine

OWNER = "user-1"


def _recipe(name: str, owner: str = OWNER, **overrides) -> RecipeRecord:
    return RecipeRecord(
        user_id=owner,
        name=name,
        duration="10 min",
        difficulty="Easy",
        ingredients=["egg"],
        instructions=["cook"],
        **overrides,
    )


@pytest.fixture
def engine(recipes_repo, profiles_repo, store) -> DualStoreSyncEngine:
    return DualStoreSyncEngine(Session(user_id=OWNER), recipes_repo, profiles_repo, store)


class TestCommit:
    def test_commit_then_load_local_with_remote_up(self, engine, recipes_repo, store) -> None:
        records = [_recipe("Omelette"), _recipe("Pancakes")]

        async def scenario():
            engine.commit(records)
            loaded = engine.load_local(OWNER)
            await engine.drain()
            return loaded

        loaded = asyncio.run(scenario())
        assert [r.id for r in loaded] == [r.id for r in records]
        assert set(recipes_repo.rows) == {r.id for r in records}

    def test_commit_then_load_local_with_remote_down(self, engine, recipes_repo, store) -> None:
        recipes_repo.available = False
        records = [_recipe("Omelette")]

        async def scenario():
            engine.commit(records)
            loaded = engine.load_local(OWNER)
            await engine.drain()
            return loaded

        loaded = asyncio.run(scenario())
        assert [r.name for r in loaded] == ["Omelette"]
        assert [r.name for r in store.load_recipes(OWNER)] == ["Omelette"]
        assert engine.state.last_error is not None
        assert "insert_recipe" in engine.state.last_error

    def test_commits_apply_in_call_order(self, engine) -> None:
        first, second, third = _recipe("A"), _recipe("B"), _recipe("C")

        async def scenario():
            engine.commit([first])
            engine.commit([second, third])
            await engine.drain()

        asyncio.run(scenario())
        assert [r.name for r in engine.recipes] == ["A", "B", "C"]

    def test_one_remote_batch_per_commit(self, engine, recipes_repo) -> None:
        async def scenario():
            task = engine.commit([_recipe("A"), _recipe("B")])
            await engine.drain()
            return task

        task = asyncio.run(scenario())
        assert task is not None and task.done()
        assert len(recipes_repo.insert_calls) == 2

    def test_empty_commit_does_nothing(self, engine, recipes_repo) -> None:
        async def scenario():
            return engine.commit([])

        assert asyncio.run(scenario()) is None
        assert recipes_repo.insert_calls == []

    def test_already_existing_record_counts_as_success(self, engine, recipes_repo) -> None:
        record = _recipe("Waffles")
        recipes_repo.rows[record.id] = record

        async def scenario():
            engine.commit([record])
            await engine.drain()

        asyncio.run(scenario())
        assert engine.state.last_error is None

    def test_foreign_owner_is_refused(self, engine) -> None:
        async def scenario():
            engine.commit([_recipe("Intruder", owner="someone-else")])

        with pytest.raises(ValueError):
            asyncio.run(scenario())
        assert engine.recipes == []


class TestRefresh:
    def test_replaces_collection_wholesale(self, engine, recipes_repo, store) -> None:
        local_only = _recipe("Local only")
        remote = _recipe("Remote")
        recipes_repo.rows[remote.id] = remote
        store.save_recipes(OWNER, [local_only])

        async def scenario():
            engine.load_local()
            await engine.refresh_from_remote(OWNER)

        asyncio.run(scenario())
        assert [r.name for r in engine.recipes] == ["Remote"]
        assert [r.name for r in store.load_recipes(OWNER)] == ["Remote"]
        assert engine.state.refreshing is False

    def test_failure_keeps_collection_and_sets_error(self, engine, recipes_repo) -> None:
        committed = _recipe("Kept")

        async def scenario():
            engine.commit([committed])
            await engine.drain()
            recipes_repo.available = False
            await engine.refresh_from_remote(OWNER)

        asyncio.run(scenario())
        assert [r.id for r in engine.recipes] == [committed.id]
        assert engine.state.last_error is not None
        assert "list_recipes" in engine.state.last_error
        assert engine.state.refreshing is False

    def test_success_clears_previous_error(self, engine, recipes_repo) -> None:
        async def scenario():
            recipes_repo.available = False
            await engine.refresh_from_remote()
            recipes_repo.available = True
            await engine.refresh_from_remote()

        asyncio.run(scenario())
        assert engine.state.last_error is None

    def test_unexpected_fetch_error_is_published(self, engine, recipes_repo, monkeypatch) -> None:
        kept = _recipe("Kept")

        def broken(owner_id):
            raise ValueError("bad payload")

        async def scenario():
            engine.commit([kept])
            await engine.drain()
            monkeypatch.setattr(recipes_repo, "list_recipes", broken)
            await engine.refresh_from_remote()

        asyncio.run(scenario())
        assert [r.id for r in engine.recipes] == [kept.id]
        assert engine.state.refreshing is False
        assert "refresh" in engine.state.last_error
        assert "bad payload" in engine.state.last_error

    def test_local_write_runs_off_the_event_loop(self, engine, recipes_repo, store, monkeypatch) -> None:
        remote = _recipe("Remote")
        recipes_repo.rows[remote.id] = remote
        writer_threads = []
        real_save = store.save_recipes

        def recording_save(owner_id, recipes):
            writer_threads.append(threading.current_thread())
            real_save(owner_id, recipes)

        monkeypatch.setattr(store, "save_recipes", recording_save)

        asyncio.run(engine.refresh_from_remote())

        assert writer_threads and writer_threads[0] is not threading.main_thread()
        assert [r.name for r in store.load_recipes(OWNER)] == ["Remote"]

    def test_other_owner_is_refused(self, engine) -> None:
        with pytest.raises(ValueError):
            asyncio.run(engine.refresh_from_remote("someone-else"))


class TestDeleteAndUpdate:
    def test_delete_is_local_first(self, engine, recipes_repo) -> None:
        keep, drop = _recipe("Keep"), _recipe("Drop")

        async def scenario():
            engine.commit([keep, drop])
            await engine.drain()
            recipes_repo.available = False
            engine.delete(drop)
            names = [r.name for r in engine.load_local()]
            await engine.drain()
            return names

        names = asyncio.run(scenario())
        assert names == ["Keep"]
        assert drop.id in recipes_repo.rows
        assert engine.state.last_error is not None

    def test_delete_reaches_remote(self, engine, recipes_repo) -> None:
        record = _recipe("Gone")

        async def scenario():
            engine.commit([record])
            engine.delete(record)
            await engine.drain()

        asyncio.run(scenario())
        assert recipes_repo.deleted == [record.id]
        assert engine.recipes == []

    def test_delete_waits_for_pending_insert(self, engine, recipes_repo, monkeypatch) -> None:
        record = _recipe("Short lived")
        real_insert = recipes_repo.insert_recipe

        def slow_insert(recipe):
            time.sleep(0.05)
            return real_insert(recipe)

        monkeypatch.setattr(recipes_repo, "insert_recipe", slow_insert)

        async def scenario():
            engine.commit([record])
            engine.delete(record)
            await engine.drain()
            await engine.refresh_from_remote()

        asyncio.run(scenario())
        assert recipes_repo.insert_calls == [record.id]
        assert recipes_repo.deleted == [record.id]
        assert record.id not in recipes_repo.rows
        assert engine.recipes == []

    def test_update_replaces_by_id(self, engine, recipes_repo) -> None:
        record = _recipe("Curry")

        async def scenario():
            engine.commit([record])
            engine.update(record.model_copy(update={"nutritional_info": {"calories": "500"}}))
            await engine.drain()

        asyncio.run(scenario())
        assert engine.find(record.id).nutritional_info == {"calories": "500"}
        assert recipes_repo.upserted == [record.id]

    def test_update_unknown_record_is_ignored(self, engine, recipes_repo) -> None:
        async def scenario():
            return engine.update(_recipe("Ghost"))

        assert asyncio.run(scenario()) is None
        assert recipes_repo.upserted == []


class TestProfile:
    def test_creates_default_profile_when_missing(self, engine, profiles_repo) -> None:
        profile = asyncio.run(engine.load_profile())

        assert profile is not None
        assert profile.user_id == OWNER
        assert profile.profile_emoji == DEFAULT_PROFILE_EMOJI
        assert profiles_repo.saved == [profile]

    def test_loads_existing_profile(self, engine, profiles_repo, store) -> None:
        profiles_repo.profile = UserProfileRecord(user_id=OWNER, name="Ana", recipe_count=0)

        profile = asyncio.run(engine.load_profile())

        assert profile.name == "Ana"
        assert store.load_profile(OWNER).name == "Ana"
        assert profiles_repo.saved == []

    def test_cached_profile_survives_remote_failure(self, engine, profiles_repo, store) -> None:
        store.save_profile(OWNER, UserProfileRecord(user_id=OWNER, name="Cached"))
        profiles_repo.available = False

        profile = asyncio.run(engine.load_profile())

        assert profile.name == "Cached"
        assert engine.state.last_error is not None

    def test_unreadable_remote_profile_is_reported(self, recipes_repo, store) -> None:
        client = MagicMock()
        query = client.table.return_value.select.return_value.eq.return_value.limit.return_value
        query.execute.return_value.data = [{"id": "P1", "userId": None}]
        store.save_profile(OWNER, UserProfileRecord(user_id=OWNER, name="Cached"))
        engine = DualStoreSyncEngine(
            Session(user_id=OWNER), recipes_repo, SupabaseProfileRepository(client), store
        )

        profile = asyncio.run(engine.load_profile())

        assert profile.name == "Cached"
        assert "get_profile" in engine.state.last_error
        client.table.return_value.upsert.assert_not_called()

    def test_unexpected_profile_error_is_reported(self, engine, profiles_repo, monkeypatch) -> None:
        def broken(owner_id):
            raise KeyError("userId")

        monkeypatch.setattr(profiles_repo, "get_profile", broken)

        assert asyncio.run(engine.load_profile()) is None
        assert "load_profile" in engine.state.last_error

    def test_update_profile_fields(self, engine, profiles_repo) -> None:
        profiles_repo.profile = UserProfileRecord(user_id=OWNER, name="Ana", phone_number="555")

        async def scenario():
            await engine.load_profile()
            return await engine.update_profile(name="Bea", phone_number=None, profile_emoji="🥗")

        profile = asyncio.run(scenario())
        assert (profile.name, profile.phone_number, profile.profile_emoji) == ("Bea", None, "🥗")
        assert profiles_repo.profile.name == "Bea"

    def test_recipe_count_follows_collection(self, engine, profiles_repo) -> None:
        profiles_repo.profile = UserProfileRecord(user_id=OWNER)
        record = _recipe("Tacos")

        async def scenario():
            await engine.load_profile()
            engine.commit([record, _recipe("Nachos")])
            await engine.drain()
            after_commit = profiles_repo.profile.recipe_count
            engine.delete(record)
            await engine.drain()
            return after_commit

        after_commit = asyncio.run(scenario())
        assert after_commit == 2
        assert engine.profile.recipe_count == 1
        assert profiles_repo.profile.recipe_count == 1

    def test_recipe_count_saved_only_on_change(self, engine, profiles_repo) -> None:
        profiles_repo.profile = UserProfileRecord(user_id=OWNER, recipe_count=0)

        async def scenario():
            await engine.load_profile()
            await engine.refresh_from_remote()
            await engine.drain()

        asyncio.run(scenario())
        assert profiles_repo.saved == []


class TestPublishedState:
    def test_subscribers_see_each_transition(self, engine) -> None:
        seen = []
        unsubscribe = engine.subscribe(lambda state: seen.append(len(state.recipes)))

        async def scenario():
            engine.commit([_recipe("One")])
            await engine.drain()
            unsubscribe()
            engine.commit([_recipe("Two")])
            await engine.drain()

        asyncio.run(scenario())
        assert seen and seen[-1] == 1
        assert len(engine.state.recipes) == 2
