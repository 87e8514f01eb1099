# snap2spoon/app/domain/state.py
"""
Published state for the engine components.

Each component owns one state object and pushes an immutable snapshot to its
subscribers on every transition. Subscribers are plain callables taking the
snapshot; `subscribe` returns a callable that removes the subscription.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, TypeVar

from snap2spoon.app.domain.models import (
    GenerationError,
    GenerationKind,
    GenerationPhase,
    RecipeRecord,
    UserProfileRecord,
)

logger = logging.getLogger(__name__)

S = TypeVar("S")


@dataclass(frozen=True)
class OrchestratorState:
    phase: GenerationPhase = GenerationPhase.IDLE
    loading: bool = False
    request_kind: Optional[GenerationKind] = None
    last_error: Optional[GenerationError] = None
    last_result: tuple[RecipeRecord, ...] = ()


@dataclass(frozen=True)
class SyncState:
    recipes: tuple[RecipeRecord, ...] = ()
    profile: Optional[UserProfileRecord] = None
    refreshing: bool = False
    last_error: Optional[str] = None


@dataclass
class StatePublisher(Generic[S]):
    current: S
    _subscribers: list[Callable[[S], None]] = field(default_factory=list)

    def subscribe(self, callback: Callable[[S], None]) -> Callable[[], None]:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return _unsubscribe

    def publish(self, state: S) -> None:
        self.current = state
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception:
                logger.exception("State subscriber %r failed", callback)
