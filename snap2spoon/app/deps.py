# snap2spoon/app/deps.py (singletons exposed as dependencies)

from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from snap2spoon.app.config import settings
from snap2spoon.app.domain.models import Session
from snap2spoon.app.infra.camera.opencv_backend import OpenCVCameraBackend
from snap2spoon.app.infra.db.supabase_recipes_repo import (
    SupabaseProfileRepository,
    SupabaseRecipeRepository,
)
from snap2spoon.app.infra.storage.base import LocalStore
from snap2spoon.app.infra.storage.json_file_store import JsonFileLocalStore
from snap2spoon.app.services.capture_bridge import CaptureBridge
from snap2spoon.app.services.generation_orchestrator import GenerationOrchestrator
from snap2spoon.app.services.nutrition_service import NutritionService
from snap2spoon.app.services.sync_engine import DualStoreSyncEngine
from snap2spoon.services.recipe_agent import GeminiRecipeAgent, RecipeModelClient
from snap2spoon.services.response_extractor import ResponseExtractor

logger = logging.getLogger(__name__)

_client: Client | None = None
_local_store: LocalStore | None = None
_model_client: RecipeModelClient | None = None
_capture_bridge: CaptureBridge | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_local_store() -> LocalStore:
    global _local_store
    if _local_store is None:
        _local_store = JsonFileLocalStore(settings.LOCAL_CACHE_DIR)
    return _local_store


def get_model_client() -> RecipeModelClient:
    global _model_client
    if _model_client is None:
        _model_client = GeminiRecipeAgent()
    return _model_client


def get_capture_bridge() -> CaptureBridge:
    global _capture_bridge
    if _capture_bridge is None:
        _capture_bridge = CaptureBridge(OpenCVCameraBackend())
    return _capture_bridge


auth_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
    supa: Client = Depends(get_supabase),
) -> CurrentUser:
    """
    Receives Authorization: Bearer <access_token> from Supabase,
    validates it with GoTrue and returns the minimal user data.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    token = cred.credentials
    try:
        res = supa.auth.get_user(token)
        user = res.user
        if not user:
            raise HTTPException(status_code=401, detail="Invalid token")

        # metadata may carry 'name'
        name = None
        meta = getattr(user, "user_metadata", None) or {}
        if isinstance(meta, dict):
            name = meta.get("name")

        return CurrentUser(id=str(user.id), email=user.email, name=name)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid/expired token")


def get_session(user: CurrentUser = Depends(get_current_user)) -> Session:
    return Session(user_id=str(user.id))


class SessionRegistry:
    """One sync engine and one orchestrator per signed-in user."""

    def __init__(self) -> None:
        self._engines: dict[str, DualStoreSyncEngine] = {}
        self._orchestrators: dict[str, GenerationOrchestrator] = {}

    def sync_engine_for(self, session: Session, supa: Client, local_store: LocalStore) -> DualStoreSyncEngine:
        engine = self._engines.get(session.user_id)
        if engine is None:
            engine = DualStoreSyncEngine(
                session,
                SupabaseRecipeRepository(supa),
                SupabaseProfileRepository(supa),
                local_store,
            )
            engine.load_local()
            self._engines[session.user_id] = engine
            logger.info("Created sync engine for %s", session.user_id)
        return engine

    def orchestrator_for(
        self,
        session: Session,
        model_client: RecipeModelClient,
        sync_engine: DualStoreSyncEngine,
        capture_bridge: CaptureBridge | None,
    ) -> GenerationOrchestrator:
        orchestrator = self._orchestrators.get(session.user_id)
        if orchestrator is None:
            orchestrator = GenerationOrchestrator(
                session,
                model_client,
                sync_engine,
                extractor=ResponseExtractor(settings.RAW_SNIPPET_LIMIT),
                capture_bridge=capture_bridge,
            )
            self._orchestrators[session.user_id] = orchestrator
        return orchestrator

    async def shutdown(self) -> None:
        for orchestrator in self._orchestrators.values():
            await orchestrator.join()
        for engine in self._engines.values():
            await engine.drain()
        self._orchestrators.clear()
        self._engines.clear()


registry = SessionRegistry()


def get_sync_engine(
    session: Session = Depends(get_session),
    supa: Client = Depends(get_supabase),
    local_store: LocalStore = Depends(get_local_store),
) -> DualStoreSyncEngine:
    return registry.sync_engine_for(session, supa, local_store)


def get_orchestrator(
    session: Session = Depends(get_session),
    model_client: RecipeModelClient = Depends(get_model_client),
    sync_engine: DualStoreSyncEngine = Depends(get_sync_engine),
    capture_bridge: CaptureBridge = Depends(get_capture_bridge),
) -> GenerationOrchestrator:
    return registry.orchestrator_for(session, model_client, sync_engine, capture_bridge)


def get_nutrition_service(
    model_client: RecipeModelClient = Depends(get_model_client),
    sync_engine: DualStoreSyncEngine = Depends(get_sync_engine),
) -> NutritionService:
    return NutritionService(model_client, sync_engine)
