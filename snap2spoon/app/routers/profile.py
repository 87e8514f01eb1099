# snap2spoon/app/routers/profile.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from snap2spoon.app.deps import get_sync_engine
from snap2spoon.app.domain.models import UserProfileRecord
from snap2spoon.app.schemas.profile import ProfileUpdate
from snap2spoon.app.services.sync_engine import DualStoreSyncEngine

router = APIRouter(prefix="/profile", tags=["profile"])

_FIELD_NAMES = {
    "name": "name",
    "phoneNumber": "phone_number",
    "profileEmoji": "profile_emoji",
}


@router.get("/", response_model=UserProfileRecord)
async def get_profile(
    engine: DualStoreSyncEngine = Depends(get_sync_engine),
) -> UserProfileRecord:
    profile = await engine.load_profile()
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=engine.state.last_error or "Profile unavailable",
        )
    return profile


@router.patch("/", response_model=UserProfileRecord)
async def update_profile(
    payload: ProfileUpdate,
    engine: DualStoreSyncEngine = Depends(get_sync_engine),
) -> UserProfileRecord:
    if engine.profile is None:
        await engine.load_profile()

    changes = {_FIELD_NAMES[key]: value for key, value in payload.model_dump(exclude_unset=True).items()}
    profile = await engine.update_profile(**changes)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile
