# snap2spoon/app/schemas/profile.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=120)
    phoneNumber: Optional[str] = Field(default=None, max_length=40)
    profileEmoji: Optional[str] = Field(default=None, min_length=1, max_length=16)
