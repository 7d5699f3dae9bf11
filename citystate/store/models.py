# citystate/store/models.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class DeviceSettingsStore(BaseModel):
    """Per-device key-value settings. Nothing game-related is persisted."""
    device_id: str
    player_id: Optional[str] = None
    display_name: Optional[str] = Field(default=None, max_length=24)
