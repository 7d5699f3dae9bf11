# citystate/store/redis_keys.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RK:
    """
    Redis key builder for device-scoped settings.
    """
    device_id: str

    def device(self) -> str:
        return f"device:{self.device_id}"  # HASH player_id, display_name

    def all_device_keys(self) -> list[str]:
        return [self.device()]

    @staticmethod
    def device_pattern() -> str:
        return "device:*"
