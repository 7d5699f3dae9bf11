# citystate/store/redis_repo.py
from __future__ import annotations

from typing import Optional

from redis.asyncio import Redis

from citystate.store.models import DeviceSettingsStore
from citystate.store.redis_keys import RK


class RedisRepo:
    def __init__(self, r: Redis, ttl_sec: int = 60 * 60 * 24 * 30):
        self.r = r
        self.ttl_sec = ttl_sec

    def _dec(self, x):
        """Decode redis bytes -> str; pass through str/None safely."""
        if x is None:
            return None
        if isinstance(x, bytes):
            return x.decode("utf-8")
        return x

    def _dec_map(self, d: dict) -> dict:
        return {self._dec(k): self._dec(v) for k, v in d.items()}

    # ----------------------------
    # Helpers
    # ----------------------------
    async def refresh_ttl(self, device_id: str) -> None:
        pipe = self.r.pipeline()
        for k in RK(device_id).all_device_keys():
            pipe.expire(k, self.ttl_sec)
        await pipe.execute()

    # ----------------------------
    # Device settings
    # ----------------------------
    async def get_device(self, device_id: str) -> DeviceSettingsStore:
        data = await self.r.hgetall(RK(device_id).device())
        norm = self._dec_map(data or {})
        return DeviceSettingsStore(
            device_id=device_id,
            player_id=norm.get("player_id") or None,
            display_name=norm.get("display_name") or None,
        )

    async def update_device_fields(self, device_id: str, **fields: Optional[str]) -> None:
        mapping = {k: v for k, v in fields.items() if v is not None}
        if not mapping:
            return
        await self.r.hset(RK(device_id).device(), mapping=mapping)
        await self.refresh_ttl(device_id)

    async def get_display_name(self, device_id: str) -> Optional[str]:
        return (await self.get_device(device_id)).display_name

    async def set_display_name(self, device_id: str, name: str) -> None:
        await self.update_device_fields(device_id, display_name=name)

    async def get_or_create_player_id(self, device_id: str, new_id: str) -> str:
        """Stable local player id; `new_id` is stored only if none exists yet."""
        key = RK(device_id).device()
        created = await self.r.hsetnx(key, "player_id", new_id)
        if created:
            await self.refresh_ttl(device_id)
            return new_id
        existing = self._dec(await self.r.hget(key, "player_id"))
        return existing or new_id

    async def list_device_ids(self) -> list[str]:
        ids: list[str] = []
        cursor = 0
        while True:
            cursor, keys = await self.r.scan(cursor=cursor, match=RK.device_pattern(), count=200)
            for k in keys:
                key = self._dec(k)
                if key.count(":") == 1:
                    ids.append(key.split(":", 1)[1])
            if cursor == 0:
                break
        return sorted(set(ids))
