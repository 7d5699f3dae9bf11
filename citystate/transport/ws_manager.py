# citystate/transport/ws_manager.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional

from fastapi import WebSocket

from citystate.domain.coordinator import GameCoordinator
from citystate.transport.presenter import EventOutbox


@dataclass
class Conn:
    device_id: str
    ws: WebSocket
    coordinator: GameCoordinator
    outbox: EventOutbox


class WSManager:
    """
    In-memory connection registry.
    - device_id -> connection (websocket + coordinator + outbox)
    Transport-only: no Redis, no game rules.
    """
    def __init__(self) -> None:
        self._conns: Dict[str, Conn] = {}
        self._lock = asyncio.Lock()

    async def add(self, conn: Conn) -> Optional[Conn]:
        """Register a connection; returns the one it replaced, if any."""
        async with self._lock:
            previous = self._conns.get(conn.device_id)
            self._conns[conn.device_id] = conn
        return previous

    async def remove(self, device_id: str, ws: Optional[WebSocket] = None) -> None:
        async with self._lock:
            conn = self._conns.get(device_id)
            if conn is None:
                return
            if ws is not None and conn.ws is not ws:
                return
            self._conns.pop(device_id, None)

    async def get(self, device_id: str) -> Optional[Conn]:
        async with self._lock:
            return self._conns.get(device_id)

    async def list(self) -> List[Conn]:
        async with self._lock:
            return list(self._conns.values())

    async def size(self) -> int:
        async with self._lock:
            return len(self._conns)
