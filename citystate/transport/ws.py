# citystate/transport/ws.py
from __future__ import annotations

import asyncio
import contextlib
import ipaddress
import logging
from urllib.parse import urlparse

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from citystate.domain.coordinator import GameCoordinator
from citystate.transport.dispatcher import dispatch_message
from citystate.transport.presenter import EventOutbox, OutboxConversation, OutboxPresenter
from citystate.transport.protocols import OutError, OutHello
from citystate.transport.ws_manager import Conn

logger = logging.getLogger(__name__)

router = APIRouter()


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    settings = websocket.app.state.settings
    allowed = {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}

    origin = websocket.headers.get("origin")
    if origin is not None:
        if origin in allowed:
            return True
        if settings.WS_ALLOW_LAN_ORIGINS:
            o = urlparse(origin)
            host = o.hostname or ""
            port = o.port
            if _is_private_ip(host) and port == 5173:
                return True
            await websocket.close(code=1008)
            return False
        await websocket.close(code=1008)
        return False
    return True


async def _pump(websocket: WebSocket, outbox: EventOutbox) -> None:
    while True:
        event = await outbox.queue.get()
        await websocket.send_json(event)


def _build_coordinator(websocket: WebSocket, device_id: str, outbox: EventOutbox) -> GameCoordinator:
    state = websocket.app.state
    return GameCoordinator(
        device_id=device_id,
        presenter=OutboxPresenter(outbox),
        conversation=OutboxConversation(outbox),
        repo=state.repo,
        validator=state.validator,
        settings=state.settings,
    )


@router.websocket("/ws/{device_id}")
async def ws_device(websocket: WebSocket, device_id: str):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    wsman = websocket.app.state.wsman
    outbox = EventOutbox()
    coordinator = _build_coordinator(websocket, device_id, outbox)

    previous = await wsman.add(Conn(device_id=device_id, ws=websocket, coordinator=coordinator, outbox=outbox))
    if previous is not None:
        # same device reconnected; the older surface is gone
        previous.coordinator.stop()
        with contextlib.suppress(Exception):
            await previous.ws.close(code=4000)

    player_id = await coordinator.load_identity()
    await websocket.send_json(
        OutHello(device_id=device_id, player_id=player_id, name=coordinator.display_name).model_dump()
    )
    pump = asyncio.create_task(_pump(websocket, outbox))

    try:
        while True:
            raw = await websocket.receive_json()
            if not isinstance(raw, dict):
                await websocket.send_json(OutError(code="BAD_MESSAGE", message="Expected a JSON object").model_dump())
                continue

            replies = await dispatch_message(coordinator=coordinator, raw=raw)
            for e in replies:
                await websocket.send_json(e)

    except WebSocketDisconnect:
        logger.info("Device %s disconnected (mode=%s)", device_id, coordinator.mode)

    finally:
        coordinator.stop()
        await wsman.remove(device_id, websocket)
        pump.cancel()
        try:
            await pump
        except asyncio.CancelledError:
            pass
        except Exception:
            # the socket went away under the pump
            logger.warning("Event pump for device %s failed", device_id, exc_info=True)
