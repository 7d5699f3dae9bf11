# citystate/transport/admin.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/devices")
async def list_devices(request: Request):
    """
    List connected devices and what each is playing (debug/admin).
    """
    wsman = request.app.state.wsman

    devices = []
    for conn in await wsman.list():
        c = conn.coordinator
        devices.append(
            {
                "device_id": conn.device_id,
                "player_id": c.player_id,
                "name": c.display_name,
                "mode": c.mode,
            }
        )

    devices.sort(key=lambda d: d["device_id"])
    return {"devices": devices}


@router.post("/devices/{device_id}/stop")
async def stop_device(device_id: str, request: Request):
    """
    Force-stop whatever the device is playing (debug/admin).
    """
    wsman = request.app.state.wsman
    conn = await wsman.get(device_id)
    if conn is None:
        raise HTTPException(status_code=404, detail="Device not connected")

    conn.coordinator.stop()
    conn.coordinator.show_home()
    return {"ok": True, "device_id": device_id}


@router.get("/devices/known")
async def known_devices(request: Request):
    """
    Device ids with stored settings, connected or not (debug/admin).
    """
    repo = request.app.state.repo
    return {"device_ids": await repo.list_device_ids()}
