# citystate/main.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis

from citystate.domain.common.places import load_validator
from citystate.settings import Settings, get_settings
from citystate.store.redis_repo import RedisRepo
from citystate.transport.admin import router as admin_router
from citystate.transport.ws import router as ws_router
from citystate.transport.ws_manager import WSManager


def create_app(settings: Optional[Settings] = None, repo=None) -> FastAPI:
    """
    `repo` lets tests (or a single-process dev run) skip Redis entirely.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    )

    app = FastAPI(title=settings.APP_NAME)
    allowed_origins = [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]
    if "null" not in allowed_origins:
        allowed_origins.append("null")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.validator = load_validator(settings.PLACE_DATA_PATH)
    app.state.wsman = WSManager()
    app.state.redis = None
    app.state.repo = repo

    @app.on_event("startup")
    async def _startup() -> None:
        if app.state.repo is not None:
            return
        r = Redis.from_url(settings.REDIS_URL, decode_responses=False)
        app.state.redis = r
        app.state.repo = RedisRepo(r, ttl_sec=settings.SETTINGS_TTL_SEC)
        await r.ping()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        r: Optional[Redis] = app.state.redis
        if r is not None:
            await r.close()

    @app.get("/health")
    async def health():
        r: Optional[Redis] = app.state.redis
        redis_status = str(await r.ping()) if r is not None else "disabled"
        return {
            "ok": True,
            "redis": redis_status,
            "places": app.state.validator.counts(),
            "devices": await app.state.wsman.size(),
        }

    app.include_router(ws_router)
    app.include_router(admin_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run("citystate.main:app", host=_settings.HOST, port=_settings.PORT)
