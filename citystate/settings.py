from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel
import os

from citystate.domain.common.models import MAX_ROOM_PLAYERS as DEFAULT_MAX_ROOM_PLAYERS


DEFAULT_PLACE_DATA = str(Path(__file__).parent / "data" / "place_data.json")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y", "on")


class Settings(BaseModel):
    APP_NAME: str = "citystate-server"

    # Redis (display name / player id only)
    REDIS_URL: str = "redis://localhost:6379/0"
    SETTINGS_TTL_SEC: int = 60 * 60 * 24 * 30

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Dev
    LOG_LEVEL: str = "INFO"

    # WebSocket origin policy (comma-separated)
    WS_ALLOWED_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173,null"
    WS_ALLOW_LAN_ORIGINS: bool = True

    # Game
    PLACE_DATA_PATH: str = DEFAULT_PLACE_DATA
    ALLOWED_LETTERS: str = "ABCDEFGHIJKLMNOPRSTUVWZ"
    CLASSIC_TIME_LIMIT_SEC: int = 20
    # Solo variant: every correct word restarts the turn clock
    CLASSIC_RESET_ON_CORRECT: bool = False
    BATTLE_TIME_LIMIT_SEC: int = 30
    BATTLE_TIMEOUT_POLICY: Literal["END_SESSION", "ADVANCE"] = "END_SESSION"
    MAX_ROOM_PLAYERS: int = DEFAULT_MAX_ROOM_PLAYERS
    CLOCK_INTERVAL_SEC: float = 1.0


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "citystate-server"),
        REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        SETTINGS_TTL_SEC=int(os.getenv("SETTINGS_TTL_SEC", str(60 * 60 * 24 * 30))),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),

        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,null",
        ),
        WS_ALLOW_LAN_ORIGINS=_env_bool("WS_ALLOW_LAN_ORIGINS", "true"),

        PLACE_DATA_PATH=os.getenv("PLACE_DATA_PATH", DEFAULT_PLACE_DATA),
        ALLOWED_LETTERS=os.getenv("ALLOWED_LETTERS", "ABCDEFGHIJKLMNOPRSTUVWZ").upper(),
        CLASSIC_TIME_LIMIT_SEC=int(os.getenv("CLASSIC_TIME_LIMIT_SEC", "20")),
        CLASSIC_RESET_ON_CORRECT=_env_bool("CLASSIC_RESET_ON_CORRECT", "false"),
        BATTLE_TIME_LIMIT_SEC=int(os.getenv("BATTLE_TIME_LIMIT_SEC", "30")),
        BATTLE_TIMEOUT_POLICY=os.getenv("BATTLE_TIMEOUT_POLICY", "END_SESSION").upper(),
        MAX_ROOM_PLAYERS=int(os.getenv("MAX_ROOM_PLAYERS", str(DEFAULT_MAX_ROOM_PLAYERS))),
        CLOCK_INTERVAL_SEC=float(os.getenv("CLOCK_INTERVAL_SEC", "1.0")),
    )
