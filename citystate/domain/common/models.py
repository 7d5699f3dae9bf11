# citystate/domain/common/models.py
from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel, Field

from citystate.domain.common.types import Category, ErrorKind


MAX_ROOM_PLAYERS = 10


def new_player_id() -> str:
    return uuid.uuid4().hex


class Player(BaseModel):
    """
    One participant in a battle room or battle session.
    Only `id` is stable across devices; everything else may be overwritten by peers.
    """
    id: str = Field(default_factory=new_player_id)
    name: str = "You"
    score: int = Field(default=0, ge=0)
    is_active: bool = False
    is_ready: bool = False
    eliminated: bool = False


class GuessOutcome(BaseModel):
    accepted: bool
    code: str = ""
    kind: Optional[ErrorKind] = None
    message: str = ""
    word: str = ""
    category: Optional[Category] = None
