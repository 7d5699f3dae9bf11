# citystate/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field


# =========================
# Incoming (UI surface -> Server)
# =========================

class InBase(BaseModel):
    type: str


class InOpen(InBase):
    """The extension became active, optionally with a selected message URL."""
    type: Literal["open"] = "open"
    url: Optional[str] = Field(default=None, max_length=4096)


class InStartClassic(InBase):
    type: Literal["start_classic"] = "start_classic"


class InInviteClassic(InBase):
    type: Literal["invite_classic"] = "invite_classic"


class InStartBattle(InBase):
    type: Literal["start_battle"] = "start_battle"


class InSubmit(InBase):
    type: Literal["submit"] = "submit"
    text: str = Field(default="", max_length=80)


class InSetReady(InBase):
    type: Literal["set_ready"] = "set_ready"
    ready: bool


class InSetName(InBase):
    type: Literal["set_name"] = "set_name"
    name: str = Field(min_length=1, max_length=24)


class InLeaveRoom(InBase):
    type: Literal["leave_room"] = "leave_room"


class InStop(InBase):
    type: Literal["stop"] = "stop"


IncomingMessage = Union[
    InOpen,
    InStartClassic,
    InInviteClassic,
    InStartBattle,
    InSubmit,
    InSetReady,
    InSetName,
    InLeaveRoom,
    InStop,
]


# =========================
# Outgoing (Server -> UI surface)
# =========================

class OutBase(BaseModel):
    type: str


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str


class OutHello(OutBase):
    type: Literal["hello"] = "hello"
    device_id: str
    player_id: str
    name: str


class OutSetLetter(OutBase):
    type: Literal["set_letter"] = "set_letter"
    letter: str


class OutSetScore(OutBase):
    type: Literal["set_score"] = "set_score"
    score: int


class OutSetTimer(OutBase):
    type: Literal["set_timer"] = "set_timer"
    seconds_remaining: int
    fraction: float


class OutSetFeedback(OutBase):
    type: Literal["set_feedback"] = "set_feedback"
    text: str


class OutSetInputEnabled(OutBase):
    type: Literal["set_input_enabled"] = "set_input_enabled"
    enabled: bool


class OutPlayerRoster(OutBase):
    type: Literal["show_player_roster"] = "show_player_roster"
    players: List[Dict[str, Any]]


class OutPlusOne(OutBase):
    type: Literal["plus_one"] = "plus_one"


class OutInsertMessage(OutBase):
    """Attach `url` to a new chat message; delivery is up to the client."""
    type: Literal["insert_message"] = "insert_message"
    url: str
    caption: str
    subcaption: str = ""


class OutGuessResult(OutBase):
    type: Literal["guess_result"] = "guess_result"
    accepted: bool
    code: str = ""
    word: str = ""
    category: Optional[str] = None


OutgoingEvent = Union[
    OutError,
    OutHello,
    OutSetLetter,
    OutSetScore,
    OutSetTimer,
    OutSetFeedback,
    OutSetInputEnabled,
    OutPlayerRoster,
    OutPlusOne,
    OutInsertMessage,
    OutGuessResult,
]


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "open": InOpen,
    "start_classic": InStartClassic,
    "invite_classic": InInviteClassic,
    "start_battle": InStartBattle,
    "submit": InSubmit,
    "set_ready": InSetReady,
    "set_name": InSetName,
    "leave_room": InLeaveRoom,
    "stop": InStop,
}


def parse_incoming(payload: Dict[str, Any]) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValueError for a missing/unknown type, ValidationError if fields are invalid.
    """
    t = payload.get("type") if isinstance(payload, dict) else None
    if not isinstance(t, str):
        raise ValueError("Missing/invalid type")

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValueError(f"Unknown message type: {t}")

    return cls.model_validate(payload)
