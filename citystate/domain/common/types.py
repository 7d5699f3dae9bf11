# citystate/domain/common/types.py
from __future__ import annotations

from typing import Literal

Category = Literal["CITY", "COUNTRY", "STATE", "UNKNOWN"]

ClassicPhase = Literal["IDLE", "PLAYING", "AWAITING_OPPONENT", "FINISHED"]
RoomPhase = Literal["EMPTY", "POPULATED", "HANDED_OFF", "CLOSED"]
Readiness = Literal["NONE_READY", "SOME_READY", "QUORUM_MET"]
BattlePhase = Literal["IDLE", "RUNNING", "FINISHED"]
TimeoutPolicy = Literal["END_SESSION", "ADVANCE"]

ErrorKind = Literal[
    "INVALID_INPUT",
    "RULE_VIOLATION",
    "UNKNOWN_PLACE",
    "MALFORMED_PAYLOAD",
    "STALE_MESSAGE",
]

RoomUpdateKind = Literal["playerReady", "playerName", "playerJoin", "playerLeave"]

MIRROR_KINDS = ("guess", "turnUpdate", "scoreUpdate")
