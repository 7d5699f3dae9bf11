from __future__ import annotations

from .room import BattleRoom, quorum_met
from .session import BattleSession

__all__ = [
    "BattleRoom",
    "BattleSession",
    "quorum_met",
]
