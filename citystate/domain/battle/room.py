# citystate/domain/battle/room.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from citystate.domain.common.models import MAX_ROOM_PLAYERS, Player
from citystate.domain.common.ports import Conversation, Presenter
from citystate.domain.common.types import Readiness, RoomPhase, RoomUpdateKind
from citystate.transport.codec import (
    BattlePayload,
    battle_invite,
    battle_room_update,
    send_payload,
)

logger = logging.getLogger(__name__)

MIN_PLAYERS_BATTLE = 2
DEFAULT_NAME = "You"

QuorumFn = Callable[[List[Player]], None]


def quorum_met(players: List[Player]) -> bool:
    """All current players ready and at least two of them."""
    return len(players) >= MIN_PLAYERS_BATTLE and all(p.is_ready for p in players)


def readiness_of(players: List[Player]) -> Readiness:
    if quorum_met(players):
        return "QUORUM_MET"
    if any(p.is_ready for p in players):
        return "SOME_READY"
    return "NONE_READY"


class BattleRoom:
    """
    Waiting room synchronised through repeated message round-trips.
    Remote rosters are authoritative once the local player is in them.
    """

    def __init__(
        self,
        *,
        presenter: Presenter,
        conversation: Conversation,
        local_player_id: str,
        local_name: str = DEFAULT_NAME,
        on_quorum: Optional[QuorumFn] = None,
        max_players: int = MAX_ROOM_PLAYERS,
    ) -> None:
        self.presenter = presenter
        self.conversation = conversation
        self.local_player_id = local_player_id
        self.local_name = local_name or DEFAULT_NAME
        self.on_quorum = on_quorum
        self.max_players = max_players

        self.phase: RoomPhase = "EMPTY"
        self.players: List[Player] = []

    # ----------------------------
    # Helpers
    # ----------------------------
    @property
    def readiness(self) -> Readiness:
        return readiness_of(self.players)

    @property
    def accepting(self) -> bool:
        return self.phase in ("EMPTY", "POPULATED")

    def find(self, pid: Optional[str]) -> Optional[Player]:
        for p in self.players:
            if p.id == pid:
                return p
        return None

    @property
    def local_player(self) -> Optional[Player]:
        return self.find(self.local_player_id)

    def _new_local(self) -> Player:
        return Player(id=self.local_player_id, name=self.local_name, is_ready=False)

    def _broadcast(self, kind: RoomUpdateKind, player: Player) -> None:
        send_payload(self.conversation, battle_room_update(kind, player, self.players))

    def _render(self) -> None:
        self.presenter.show_player_roster([p.model_copy() for p in self.players])
        ready = sum(1 for p in self.players if p.is_ready)
        self.presenter.set_feedback(f"Battle Waiting Room: {ready}/{len(self.players)} ready")

    def _check_quorum(self) -> bool:
        # a device left outside a full room never starts its battle
        if not self.accepting or self.local_player is None or not quorum_met(self.players):
            return False
        self.phase = "HANDED_OFF"
        roster = [p.model_copy() for p in self.players]
        logger.info("Battle quorum met with %s players; handing off", len(roster))
        if self.on_quorum is not None:
            self.on_quorum(roster)
        return True

    # ----------------------------
    # Operations
    # ----------------------------
    def join(self, payload: Optional[BattlePayload] = None) -> None:
        if payload is None or not payload.roster:
            self.players = [self._new_local()]
            self.phase = "POPULATED"
            self._render()
            return

        roster = [Player(id=e.id, name=e.name, is_ready=e.ready) for e in payload.roster[: self.max_players]]
        self.players = roster
        self.phase = "POPULATED"

        local = self.local_player
        if local is None:
            if len(self.players) >= self.max_players:
                logger.warning("Battle room full (%s players); cannot join", len(self.players))
                self.presenter.set_feedback("This room is full.")
                self.presenter.show_player_roster([p.model_copy() for p in self.players])
                return
            local = self._new_local()
            self.players.append(local)
            self._broadcast("playerJoin", local)
        else:
            self.local_name = local.name

        self._render()
        self._check_quorum()

    def send_invite(self) -> str:
        local = self.local_player or self._new_local()
        return send_payload(self.conversation, battle_invite(local))

    def toggle_ready(self, ready: bool) -> bool:
        local = self.local_player
        if not self.accepting or local is None:
            return False
        local.is_ready = bool(ready)
        self._broadcast("playerReady", local)
        self._render()
        self._check_quorum()
        return True

    def rename(self, name: str) -> bool:
        local = self.local_player
        if not self.accepting or local is None:
            return False
        local.name = (name or "").strip() or DEFAULT_NAME
        self.local_name = local.name
        self._broadcast("playerName", local)
        self._render()
        return True

    def leave(self) -> None:
        local = self.local_player
        if local is None:
            self.phase = "CLOSED"
            return
        self.players = [p for p in self.players if p.id != self.local_player_id]
        self.phase = "CLOSED"
        self._broadcast("playerLeave", local)
        self.presenter.show_player_roster([p.model_copy() for p in self.players])
        self.presenter.set_feedback("You left the room.")

    def receive_inbound(self, payload: BattlePayload) -> None:
        if not self.accepting:
            logger.debug("Room no longer accepting updates (phase=%s)", self.phase)
            return

        kind = payload.type
        pid = payload.playerId
        if kind == "playerReady":
            p = self.find(pid)
            if p is None or payload.isReady is None:
                return
            p.is_ready = payload.isReady
        elif kind == "playerName":
            p = self.find(pid)
            if p is None or payload.name is None:
                return
            p.name = payload.name
        elif kind == "playerJoin":
            if not pid or self.find(pid) is not None:
                return
            if len(self.players) >= self.max_players:
                logger.warning("Dropping playerJoin for %s: room full", pid)
                return
            self.players.append(Player(id=pid, name=payload.name or DEFAULT_NAME, is_ready=bool(payload.isReady)))
        elif kind == "playerLeave":
            if self.find(pid) is None:
                return
            self.players = [p for p in self.players if p.id != pid]
        else:
            logger.debug("Ignoring unknown room update kind: %r", kind)
            return

        self._render()
        self._check_quorum()
