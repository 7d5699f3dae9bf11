# citystate/domain/coordinator.py
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from citystate.domain.battle.room import BattleRoom
from citystate.domain.battle.session import BattleSession
from citystate.domain.classic.session import ClassicSession
from citystate.domain.common.clock import TurnClock
from citystate.domain.common.models import GuessOutcome, Player, new_player_id
from citystate.domain.common.places import WordValidator
from citystate.domain.common.ports import Conversation, Presenter
from citystate.domain.common.types import MIRROR_KINDS
from citystate.domain.common.validation import reject
from citystate.settings import Settings
from citystate.transport.codec import BattlePayload, ClassicPayload, decode_url

logger = logging.getLogger(__name__)

ClockFactory = Callable[[], TurnClock]


# =========================
# Active game (tagged union)
# =========================

@dataclass
class ClassicGame:
    session: ClassicSession


@dataclass
class BattleLobby:
    room: BattleRoom


@dataclass
class BattleGame:
    session: BattleSession
    room: Optional[BattleRoom] = None


ActiveGame = Union[ClassicGame, BattleLobby, BattleGame]


class GameCoordinator:
    """
    One per device. Owns whichever game is running, routes UI commands and
    inbound payloads to it, and stops the old game's clock before replacing it.
    """

    def __init__(
        self,
        *,
        device_id: str,
        presenter: Presenter,
        conversation: Conversation,
        repo,
        validator: WordValidator,
        settings: Settings,
        clock_factory: Optional[ClockFactory] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.device_id = device_id
        self.presenter = presenter
        self.conversation = conversation
        self.repo = repo
        self.validator = validator
        self.settings = settings
        self.clock_factory = clock_factory or (lambda: TurnClock(interval=settings.CLOCK_INTERVAL_SEC))
        self.rng = rng or random.Random()

        self.game: Optional[ActiveGame] = None
        self.player_id: Optional[str] = None
        self.display_name: str = "You"

    # ----------------------------
    # Identity
    # ----------------------------
    async def load_identity(self) -> str:
        if self.player_id is None:
            self.player_id = await self.repo.get_or_create_player_id(self.device_id, new_player_id())
            self.display_name = (await self.repo.get_display_name(self.device_id)) or "You"
        return self.player_id

    @property
    def mode(self) -> Optional[str]:
        if isinstance(self.game, ClassicGame):
            return "classic"
        if isinstance(self.game, BattleLobby):
            return "battle_room"
        if isinstance(self.game, BattleGame):
            return "battle"
        return None

    # ----------------------------
    # Construction
    # ----------------------------
    def _replace_game(self, game: Optional[ActiveGame]) -> None:
        self._stop_game(self.game)
        self.game = game

    def _stop_game(self, game: Optional[ActiveGame]) -> None:
        if isinstance(game, (ClassicGame, BattleGame)):
            game.session.stop()

    def _new_classic(self) -> ClassicSession:
        return ClassicSession(
            presenter=self.presenter,
            conversation=self.conversation,
            validator=self.validator,
            clock=self.clock_factory(),
            time_limit=self.settings.CLASSIC_TIME_LIMIT_SEC,
            alphabet=self.settings.ALLOWED_LETTERS,
            reset_clock_on_correct=self.settings.CLASSIC_RESET_ON_CORRECT,
            rng=self.rng,
        )

    async def _new_room(self) -> BattleRoom:
        pid = await self.load_identity()
        return BattleRoom(
            presenter=self.presenter,
            conversation=self.conversation,
            local_player_id=pid,
            local_name=self.display_name,
            on_quorum=self._on_quorum,
            max_players=self.settings.MAX_ROOM_PLAYERS,
        )

    def _on_quorum(self, players: List[Player]) -> None:
        room = self.game.room if isinstance(self.game, BattleLobby) else None
        session = BattleSession(
            presenter=self.presenter,
            validator=self.validator,
            clock=self.clock_factory(),
            time_limit=self.settings.BATTLE_TIME_LIMIT_SEC,
            timeout_policy=self.settings.BATTLE_TIMEOUT_POLICY,
            alphabet=self.settings.ALLOWED_LETTERS,
            rng=self.rng,
        )
        self._replace_game(BattleGame(session=session, room=room))
        session.start([p.name for p in players])

    def show_home(self) -> None:
        self.presenter.set_input_enabled(False)
        self.presenter.set_feedback("Pick a game mode")

    # ----------------------------
    # UI commands
    # ----------------------------
    def start_classic(self) -> ClassicSession:
        session = self._new_classic()
        self._replace_game(ClassicGame(session=session))
        session.begin()
        return session

    def send_classic_invite(self) -> ClassicSession:
        session = self._new_classic()
        self._replace_game(ClassicGame(session=session))
        session.send_invite()
        return session

    async def start_battle_room(self) -> BattleRoom:
        room = await self._new_room()
        self._replace_game(BattleLobby(room=room))
        room.join(None)
        room.send_invite()
        return room

    def submit(self, text: Optional[str]) -> GuessOutcome:
        if isinstance(self.game, (ClassicGame, BattleGame)):
            return self.game.session.submit(text)
        outcome = reject("NOT_PLAYING", "INVALID_INPUT", "No game in progress.")
        self.presenter.set_feedback(outcome.message)
        return outcome

    def set_ready(self, ready: bool) -> bool:
        if isinstance(self.game, BattleLobby):
            return self.game.room.toggle_ready(ready)
        return False

    async def set_name(self, name: str) -> str:
        cleaned = (name or "").strip()[:24] or "You"
        await self.load_identity()
        self.display_name = cleaned
        await self.repo.set_display_name(self.device_id, cleaned)
        if isinstance(self.game, BattleLobby):
            self.game.room.rename(cleaned)
        return cleaned

    def leave_room(self) -> None:
        if isinstance(self.game, BattleLobby):
            self.game.room.leave()
            self.game = None
            self.show_home()

    def stop(self) -> None:
        self._replace_game(None)

    # ----------------------------
    # Inbound payloads
    # ----------------------------
    async def open(self, url: Optional[str]) -> None:
        """The user opened (selected) a chat message, or the extension became active."""
        payload = decode_url(url, max_slots=self.settings.MAX_ROOM_PLAYERS)
        if payload is None:
            if self.game is None:
                self.show_home()
            return

        if isinstance(payload, ClassicPayload):
            self._route_classic(payload)
            return
        await self._route_battle(payload)

    def _route_classic(self, payload: ClassicPayload) -> None:
        if isinstance(self.game, ClassicGame):
            current = self.game.session
            # a finished game only restarts on a new invite / hand-off
            if not (current.phase == "FINISHED" and not payload.completed):
                current.receive_inbound(payload)
                return
        session = self._new_classic()
        self._replace_game(ClassicGame(session=session))
        session.receive_inbound(payload)
        if session.phase == "IDLE":
            # nothing playable in a stale snapshot
            self.show_home()

    async def _route_battle(self, payload: BattlePayload) -> None:
        if payload.type in MIRROR_KINDS:
            if isinstance(self.game, BattleGame):
                self.game.session.handle_incoming_message(payload)
            else:
                logger.debug("Battle mirror message without a running battle: %s", payload.type)
            return

        if isinstance(self.game, BattleLobby):
            room = self.game.room
            if payload.type is None:
                # a fresh roster snapshot (invite re-opened)
                room.join(payload)
            else:
                room.receive_inbound(payload)
            return

        if isinstance(self.game, BattleGame):
            logger.debug("Room update after hand-off ignored: %s", payload.type)
            return

        room = await self._new_room()
        self._replace_game(BattleLobby(room=room))
        room.join(payload)
