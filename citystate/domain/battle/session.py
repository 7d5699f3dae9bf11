# citystate/domain/battle/session.py
from __future__ import annotations

import logging
import random
from typing import Dict, List, Optional, Sequence, Set

from citystate.domain.common.clock import TurnClock
from citystate.domain.common.models import GuessOutcome, Player
from citystate.domain.common.places import WordValidator
from citystate.domain.common.ports import Presenter
from citystate.domain.common.types import BattlePhase, Category, TimeoutPolicy
from citystate.domain.common.validation import DEFAULT_LETTERS, check_guess, random_letter, reject
from citystate.transport.codec import BattlePayload

logger = logging.getLogger(__name__)

BATTLE_TIME_LIMIT_SEC = 30


class BattleSession:
    """
    Round-robin turns on one shared letter and one shared used-word set.
    Only the active player may guess; a correct word passes the turn on.
    Turns are local to this device; peers only meet at room-join time.
    """

    def __init__(
        self,
        *,
        presenter: Presenter,
        validator: WordValidator,
        clock: TurnClock,
        time_limit: int = BATTLE_TIME_LIMIT_SEC,
        timeout_policy: TimeoutPolicy = "END_SESSION",
        alphabet: str = DEFAULT_LETTERS,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.presenter = presenter
        self.validator = validator
        self.clock = clock
        self.time_limit = time_limit
        self.timeout_policy = timeout_policy
        self.alphabet = alphabet
        self.rng = rng or random.Random()

        self.phase: BattlePhase = "IDLE"
        self.players: List[Player] = []
        self.active_index: int = 0
        self.letter: str = ""
        self.used_words: Set[str] = set()
        self.time_remaining: int = time_limit
        self.category_counts: Dict[Category, int] = {}
        self.winner: Optional[Player] = None

    @property
    def active_player(self) -> Optional[Player]:
        if not self.players:
            return None
        return self.players[self.active_index]

    # ----------------------------
    # Lifecycle
    # ----------------------------
    def start(self, names: Sequence[str], letter: Optional[str] = None) -> None:
        self.clock.stop()
        self.players = [Player(name=(n or "").strip() or f"Player {i}") for i, n in enumerate(names, start=1)]
        if not self.players:
            logger.warning("Battle start with an empty roster ignored")
            return
        self.letter = (letter or "").strip().upper()[:1] or random_letter(self.rng, self.alphabet)
        self.used_words = set()
        self.category_counts = {"CITY": 0, "COUNTRY": 0, "STATE": 0}
        self.winner = None
        self.active_index = 0
        self.phase = "RUNNING"
        logger.info("Battle started: players=%s letter=%s", [p.name for p in self.players], self.letter)

        self.presenter.set_letter(self.letter)
        self._start_turn()

    def _mark_active(self) -> None:
        for i, p in enumerate(self.players):
            p.is_active = i == self.active_index

    def _start_turn(self) -> None:
        self._mark_active()
        self.time_remaining = self.time_limit
        active = self.players[self.active_index]
        self.presenter.show_player_roster([p.model_copy() for p in self.players])
        self.presenter.set_score(active.score)
        self.presenter.set_timer(self.time_remaining, 1.0)
        self.presenter.set_input_enabled(True)
        self.presenter.set_feedback(f"{active.name}'s Turn")
        self.clock.start(self.time_remaining, self._on_tick, self.on_expire)

    def _on_tick(self, remaining: int) -> None:
        self.time_remaining = remaining
        fraction = remaining / self.time_limit if self.time_limit else 0.0
        self.presenter.set_timer(remaining, fraction)

    def _next_index(self, start: int) -> Optional[int]:
        n = len(self.players)
        for step in range(1, n + 1):
            i = (start + step) % n
            if not self.players[i].eliminated:
                return i
        return None

    # ----------------------------
    # Guessing
    # ----------------------------
    def submit(self, word: Optional[str], player_index: Optional[int] = None) -> GuessOutcome:
        if self.phase != "RUNNING":
            return reject("NOT_PLAYING", "INVALID_INPUT", "The round is over.")
        if player_index is not None and player_index != self.active_index:
            return reject("NOT_ACTIVE", "RULE_VIOLATION", "It's not your turn.")

        outcome = check_guess(word, letter=self.letter, used_words=self.used_words, validator=self.validator)
        if not outcome.accepted:
            self.presenter.set_feedback(outcome.message)
            return outcome

        self.used_words.add(outcome.word)
        active = self.players[self.active_index]
        active.score += 1
        if outcome.category:
            self.category_counts[outcome.category] = self.category_counts.get(outcome.category, 0) + 1
        logger.debug("Battle guess accepted: %s by %s", outcome.word, active.name)

        self.presenter.plus_one()
        self.presenter.set_score(active.score)
        self.presenter.set_feedback("✅ Correct! Next player's turn.")

        nxt = self._next_index(self.active_index)
        self.active_index = self.active_index if nxt is None else nxt
        self._start_turn()
        return outcome

    def on_expire(self) -> None:
        if self.phase != "RUNNING":
            return
        self.clock.stop()
        self.time_remaining = 0
        loser = self.players[self.active_index]
        loser.eliminated = True
        loser.is_active = False
        logger.info("Battle timeout: %s eliminated (policy=%s)", loser.name, self.timeout_policy)

        if self.timeout_policy == "ADVANCE":
            remaining = [p for p in self.players if not p.eliminated]
            if len(remaining) > 1:
                self.presenter.set_feedback(f"{loser.name} ran out of time!")
                nxt = self._next_index(self.active_index)
                if nxt is not None:
                    self.active_index = nxt
                    self._start_turn()
                    return
            self.winner = remaining[0] if remaining else None
            self._finish(f"{loser.name} ran out of time!" + (f"\n{self.winner.name} wins!" if self.winner else ""))
            return

        self._finish(f"{loser.name} ran out of time!")

    def _finish(self, text: str) -> None:
        self.clock.stop()
        self.phase = "FINISHED"
        for p in self.players:
            p.is_active = False
        self.presenter.set_input_enabled(False)
        self.presenter.set_timer(0, 0.0)
        self.presenter.show_player_roster([p.model_copy() for p in self.players])
        self.presenter.set_feedback(text)

    def standings(self) -> List[Player]:
        return sorted(self.players, key=lambda p: p.score, reverse=True)

    # ----------------------------
    # Mirrored state from another device
    # ----------------------------
    def handle_incoming_message(self, payload: BattlePayload) -> None:
        if self.phase != "RUNNING":
            logger.debug("Ignoring battle mirror message in phase %s", self.phase)
            return

        kind = payload.type
        if kind == "guess":
            if payload.guess is None or payload.playerIndex is None:
                return
            if payload.playerIndex != self.active_index:
                logger.debug("Ignoring guess from inactive index %s", payload.playerIndex)
                return
            self.submit(payload.guess, player_index=payload.playerIndex)
        elif kind == "turnUpdate":
            idx = payload.activePlayerIndex
            if idx is None or not 0 <= idx < len(self.players) or self.players[idx].eliminated:
                return
            self.active_index = idx
            self._start_turn()
        elif kind == "scoreUpdate":
            idx = payload.playerIndex
            if idx is None or payload.score is None or not 0 <= idx < len(self.players):
                return
            self.players[idx].score = payload.score
            self.presenter.show_player_roster([p.model_copy() for p in self.players])
            active = self.active_player
            if active is not None:
                self.presenter.set_score(active.score)
        else:
            logger.debug("Ignoring unknown battle message type: %r", kind)

    def stop(self) -> None:
        self.clock.stop()
