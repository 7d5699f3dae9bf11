# citystate/domain/classic/session.py
from __future__ import annotations

import logging
import random
from typing import Dict, Optional, Set

from citystate.domain.common.clock import TurnClock
from citystate.domain.common.models import GuessOutcome
from citystate.domain.common.places import WordValidator
from citystate.domain.common.ports import Conversation, Presenter
from citystate.domain.common.types import Category, ClassicPhase
from citystate.domain.common.validation import (
    DEFAULT_LETTERS,
    check_guess,
    normalize_letter,
    random_letter,
    reject,
)
from citystate.transport.codec import (
    ClassicPayload,
    classic_handoff,
    classic_invite,
    classic_result,
    send_payload,
)

logger = logging.getLogger(__name__)

CLASSIC_TIME_LIMIT_SEC = 20


def result_text(mine: int, theirs: int) -> str:
    if mine > theirs:
        return f"You won! 🎉\nYour score: {mine}\nOpponent: {theirs}"
    if mine < theirs:
        return f"You lost. 😢\nYour score: {mine}\nOpponent: {theirs}"
    return f"It's a tie! 🤝\nScore: {mine}"


def spectator_result_text(p1: int, p2: int) -> str:
    if p2 > p1:
        return f"🏆 Player 2 wins! ({p2} vs {p1})"
    if p2 < p1:
        return f"🏆 Player 1 wins! ({p1} vs {p2})"
    return f"🤝 It's a tie! ({p1} vs {p2})"


class ClassicSession:
    """
    Turn-exchange game between two devices.

    IDLE -> PLAYING -> AWAITING_OPPONENT -> FINISHED
    The device that plays second already holds the opponent score when its
    clock runs out, so it resolves immediately and sends the final result.
    """

    def __init__(
        self,
        *,
        presenter: Presenter,
        conversation: Conversation,
        validator: WordValidator,
        clock: TurnClock,
        time_limit: int = CLASSIC_TIME_LIMIT_SEC,
        alphabet: str = DEFAULT_LETTERS,
        reset_clock_on_correct: bool = False,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.presenter = presenter
        self.conversation = conversation
        self.validator = validator
        self.clock = clock
        self.time_limit = time_limit
        self.alphabet = alphabet
        self.reset_clock_on_correct = reset_clock_on_correct
        self.rng = rng or random.Random()

        self.phase: ClassicPhase = "IDLE"
        self.letter: str = ""
        self.score: Optional[int] = None
        self.used_words: Set[str] = set()
        self.time_remaining: int = time_limit
        self.opponent_score: Optional[int] = None
        self.category_counts: Dict[Category, int] = {}
        self.result: str = ""

    # ----------------------------
    # Turn lifecycle
    # ----------------------------
    def begin(self, letter: Optional[str] = None) -> None:
        self.clock.stop()
        self.letter = normalize_letter(letter) or random_letter(self.rng, self.alphabet)
        self.score = 0
        self.used_words = set()
        self.category_counts = {"CITY": 0, "COUNTRY": 0, "STATE": 0}
        self.time_remaining = self.time_limit
        self.result = ""
        self.phase = "PLAYING"
        logger.info("Classic turn started: letter=%s limit=%ss opponent=%s", self.letter, self.time_limit, self.opponent_score)

        self.presenter.set_letter(self.letter)
        self.presenter.set_score(0)
        self.presenter.set_timer(self.time_remaining, 1.0)
        self.presenter.set_input_enabled(True)
        self.presenter.set_feedback("Type as many cities, countries, or states as you can.")
        self._start_clock()

    def _start_clock(self) -> None:
        self.clock.start(self.time_remaining, self._on_tick, self.on_expire)

    def _on_tick(self, remaining: int) -> None:
        self.time_remaining = remaining
        fraction = remaining / self.time_limit if self.time_limit else 0.0
        self.presenter.set_timer(remaining, fraction)

    def submit(self, word: Optional[str]) -> GuessOutcome:
        if self.phase != "PLAYING":
            return reject("NOT_PLAYING", "INVALID_INPUT", "The round is over.")

        outcome = check_guess(word, letter=self.letter, used_words=self.used_words, validator=self.validator)
        if not outcome.accepted:
            logger.debug("Classic guess rejected: %s (%s)", outcome.word, outcome.code)
            self.presenter.set_feedback(outcome.message)
            return outcome

        self.used_words.add(outcome.word)
        self.score = (self.score or 0) + 1
        if outcome.category:
            self.category_counts[outcome.category] = self.category_counts.get(outcome.category, 0) + 1

        self.presenter.plus_one()
        self.presenter.set_score(self.score)
        self.presenter.set_feedback("")

        if self.reset_clock_on_correct:
            self.time_remaining = self.time_limit
            self.presenter.set_timer(self.time_remaining, 1.0)
            self._start_clock()
        return outcome

    def on_expire(self) -> None:
        if self.phase != "PLAYING":
            return
        self.clock.stop()
        self.time_remaining = 0
        score = self.score or 0
        self.presenter.set_input_enabled(False)
        self.presenter.set_timer(0, 0.0)
        self.presenter.set_feedback(self.summary())
        logger.info("Classic turn over: letter=%s score=%s", self.letter, score)

        if self.opponent_score is not None:
            self._resolve(score, self.opponent_score)
            send_payload(
                self.conversation,
                classic_result(self.letter, score, p1score=self.opponent_score, p2score=score),
            )
            return

        send_payload(self.conversation, classic_handoff(self.letter, score))
        self.phase = "AWAITING_OPPONENT"
        self.presenter.set_feedback("Score sent ✓\nWaiting for opponent...")

    def summary(self) -> str:
        counts = self.category_counts
        return (
            f"Time's up!\nYou scored {self.score or 0} total:\n"
            f"📍 Cities: {counts.get('CITY', 0)}\n"
            f"🌐 Countries: {counts.get('COUNTRY', 0)}\n"
            f"🗺️ States: {counts.get('STATE', 0)}"
        )

    def _resolve(self, mine: int, theirs: int) -> None:
        self.clock.stop()
        self.phase = "FINISHED"
        self.result = result_text(mine, theirs)
        self.presenter.set_input_enabled(False)
        self.presenter.set_feedback(self.result)
        logger.info("Classic game resolved: mine=%s theirs=%s", mine, theirs)

    # ----------------------------
    # Messages
    # ----------------------------
    def send_invite(self, letter: Optional[str] = None) -> str:
        """Invite the opponent to play the first turn with the given (or a random) letter."""
        invite_letter = normalize_letter(letter) or random_letter(self.rng, self.alphabet)
        self.letter = invite_letter
        self.presenter.set_feedback("Invite sent ✓")
        return send_payload(self.conversation, classic_invite(invite_letter))

    def receive_inbound(self, payload: ClassicPayload) -> None:
        if payload.completed:
            self._receive_result(payload)
            return

        # AWAITING_OPPONENT only moves on a result; anything else is our own
        # hand-off re-opened or an older invite
        if self.phase != "IDLE":
            logger.debug("Ignoring classic turn payload in phase %s", self.phase)
            return

        if payload.completed is False and payload.score is not None:
            self.opponent_score = payload.score
        self.begin(payload.letter)

    def _receive_result(self, payload: ClassicPayload) -> None:
        if self.phase == "FINISHED":
            return

        if self.score is not None and payload.score is not None and self.phase != "IDLE":
            if self.phase == "PLAYING":
                self.clock.stop()
            self._resolve(self.score, payload.score)
            return

        if payload.p1score is not None and payload.p2score is not None:
            self.clock.stop()
            self.phase = "FINISHED"
            self.result = spectator_result_text(payload.p1score, payload.p2score)
            self.presenter.set_input_enabled(False)
            self.presenter.set_feedback(self.result)
            return

        logger.debug("Ignoring classic result without comparable scores: %s", payload)

    def stop(self) -> None:
        self.clock.stop()
