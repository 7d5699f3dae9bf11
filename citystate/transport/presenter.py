# citystate/transport/presenter.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from citystate.domain.common.models import Player
from citystate.transport.protocols import (
    OutgoingEvent,
    OutInsertMessage,
    OutPlayerRoster,
    OutPlusOne,
    OutSetFeedback,
    OutSetInputEnabled,
    OutSetLetter,
    OutSetScore,
    OutSetTimer,
)


class EventOutbox:
    """
    Queue of JSON events for one device connection.
    Presenter and conversation calls land here synchronously; ws.py pumps it to the socket.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()

    def emit(self, event: OutgoingEvent) -> None:
        self.queue.put_nowait(event.model_dump())


class OutboxPresenter:
    def __init__(self, outbox: EventOutbox) -> None:
        self.outbox = outbox

    def set_letter(self, letter: str) -> None:
        self.outbox.emit(OutSetLetter(letter=letter))

    def set_score(self, score: int) -> None:
        self.outbox.emit(OutSetScore(score=score))

    def set_timer(self, seconds_remaining: int, fraction: float) -> None:
        self.outbox.emit(OutSetTimer(seconds_remaining=seconds_remaining, fraction=round(fraction, 4)))

    def set_feedback(self, text: str) -> None:
        self.outbox.emit(OutSetFeedback(text=text))

    def set_input_enabled(self, enabled: bool) -> None:
        self.outbox.emit(OutSetInputEnabled(enabled=enabled))

    def show_player_roster(self, players: List[Player]) -> None:
        self.outbox.emit(OutPlayerRoster(players=[p.model_dump() for p in players]))

    def plus_one(self) -> None:
        self.outbox.emit(OutPlusOne())


class OutboxConversation:
    def __init__(self, outbox: EventOutbox) -> None:
        self.outbox = outbox

    def insert_message(self, url: str, caption: str, subcaption: str = "") -> None:
        self.outbox.emit(OutInsertMessage(url=url, caption=caption, subcaption=subcaption))
