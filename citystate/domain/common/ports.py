# citystate/domain/common/ports.py
from __future__ import annotations

from typing import List, Protocol

from citystate.domain.common.models import Player


class Presenter(Protocol):
    """What the game core is allowed to ask of the rendering surface."""

    def set_letter(self, letter: str) -> None: ...

    def set_score(self, score: int) -> None: ...

    def set_timer(self, seconds_remaining: int, fraction: float) -> None: ...

    def set_feedback(self, text: str) -> None: ...

    def set_input_enabled(self, enabled: bool) -> None: ...

    def show_player_roster(self, players: List[Player]) -> None: ...

    def plus_one(self) -> None: ...


class Conversation(Protocol):
    """Outbound side of the chat: attach a payload URL to a new message."""

    def insert_message(self, url: str, caption: str, subcaption: str = "") -> None: ...
