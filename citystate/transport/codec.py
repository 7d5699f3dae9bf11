# citystate/transport/codec.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Literal, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qsl, quote, urlencode, urlsplit

from pydantic import BaseModel, Field

from citystate.domain.common.models import MAX_ROOM_PLAYERS, Player
from citystate.domain.common.types import RoomUpdateKind

logger = logging.getLogger(__name__)

Pairs = List[Tuple[str, str]]

CLASSIC_CAPTION = "LET'S PLAY CITY COUNTRY STATE!"
CLASSIC_SUBCAPTION = "Classic Mode"
BATTLE_CAPTION = "Join the Battle Waiting Room!"
BATTLE_SUBCAPTION = "Battle Mode"


# =========================
# Payload models
# =========================

class RosterEntry(BaseModel):
    id: str
    name: str
    ready: bool = False


class ClassicPayload(BaseModel):
    mode: Literal["classic"] = "classic"
    score: Optional[int] = None
    letter: Optional[str] = None
    p1score: Optional[int] = None
    p2score: Optional[int] = None
    completed: Optional[bool] = None


class BattlePayload(BaseModel):
    mode: Literal["battle"] = "battle"
    type: Optional[str] = None
    playerId: Optional[str] = None
    name: Optional[str] = None
    isReady: Optional[bool] = None
    guess: Optional[str] = None
    playerIndex: Optional[int] = None
    activePlayerIndex: Optional[int] = None
    score: Optional[int] = None
    roster: List[RosterEntry] = Field(default_factory=list)


Payload = Union[ClassicPayload, BattlePayload]

# Fixed key order keeps the encoded form stable for the same logical state.
_CLASSIC_KEYS = ("mode", "score", "letter", "p1score", "p2score", "completed")
_BATTLE_KEYS = ("mode", "type", "playerId", "name", "isReady", "guess", "playerIndex", "activePlayerIndex", "score")

_CLASSIC_HINT_KEYS = ("letter", "p1score", "p2score", "completed")


# =========================
# Scalar helpers
# =========================

def _fmt(v: object) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


def _int(raw: Optional[str]) -> Optional[int]:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except (TypeError, ValueError):
        return None


def _score(raw: Optional[str]) -> Optional[int]:
    v = _int(raw)
    return v if v is not None and v >= 0 else None


def _bool(raw: Optional[str]) -> Optional[bool]:
    if raw is None:
        return None
    v = raw.strip().lower()
    if v == "true":
        return True
    if v == "false":
        return False
    return None


def _text(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    v = raw.strip()
    return v or None


def _name(raw: Optional[str]) -> Optional[str]:
    # names keep their spacing; only a blank name counts as absent
    if raw is None or not raw.strip():
        return None
    return raw


def _letter(raw: Optional[str]) -> Optional[str]:
    v = _text(raw)
    if v is None or not v[0].isalpha():
        return None
    return v[0].upper()


# =========================
# Encode
# =========================

def encode_payload(payload: Payload) -> Pairs:
    """Model -> ordered key/value pairs. Absent (None) fields are omitted."""
    data = payload.model_dump()
    keys = _CLASSIC_KEYS if isinstance(payload, ClassicPayload) else _BATTLE_KEYS
    pairs: Pairs = [(k, _fmt(data[k])) for k in keys if data.get(k) is not None]

    if isinstance(payload, BattlePayload):
        for i, entry in enumerate(payload.roster[:MAX_ROOM_PLAYERS], start=1):
            pairs.append((f"player{i}id", entry.id))
            pairs.append((f"player{i}name", entry.name))
            pairs.append((f"player{i}ready", _fmt(entry.ready)))
    return pairs


def to_url(pairs: Sequence[Tuple[str, str]]) -> str:
    return "?" + urlencode(list(pairs), quote_via=quote)


def encode_url(payload: Payload) -> str:
    return to_url(encode_payload(payload))


# =========================
# Decode
# =========================

def _first_values(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    # first occurrence wins, like a query-item lookup
    out: Dict[str, str] = {}
    for k, v in pairs:
        if isinstance(k, str) and k not in out:
            out[k] = v if isinstance(v, str) else str(v)
    return out


def _decode_roster(raw: Dict[str, str], max_slots: int) -> List[RosterEntry]:
    roster: List[RosterEntry] = []
    seen: set[str] = set()
    for i in range(1, max_slots + 1):
        name = _name(raw.get(f"player{i}name"))
        if name is None:
            continue
        pid = _text(raw.get(f"player{i}id")) or f"player{i}"
        if pid in seen:
            continue
        seen.add(pid)
        roster.append(RosterEntry(id=pid, name=name, ready=bool(_bool(raw.get(f"player{i}ready")))))
    return roster


def _infer_mode(raw: Dict[str, str]) -> Optional[str]:
    mode = (raw.get("mode") or "").strip().lower()
    if mode in ("classic", "battle"):
        return mode
    if mode:
        return None
    # older messages carry no mode key
    if "type" in raw or "player1name" in raw:
        return "battle"
    if any(k in raw for k in _CLASSIC_HINT_KEYS):
        return "classic"
    return None


def decode_pairs(pairs: Iterable[Tuple[str, str]], *, max_slots: int = MAX_ROOM_PLAYERS) -> Optional[Payload]:
    """
    Key/value pairs -> typed payload.
    Missing keys, unknown keys and unparsable values degrade to None; never raises.
    Returns None when no game mode can be recognised.
    """
    raw = _first_values(pairs)
    mode = _infer_mode(raw)

    if mode == "classic":
        return ClassicPayload(
            score=_score(raw.get("score")),
            letter=_letter(raw.get("letter")),
            p1score=_score(raw.get("p1score")),
            p2score=_score(raw.get("p2score")),
            completed=_bool(raw.get("completed")),
        )

    if mode == "battle":
        return BattlePayload(
            type=_text(raw.get("type")),
            playerId=_text(raw.get("playerId")),
            name=_name(raw.get("name")),
            isReady=_bool(raw.get("isReady")),
            guess=raw.get("guess"),
            playerIndex=_int(raw.get("playerIndex")),
            activePlayerIndex=_int(raw.get("activePlayerIndex")),
            score=_score(raw.get("score")),
            roster=_decode_roster(raw, max_slots),
        )

    if raw:
        logger.debug("Ignoring payload without a recognisable mode: keys=%s", sorted(raw))
    return None


def decode_url(url: Optional[str], *, max_slots: int = MAX_ROOM_PLAYERS) -> Optional[Payload]:
    if not url:
        return None
    query = urlsplit(url).query if "?" in url else url
    try:
        pairs = parse_qsl(query, keep_blank_values=True)
    except ValueError:
        logger.warning("Unparsable payload url: %r", url)
        return None
    return decode_pairs(pairs, max_slots=max_slots)


# =========================
# Builders
# =========================

def roster_of(players: Sequence[Player]) -> List[RosterEntry]:
    return [RosterEntry(id=p.id, name=p.name, ready=p.is_ready) for p in players]


def classic_invite(letter: str) -> ClassicPayload:
    return ClassicPayload(score=0, letter=letter)


def classic_handoff(letter: str, score: int) -> ClassicPayload:
    return ClassicPayload(score=score, letter=letter, p1score=score, completed=False)


def classic_result(letter: str, score: int, p1score: int, p2score: int) -> ClassicPayload:
    return ClassicPayload(score=score, letter=letter, p1score=p1score, p2score=p2score, completed=True)


def battle_invite(player: Player) -> BattlePayload:
    return BattlePayload(roster=roster_of([player]))


def battle_room_update(kind: RoomUpdateKind, player: Player, players: Sequence[Player]) -> BattlePayload:
    payload = BattlePayload(type=kind, playerId=player.id, roster=roster_of(players))
    if kind in ("playerReady", "playerJoin"):
        payload.isReady = player.is_ready
    if kind in ("playerName", "playerJoin"):
        payload.name = player.name
    return payload


def battle_guess(player_index: int, guess: str) -> BattlePayload:
    return BattlePayload(type="guess", playerIndex=player_index, guess=guess)


def battle_turn_update(active_index: int) -> BattlePayload:
    return BattlePayload(type="turnUpdate", activePlayerIndex=active_index)


def battle_score_update(player_index: int, score: int) -> BattlePayload:
    return BattlePayload(type="scoreUpdate", playerIndex=player_index, score=score)


def send_payload(conversation, payload: Payload) -> str:
    """Encode and hand the payload to the chat collaborator. Returns the url."""
    url = encode_url(payload)
    if isinstance(payload, ClassicPayload):
        conversation.insert_message(url, CLASSIC_CAPTION, CLASSIC_SUBCAPTION)
    else:
        conversation.insert_message(url, BATTLE_CAPTION, BATTLE_SUBCAPTION)
    logger.debug("Outbound %s payload: %s", payload.mode, url)
    return url
