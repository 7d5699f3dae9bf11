# citystate/transport/dispatcher.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from citystate.domain.coordinator import GameCoordinator
from citystate.transport.protocols import (
    parse_incoming,
    OutError,
    OutGuessResult,
    InOpen,
    InStartClassic,
    InInviteClassic,
    InStartBattle,
    InSubmit,
    InSetReady,
    InSetName,
    InLeaveRoom,
    InStop,
)

logger = logging.getLogger(__name__)

DispatchResult = List[Dict[str, Any]]
# direct replies to the sender; presenter / conversation events go through the outbox


async def dispatch_message(*, coordinator: GameCoordinator, raw: Dict[str, Any]) -> DispatchResult:
    """
    Transport layer calls this.
    - Parses + validates raw JSON
    - Routes to the device's coordinator
    - Returns direct replies as JSON dicts

    NOTE: This file contains NO game rules.
    """
    try:
        msg = parse_incoming(raw)
    except (ValidationError, ValueError) as e:
        return [OutError(code="BAD_MESSAGE", message=str(e)).model_dump()]

    if isinstance(msg, InOpen):
        await coordinator.open(msg.url)
        return []

    if isinstance(msg, InStartClassic):
        coordinator.start_classic()
        return []

    if isinstance(msg, InInviteClassic):
        coordinator.send_classic_invite()
        return []

    if isinstance(msg, InStartBattle):
        await coordinator.start_battle_room()
        return []

    if isinstance(msg, InSubmit):
        outcome = coordinator.submit(msg.text)
        return [
            OutGuessResult(
                accepted=outcome.accepted,
                code=outcome.code,
                word=outcome.word,
                category=outcome.category,
            ).model_dump()
        ]

    if isinstance(msg, InSetReady):
        if not coordinator.set_ready(msg.ready):
            return [OutError(code="NOT_IN_ROOM", message="No battle room is accepting changes").model_dump()]
        return []

    if isinstance(msg, InSetName):
        await coordinator.set_name(msg.name)
        return []

    if isinstance(msg, InLeaveRoom):
        coordinator.leave_room()
        return []

    if isinstance(msg, InStop):
        coordinator.stop()
        coordinator.show_home()
        return []

    logger.warning("Unhandled message type: %s", msg.type)
    return [OutError(code="UNHANDLED", message=f"Unhandled message type: {msg.type}").model_dump()]
