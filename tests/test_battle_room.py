import pytest

from citystate.domain.battle import BattleRoom, quorum_met
from citystate.domain.common.models import Player
from citystate.transport.codec import BattlePayload, RosterEntry


@pytest.fixture
def handoffs():
    return []


@pytest.fixture
def room(presenter, conversation, handoffs):
    return BattleRoom(
        presenter=presenter,
        conversation=conversation,
        local_player_id="me",
        local_name="Alice",
        on_quorum=handoffs.append,
    )


def _update(kind, pid, **kw):
    return BattlePayload(type=kind, playerId=pid, **kw)


def test_quorum_needs_two_ready_players():
    assert not quorum_met([])
    assert not quorum_met([Player(name="Solo", is_ready=True)])
    assert not quorum_met([Player(name="A", is_ready=True), Player(name="B")])
    assert quorum_met([Player(name="A", is_ready=True), Player(name="B", is_ready=True)])


def test_lone_ready_player_never_starts(room, handoffs):
    room.join(None)
    assert room.toggle_ready(True)

    assert handoffs == []
    assert room.phase == "POPULATED"
    assert room.readiness == "SOME_READY"


def test_two_ready_players_hand_off_exactly_once(room, handoffs, presenter):
    room.join(None)
    room.receive_inbound(_update("playerJoin", "bob", name="Bob", isReady=False))
    room.toggle_ready(True)
    assert handoffs == []
    assert presenter.feedback[-1] == "Battle Waiting Room: 1/2 ready"

    room.receive_inbound(_update("playerReady", "bob", isReady=True))

    assert room.phase == "HANDED_OFF"
    assert len(handoffs) == 1
    assert [p.name for p in handoffs[0]] == ["Alice", "Bob"]

    # late updates after hand-off change nothing
    room.receive_inbound(_update("playerReady", "bob", isReady=False))
    assert not room.toggle_ready(False)
    assert len(handoffs) == 1


def test_toggle_ready_broadcasts_full_roster(room, conversation):
    room.join(None)
    room.toggle_ready(True)

    url, caption, subcaption = conversation.messages[-1]
    assert (caption, subcaption) == ("Join the Battle Waiting Room!", "Battle Mode")
    update = conversation.payloads[-1]
    assert update.type == "playerReady"
    assert update.playerId == "me"
    assert update.isReady is True
    assert [(e.id, e.ready) for e in update.roster] == [("me", True)]


def test_join_from_invite_appends_local_player(room, conversation):
    invite = BattlePayload(roster=[RosterEntry(id="host", name="Hana", ready=True)])
    room.join(invite)

    assert [p.id for p in room.players] == ["host", "me"]
    update = conversation.payloads[-1]
    assert update.type == "playerJoin"
    assert update.name == "Alice"
    assert [e.id for e in update.roster] == ["host", "me"]


def test_join_adopts_roster_that_already_lists_us(room, conversation):
    snapshot = BattlePayload(
        roster=[
            RosterEntry(id="host", name="Hana", ready=False),
            RosterEntry(id="me", name="Ally", ready=True),
        ]
    )
    room.join(snapshot)

    assert [p.name for p in room.players] == ["Hana", "Ally"]
    assert room.local_name == "Ally"
    assert conversation.messages == []


def test_join_full_room_reports_and_stays_out(presenter, conversation):
    room = BattleRoom(
        presenter=presenter,
        conversation=conversation,
        local_player_id="me",
        max_players=2,
    )
    room.join(BattlePayload(roster=[RosterEntry(id="a", name="A"), RosterEntry(id="b", name="B")]))

    assert room.local_player is None
    assert presenter.feedback[-1] == "This room is full."
    assert conversation.messages == []


def test_full_room_never_hands_off_to_outsider(presenter, conversation):
    handoffs = []
    room = BattleRoom(
        presenter=presenter,
        conversation=conversation,
        local_player_id="me",
        on_quorum=handoffs.append,
        max_players=2,
    )
    room.join(
        BattlePayload(
            roster=[RosterEntry(id="a", name="A", ready=True), RosterEntry(id="b", name="B", ready=False)]
        )
    )
    room.receive_inbound(_update("playerReady", "b", isReady=True))

    assert handoffs == []
    assert room.phase != "HANDED_OFF"


def test_unknown_ids_and_kinds_are_ignored(room, presenter):
    room.join(None)
    rendered = len(presenter.rosters)

    room.receive_inbound(_update("playerReady", "ghost", isReady=True))
    room.receive_inbound(_update("playerDance", "me"))
    room.receive_inbound(_update("playerLeave", "ghost"))

    assert len(presenter.rosters) == rendered
    assert room.local_player.is_ready is False


def test_duplicate_join_is_ignored(room):
    room.join(None)
    room.receive_inbound(_update("playerJoin", "bob", name="Bob"))
    room.receive_inbound(_update("playerJoin", "bob", name="Bobby"))

    assert [p.name for p in room.players] == ["Alice", "Bob"]


def test_remote_rename_and_leave(room):
    room.join(None)
    room.receive_inbound(_update("playerJoin", "bob", name="Bob"))
    room.receive_inbound(_update("playerName", "bob", name="Robert"))
    assert room.find("bob").name == "Robert"

    room.receive_inbound(_update("playerLeave", "bob"))
    assert room.find("bob") is None


def test_remaining_players_reach_quorum_after_a_leave(room, handoffs):
    room.join(None)
    room.receive_inbound(_update("playerJoin", "bob", name="Bob", isReady=True))
    room.receive_inbound(_update("playerJoin", "cy", name="Cy", isReady=False))
    room.toggle_ready(True)
    assert handoffs == []

    room.receive_inbound(_update("playerLeave", "cy"))
    assert [p.name for p in handoffs[0]] == ["Alice", "Bob"]


def test_local_rename_defaults_blank_name(room, conversation):
    room.join(None)
    assert room.rename("   ")

    assert room.local_player.name == "You"
    assert conversation.payloads[-1].type == "playerName"


def test_leave_closes_room_and_broadcasts(room, conversation, presenter):
    room.join(None)
    room.receive_inbound(_update("playerJoin", "bob", name="Bob"))
    room.leave()

    assert room.phase == "CLOSED"
    update = conversation.payloads[-1]
    assert update.type == "playerLeave"
    assert update.playerId == "me"
    assert [e.id for e in update.roster] == ["bob"]
    assert presenter.feedback[-1] == "You left the room."


def test_send_invite_carries_local_player(room, conversation):
    room.join(None)
    room.send_invite()

    invite = conversation.payloads[-1]
    assert invite.type is None
    assert [(e.id, e.name) for e in invite.roster] == [("me", "Alice")]
