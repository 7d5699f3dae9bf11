import pytest

from citystate.domain.classic import ClassicSession, result_text
from citystate.transport.codec import ClassicPayload


@pytest.fixture
def session(presenter, conversation, validator, clock, rng):
    return ClassicSession(
        presenter=presenter,
        conversation=conversation,
        validator=validator,
        clock=clock,
        time_limit=20,
        rng=rng,
    )


def test_begin_presents_turn_and_starts_clock(session, presenter, clock):
    session.begin("a")

    assert session.phase == "PLAYING"
    assert session.letter == "A"
    assert session.score == 0
    assert presenter.letters == ["A"]
    assert presenter.timers[-1] == (20, 1.0)
    assert presenter.input_enabled[-1] is True
    assert clock.running and clock.remaining == 20


def test_begin_without_letter_picks_from_alphabet(session):
    session.begin()
    assert session.letter in "ABCDEFGHIJKLMNOPRSTUVWZ"


def test_correct_then_duplicate(session, presenter):
    session.begin("A")

    first = session.submit("Atlanta")
    assert first.accepted
    assert session.score == 1
    assert presenter.plus_ones == 1

    again = session.submit("atlanta")
    assert again.code == "ALREADY_USED"
    assert session.score == 1
    assert presenter.feedback[-1] == "That word was already used."


def test_wrong_letter_keeps_score(session, presenter):
    session.begin("B")

    out = session.submit("Canada")
    assert out.code == "WRONG_LETTER"
    assert session.score == 0
    assert presenter.feedback[-1] == "Hmm... doesn't start with B"


def test_timer_is_not_reset_by_correct_guess(session, clock):
    session.begin("A")
    clock.tick()
    session.submit("Atlanta")

    assert clock.starts == 1
    assert clock.remaining == 19


def test_reset_variant_restarts_timer_on_correct_guess(presenter, conversation, validator, clock):
    s = ClassicSession(
        presenter=presenter,
        conversation=conversation,
        validator=validator,
        clock=clock,
        time_limit=20,
        reset_clock_on_correct=True,
    )
    s.begin("A")
    clock.tick()
    s.submit("Atlanta")

    assert clock.starts == 2
    assert clock.remaining == 20


def test_ticks_update_timer_fraction(session, presenter, clock):
    session.begin("A")
    clock.tick()
    assert session.time_remaining == 19
    assert presenter.timers[-1] == (19, 19 / 20)


def test_submit_after_expiry_is_rejected(session, clock):
    session.begin("A")
    clock.expire()

    out = session.submit("Atlanta")
    assert out.code == "NOT_PLAYING"


def test_first_player_hands_off_score_then_resolves_on_result(session, presenter, conversation, clock):
    session.begin("A")
    for word in ["Atlanta", "Amsterdam", "Athens", "Austin", "Austria", "Alabama", "Argentina"]:
        assert session.submit(word).accepted
    assert session.category_counts == {"CITY": 4, "COUNTRY": 2, "STATE": 1}

    clock.expire()

    assert session.phase == "AWAITING_OPPONENT"
    assert presenter.input_enabled[-1] is False
    assert any(f.startswith("Time's up!\nYou scored 7 total:") for f in presenter.feedback)
    handoff = conversation.payloads[-1]
    assert handoff.score == 7
    assert handoff.letter == "A"
    assert handoff.completed is False
    assert conversation.messages[-1][1] == "LET'S PLAY CITY COUNTRY STATE!"

    session.receive_inbound(ClassicPayload(score=5, letter="A", p1score=7, p2score=5, completed=True))

    assert session.phase == "FINISHED"
    assert session.result == result_text(7, 5)
    assert session.result.startswith("You won!")


def test_second_player_resolves_and_sends_result(session, presenter, conversation, clock):
    session.receive_inbound(ClassicPayload(score=3, letter="B", p1score=3, completed=False))

    assert session.phase == "PLAYING"
    assert session.letter == "B"
    assert session.opponent_score == 3

    session.submit("Boston")
    session.submit("Berlin")
    clock.expire()

    assert session.phase == "FINISHED"
    assert session.result.startswith("You lost.")
    result = conversation.payloads[-1]
    assert result.completed is True
    assert (result.score, result.p1score, result.p2score) == (2, 3, 2)


def test_tie_result():
    assert result_text(4, 4) == "It's a tie! 🤝\nScore: 4"


def test_invite_starts_turn_without_opponent_score(session):
    session.receive_inbound(ClassicPayload(score=0, letter="C"))

    assert session.phase == "PLAYING"
    assert session.letter == "C"
    assert session.opponent_score is None


def test_stale_invite_ignored_while_playing(session):
    session.begin("A")
    session.submit("Atlanta")
    session.receive_inbound(ClassicPayload(score=0, letter="C"))

    assert session.letter == "A"
    assert session.score == 1


def test_own_handoff_reopened_while_waiting_is_ignored(session, conversation, clock):
    session.begin("A")
    clock.expire()
    session.receive_inbound(conversation.payloads[-1])

    assert session.phase == "AWAITING_OPPONENT"


def test_result_seen_by_a_third_device(session, presenter):
    session.receive_inbound(ClassicPayload(score=4, letter="A", p1score=2, p2score=4, completed=True))

    assert session.phase == "FINISHED"
    assert session.result == "🏆 Player 2 wins! (4 vs 2)"
    assert presenter.feedback[-1] == session.result


def test_send_invite_posts_classic_message(session, conversation):
    url = session.send_invite("d")

    assert conversation.messages == [(url, "LET'S PLAY CITY COUNTRY STATE!", "Classic Mode")]
    invite = conversation.payloads[0]
    assert (invite.letter, invite.score, invite.completed) == ("D", 0, None)
    assert session.phase == "IDLE"


def test_stop_halts_clock(session, clock):
    session.begin("A")
    session.stop()
    assert not clock.running


def test_name_in_several_lists_scores_once(session):
    session.begin("G")
    out = session.submit("Georgia")

    assert out.category == "COUNTRY"
    assert session.score == 1
    assert session.category_counts == {"CITY": 0, "COUNTRY": 1, "STATE": 0}
