from typing import Callable

import pytest

from conftest import FakeClient, RecordingSpeech, questions_payload
from player.config import (
    INVALID_PARAMETERS_ERROR,
    MULTI_SET_LOAD_ERROR,
    SESSION_COMPLETED_MESSAGE,
    SINGLE_SET_LOAD_ERROR,
)
from player.models import DigitItem, ResultsHandoff, SessionStatus
from player.services.scheduler import VirtualScheduler
from player.services.session_controller import SessionController

ControllerFactory = Callable[..., SessionController]


@pytest.fixture
def navigated() -> list[ResultsHandoff]:
    return []


@pytest.fixture
def controller(
    make_controller: ControllerFactory, two_sets_client: FakeClient, navigated: list[ResultsHandoff]
) -> SessionController:
    controller = make_controller(two_sets_client, on_navigate=navigated.append)
    controller.open("1", "2", "5,7")
    return controller


def test_open_loads_sets_in_order_and_autostarts(
    controller: SessionController, two_sets_client: FakeClient, scheduler: VirtualScheduler
) -> None:
    assert two_sets_client.calls == [("1", "2", "5"), ("1", "2", "7")]
    assert controller.status == SessionStatus.READY
    assert len(controller.deck) == 5
    assert [q.global_index for q in controller.deck.questions] == [0, 1, 2, 3, 4]
    assert controller.state.current_question_index == 0
    assert controller.state.time_remaining == 9
    assert not controller.state.is_playing

    scheduler.advance(0.5)
    assert controller.state.is_playing
    assert controller.state.is_auto_playing


def test_single_set_failure_reports_error(make_controller: ControllerFactory) -> None:
    client = FakeClient()
    controller = make_controller(client)
    controller.open("1", "2", "9")

    assert controller.status == SessionStatus.ERROR
    assert controller.error == SINGLE_SET_LOAD_ERROR
    assert controller.deck.is_empty


def test_any_failed_set_aborts_multi_set_load(make_controller: ControllerFactory) -> None:
    client = FakeClient({"5": questions_payload(5, "Warm up", [("1 + 2", 4)])})
    controller = make_controller(client)
    controller.open("1", "2", "5,9")

    assert controller.status == SessionStatus.ERROR
    assert controller.error == MULTI_SET_LOAD_ERROR
    assert controller.deck.is_empty
    assert controller.snapshot().total_questions == 0


def test_empty_set_is_not_playable(
    make_controller: ControllerFactory, scheduler: VirtualScheduler
) -> None:
    client = FakeClient({"5": questions_payload(5, "Nothing yet", [])})
    controller = make_controller(client)
    controller.open("1", "2", "5")

    assert controller.status == SessionStatus.EMPTY
    controller.toggle_play()
    controller.next_question()
    assert not controller.state.is_playing
    assert scheduler.pending == 0


@pytest.mark.parametrize(
    ("level", "week", "sets"),
    [
        ("", "2", "5"),
        ("1", None, "5"),
        ("1", "2", " , ,"),
        ("..", "2", "5"),
        ("1", "2", "5/../7"),
    ],
)
def test_invalid_parameters_never_fetch(
    make_controller: ControllerFactory, level, week, sets
) -> None:
    client = FakeClient()
    controller = make_controller(client)
    controller.open(level, week, sets)

    assert controller.status == SessionStatus.ERROR
    assert controller.error == INVALID_PARAMETERS_ERROR
    assert client.calls == []


def test_reload_retries_last_request(make_controller: ControllerFactory) -> None:
    client = FakeClient()
    controller = make_controller(client)
    controller.open("1", "2", "5")
    assert controller.status == SessionStatus.ERROR

    client.payloads["5"] = questions_payload(5, "Warm up", [("1 + 2", 4)])
    controller.reload()
    assert controller.status == SessionStatus.READY
    assert client.calls == [("1", "2", "5"), ("1", "2", "5")]


def test_late_load_after_close_is_discarded(
    make_controller: ControllerFactory, two_sets_client: FakeClient, scheduler: VirtualScheduler
) -> None:
    deferred: list[tuple] = []
    controller = make_controller(
        two_sets_client, spawn=lambda target, *args: deferred.append((target, args))
    )
    controller.open("1", "2", "5")
    assert controller.status == SessionStatus.LOADING

    controller.close()
    target, args = deferred.pop()
    target(*args)

    assert controller.deck.is_empty
    assert not controller.is_ready
    assert scheduler.pending == 0


def test_superseded_load_is_discarded(
    make_controller: ControllerFactory, two_sets_client: FakeClient
) -> None:
    deferred: list[tuple] = []
    controller = make_controller(
        two_sets_client, spawn=lambda target, *args: deferred.append((target, args))
    )
    controller.open("1", "2", "5")
    controller.open("1", "2", "7")

    # the newer request answers first, the older one straggles in afterwards
    for target, args in reversed(deferred):
        target(*args)

    assert controller.status == SessionStatus.READY
    assert [s.name for s in controller.deck.question_sets] == ["Speed round"]


def test_full_session_plays_through_to_results(
    controller: SessionController,
    scheduler: VirtualScheduler,
    speech: RecordingSpeech,
    navigated: list[ResultsHandoff],
) -> None:
    # q0: autostart 0.5, lead-in to 1.0, four 2.25s steps, settle, advance
    scheduler.advance(10.6)
    assert controller.state.current_question_index == 0
    assert controller.announcement == "Next."
    scheduler.advance(0.1)
    assert controller.state.current_question_index == 1
    assert controller.state.is_playing

    scheduler.run_until_idle()

    assert speech.texts == [
        "1", "add", "2",
        "Next.",
        "4", "less", "1",
        "Moving to Speed round",
        "Starting question set 2",
        "2", "into", "3",
        "Next.",
        "8", "divide by", "2",
        "Next.",
        "5", "add", "5",
        SESSION_COMPLETED_MESSAGE,
    ]
    state = controller.state
    assert state.current_question_index == 4
    assert state.completed_sets == frozenset({0, 1})
    assert state.session_completed
    assert not state.is_playing
    assert len(state.visible_digits) == 2
    assert len(state.visible_operators) == 1

    assert len(navigated) == 1
    handoff = navigated[0]
    assert (handoff.level, handoff.week) == ("1", "2")
    assert len(handoff.questions) == 5
    assert [s.id for s in handoff.question_sets] == [5, 7]
    assert controller.results == handoff


def test_announcements_use_preferred_voice(
    controller: SessionController, scheduler: VirtualScheduler, speech: RecordingSpeech
) -> None:
    scheduler.advance(10.6)
    assert ("Next.", 1.0, "Google US English") in speech.spoken
    assert ("1", 1.0, None) in speech.spoken


def test_mute_silences_but_still_reveals(
    controller: SessionController, scheduler: VirtualScheduler, speech: RecordingSpeech
) -> None:
    assert controller.toggle_mute() is True
    scheduler.run_until_idle()

    assert speech.spoken == []
    assert controller.state.session_completed
    assert len(controller.state.visible_digits) == 2
    assert controller.snapshot().is_muted


def test_pause_stops_reveal_and_play_restarts_question(
    controller: SessionController, scheduler: VirtualScheduler
) -> None:
    scheduler.advance(5.5)
    assert controller.state.steps_revealed == 2

    controller.toggle_play()
    assert not controller.state.is_playing
    scheduler.advance(20)
    assert controller.state.steps_revealed == 2
    assert controller.state.current_question_index == 0

    controller.toggle_play()
    assert controller.state.is_playing
    assert controller.state.steps_revealed == 0
    assert controller.state.time_remaining == 9


def test_previous_at_first_question_is_noop(controller: SessionController) -> None:
    before = controller.state
    controller.previous_question()
    assert controller.state == before


def test_previous_pauses_on_earlier_question(
    controller: SessionController, scheduler: VirtualScheduler
) -> None:
    scheduler.advance(0.5)
    controller.jump_to_question(2)
    controller.previous_question()

    assert controller.state.current_question_index == 1
    assert not controller.state.is_playing
    assert controller.state.steps_revealed == 0


def test_next_plays_following_question_without_cue(
    controller: SessionController, scheduler: VirtualScheduler, speech: RecordingSpeech
) -> None:
    controller.next_question()
    assert controller.state.current_question_index == 1
    assert controller.state.is_playing
    scheduler.advance(0.5)
    assert "Next." not in speech.texts
    # autostart was superseded by the manual skip
    assert controller.state.current_question_index == 1


def test_next_on_last_question_while_playing_completes(
    controller: SessionController, scheduler: VirtualScheduler, navigated: list[ResultsHandoff]
) -> None:
    controller.jump_to_question(4)
    controller.toggle_play()
    controller.next_question()

    assert not controller.state.is_playing
    assert 1 in controller.state.completed_sets
    assert controller.has_pending("completion")

    scheduler.advance(2.0)
    assert controller.state.session_completed
    assert controller.announcement == SESSION_COMPLETED_MESSAGE
    assert navigated == []

    scheduler.advance(3.0)
    assert len(navigated) == 1


def test_next_on_last_question_while_paused_is_noop(
    controller: SessionController, scheduler: VirtualScheduler
) -> None:
    controller.jump_to_question(4)
    before = controller.state
    controller.next_question()

    assert controller.state == before
    assert not controller.has_pending("completion")


def test_dismiss_cancels_results_navigation(
    controller: SessionController, scheduler: VirtualScheduler, navigated: list[ResultsHandoff]
) -> None:
    controller.jump_to_question(4)
    controller.toggle_play()
    controller.next_question()
    scheduler.advance(2.0)
    assert controller.state.session_completed

    controller.dismiss_completion()
    scheduler.advance(5.0)
    assert not controller.state.session_completed
    assert navigated == []

    handoff = controller.show_results()
    assert navigated == [handoff]


def test_leaving_last_step_cancels_pending_completion(
    controller: SessionController, scheduler: VirtualScheduler
) -> None:
    controller.jump_to_question(4)
    controller.toggle_play()
    # lead-in 0.5 then three 4/3s steps
    scheduler.advance(4.6)
    assert controller.state.current_step == 2
    assert controller.has_pending("completion")

    controller.previous_question()
    assert not controller.has_pending("completion")
    scheduler.advance(10)
    assert not controller.state.session_completed


def test_restart_is_idempotent(controller: SessionController, scheduler: VirtualScheduler) -> None:
    scheduler.advance(15)
    assert controller.state.current_question_index == 1

    controller.restart()
    first = controller.state
    controller.restart()

    assert controller.state == first
    assert first.current_question_index == 0
    assert first.current_set_index == 0
    assert first.steps_revealed == 0
    assert first.completed_sets == frozenset()
    assert not first.is_playing
    assert first.time_remaining == 9
    assert scheduler.pending == 0


def test_jump_to_question(controller: SessionController) -> None:
    controller.jump_to_question(2)
    assert controller.current_question.id == 701
    assert controller.state.current_set_index == 1
    assert not controller.state.is_playing

    with pytest.raises(IndexError):
        controller.jump_to_question(5)
    with pytest.raises(IndexError):
        controller.jump_to_question(-1)


def test_crossing_sets_pulses_transition(
    controller: SessionController, scheduler: VirtualScheduler, speech: RecordingSpeech
) -> None:
    controller.jump_to_question(2)
    assert controller.state.is_set_transition
    assert controller.announcement == "Starting question set 2"

    scheduler.advance(0.5)
    assert not controller.state.is_set_transition


def test_jump_to_set_skips_transition(controller: SessionController) -> None:
    controller.jump_to_set(1)
    assert controller.state.current_question_index == 2
    assert controller.state.current_set_index == 1
    assert not controller.state.is_set_transition
    assert controller.announcement is None

    with pytest.raises(IndexError):
        controller.jump_to_set(2)


def test_reorder_keeps_current_question(controller: SessionController) -> None:
    controller.jump_to_question(1)
    current = controller.current_question

    controller.reorder_sets(["7", "5"])
    assert [s.name for s in controller.deck.question_sets] == ["Speed round", "Warm up"]
    assert [s.original_order for s in controller.deck.question_sets] == [0, 1]
    assert controller.state.current_question_index == 4
    assert controller.current_question.id == current.id
    assert controller.current_question.set_index == 1

    controller.reorder_sets([5, 7])
    assert controller.state.current_question_index == 1
    assert [q.id for q in controller.deck.questions] == [501, 502, 701, 702, 703]


def test_reorder_rejects_partial_order(controller: SessionController) -> None:
    with pytest.raises(ValueError):
        controller.reorder_sets(["7"])
    assert [s.id for s in controller.deck.question_sets] == [5, 7]


def test_speed_changes_apply_to_narration(
    controller: SessionController, scheduler: VirtualScheduler, speech: RecordingSpeech
) -> None:
    controller.set_speed(1.5)
    scheduler.advance(3.25)
    assert speech.spoken[-1] == ("1", 1.5, None)

    with pytest.raises(ValueError):
        controller.set_speed(3)
    assert controller.snapshot().playback_speed == 1.5


def test_snapshot_describes_current_reveal(
    controller: SessionController, scheduler: VirtualScheduler
) -> None:
    scheduler.advance(3.25)
    snapshot = controller.snapshot()

    assert snapshot.status == SessionStatus.READY
    assert snapshot.level == "1"
    assert snapshot.week == "2"
    assert snapshot.is_multi_set
    assert snapshot.total_questions == 5
    assert snapshot.current_question.id == 501
    assert snapshot.current_item == DigitItem(value=1, position=0)
    assert snapshot.time_display == "00:07"
    assert snapshot.step_progress == 0
    assert snapshot.question_progress == 20


def test_close_stops_everything(
    controller: SessionController, scheduler: VirtualScheduler, speech: RecordingSpeech
) -> None:
    scheduler.advance(4)
    controller.close()
    spoken = list(speech.spoken)

    scheduler.run_until_idle()
    assert speech.spoken == spoken
    assert scheduler.pending == 0


def test_same_set_twice_plays_every_question(
    make_controller: ControllerFactory, scheduler: VirtualScheduler
) -> None:
    client = FakeClient({"5": questions_payload(5, "Warm up", [("1 + 2", 3), ("4 - 1", 3)])})
    controller = make_controller(client)
    visited: list[int] = []

    def record(state) -> None:
        if not visited or visited[-1] != state.current_question_index:
            visited.append(state.current_question_index)

    controller.store.subscribe(record)
    controller.open("1", "2", "5,5")
    scheduler.run_until_idle()

    assert visited == [0, 1, 2, 3]
    assert controller.state.completed_sets == frozenset({0, 1})
    assert controller.state.session_completed


def test_reorder_during_advance_follows_the_next_question(
    controller: SessionController, scheduler: VirtualScheduler
) -> None:
    # q 501 has finished and the 0.2s advance is pending
    scheduler.advance(10.55)
    assert controller.has_pending("advance")

    controller.reorder_sets(["7", "5"])
    assert controller.state.current_question_index == 3

    scheduler.advance(0.2)
    assert controller.state.current_question_index == 4
    assert controller.current_question.id == 502
    assert controller.state.is_playing


def test_reorder_during_advance_onto_last_question_stops(
    controller: SessionController, scheduler: VirtualScheduler
) -> None:
    scheduler.advance(20.75)
    assert controller.current_question.id == 502
    assert controller.has_pending("advance")

    controller.reorder_sets(["7", "5"])
    assert controller.state.current_question_index == 4
    assert not controller.has_pending("advance")
    assert not controller.state.is_playing
    assert controller.has_pending("completion")

    scheduler.advance(2.0)
    assert controller.state.current_question_index == 4
    assert controller.state.session_completed
