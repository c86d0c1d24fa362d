"""Top-level state machine of the question player."""
from __future__ import annotations

import logging
import threading
from typing import Callable

from player.config import (
    ADVANCE_SETTLE_DELAY,
    AUTO_START_DELAY,
    COMPLETION_DELAY,
    INVALID_PARAMETERS_ERROR,
    MULTI_SET_LOAD_ERROR,
    NEXT_QUESTION_CUE,
    RESULTS_NAVIGATION_DELAY,
    SESSION_COMPLETED_MESSAGE,
    SET_TRANSITION_PULSE,
    SINGLE_SET_LOAD_ERROR,
)
from player.errors import InvalidParameters, LoadError
from player.models import (
    PlaybackState,
    PlayerSnapshot,
    Question,
    ResultsHandoff,
    SessionStatus,
)
from player.services import transitions
from player.services.deck import QuestionDeck
from player.services.loader import QuestionSetLoader
from player.services.narrator import Narrator
from player.services.scheduler import TimerHandle
from player.services.sequencer import Sequencer
from player.services.transitions import PlaybackStore
from player.utils import format_countdown, percent, validate_route_params

log = logging.getLogger(__name__)

NavigateCallback = Callable[[ResultsHandoff], None]


def _spawn_thread(target: Callable[..., None], *args) -> None:
    thread = threading.Thread(
        target=target,
        args=args,
        name="question-loader",
        daemon=True,
    )
    thread.start()


class SessionController:
    """Coordinates loading, playback, navigation and completion of a session.

    All public methods are safe to call from any thread: they run under the
    scheduler lock, the same lock timer callbacks run under.
    """

    def __init__(
        self,
        loader: QuestionSetLoader,
        scheduler,
        narrator: Narrator,
        *,
        on_navigate: NavigateCallback | None = None,
        spawn: Callable[..., None] | None = None,
    ):
        self.loader = loader
        self.scheduler = scheduler
        self.narrator = narrator
        self.store = PlaybackStore()
        self.sequencer = Sequencer(
            self.store,
            scheduler,
            narrator,
            on_step=self._on_step,
            on_finished=self._on_question_finished,
        )
        self.deck = QuestionDeck.empty()
        self.status = SessionStatus.IDLE
        self.error: str | None = None
        self.level: str | None = None
        self.week: str | None = None
        self.set_ids: list[str] = []
        self.results: ResultsHandoff | None = None
        self.announcement: str | None = None
        self._on_navigate = on_navigate
        self._spawn = spawn or _spawn_thread
        self._timers: dict[str, tuple[object, TimerHandle]] = {}
        self._load_generation = 0
        self._closed = False

    # -- properties -------------------------------------------------------

    @property
    def lock(self):
        return self.scheduler.lock

    @property
    def state(self) -> PlaybackState:
        return self.store.state

    @property
    def current_question(self) -> Question | None:
        index = self.state.current_question_index
        if 0 <= index < len(self.deck):
            return self.deck.questions[index]
        return None

    @property
    def is_ready(self) -> bool:
        return self.status == SessionStatus.READY and not self.deck.is_empty

    # -- loading ----------------------------------------------------------

    def open(self, level: object, week: object, sets: object) -> None:
        """Validate route parameters and load the requested sets in the background."""
        with self.lock:
            self._closed = False
            self._teardown_playback()
            self._load_generation += 1
            generation = self._load_generation
            self.deck = QuestionDeck.empty()
            self.results = None
            self.announcement = None
            self.store.dispatch(transitions.restarted)
            try:
                level, week, set_ids = validate_route_params(level, week, sets)
            except InvalidParameters as exc:
                log.warning("Invalid player parameters: %s", exc)
                self.status = SessionStatus.ERROR
                self.error = INVALID_PARAMETERS_ERROR
                return
            self.level, self.week, self.set_ids = level, week, set_ids
            self.status = SessionStatus.LOADING
            self.error = None
        self._spawn(self._fetch, generation, level, week, set_ids)

    def reload(self) -> None:
        """Retry the last load from scratch."""
        self.open(self.level, self.week, self.set_ids)

    def close(self) -> None:
        """Tear down: stop playback and ignore any load still in flight."""
        with self.lock:
            self._closed = True
            self._load_generation += 1
            self._teardown_playback()

    def _fetch(self, generation: int, level: str, week: str, set_ids: list[str]) -> None:
        try:
            deck = self.loader.load(level, week, set_ids)
        except LoadError as exc:
            self._load_failed(generation, set_ids, exc)
            return
        self._load_succeeded(generation, deck)

    def _is_stale(self, generation: int) -> bool:
        return self._closed or generation != self._load_generation

    def _load_failed(self, generation: int, set_ids: list[str], exc: LoadError) -> None:
        with self.lock:
            if self._is_stale(generation):
                log.info("Discarding failed load from a superseded session")
                return
            log.error("Loading sets %s failed: %s", ",".join(set_ids), exc)
            self.status = SessionStatus.ERROR
            self.error = MULTI_SET_LOAD_ERROR if len(set_ids) > 1 else SINGLE_SET_LOAD_ERROR

    def _load_succeeded(self, generation: int, deck: QuestionDeck) -> None:
        with self.lock:
            if self._is_stale(generation):
                log.info("Discarding late load result (%d questions)", len(deck))
                return
            self.deck = deck
            if deck.is_empty:
                self.status = SessionStatus.EMPTY
                return
            self.status = SessionStatus.READY
            self.store.dispatch(transitions.restarted)
            self._select(0, play=False)
            self._schedule("autostart", AUTO_START_DELAY, self._autostart)

    def _autostart(self) -> None:
        self._play_current()

    # -- timers -----------------------------------------------------------

    def _schedule(self, name: str, delay: float, callback: Callable[..., None], *args) -> None:
        self._cancel_timer(name)
        token = object()
        handle = self.scheduler.call_later(delay, self._fire_timer, name, token, callback, args)
        self._timers[name] = (token, handle)

    def _fire_timer(self, name: str, token: object, callback: Callable[..., None], args: tuple) -> None:
        entry = self._timers.get(name)
        if entry is None or entry[0] is not token:
            return
        del self._timers[name]
        callback(*args)

    def _cancel_timer(self, name: str) -> None:
        entry = self._timers.pop(name, None)
        if entry is not None:
            entry[1].cancel()

    def _cancel_all_timers(self) -> None:
        for name in list(self._timers):
            self._cancel_timer(name)

    def _teardown_playback(self) -> None:
        self.sequencer.cancel()
        self._cancel_all_timers()
        self.narrator.cancel()

    def has_pending(self, name: str) -> bool:
        return name in self._timers

    # -- playback ---------------------------------------------------------

    def toggle_play(self) -> None:
        with self.lock:
            if not self.is_ready:
                return
            if self.state.is_playing:
                self._pause()
            else:
                self._play_current()

    def _pause(self) -> None:
        self.sequencer.cancel()
        self._cancel_timer("advance")
        self._cancel_timer("autostart")
        self.narrator.cancel()
        self.store.dispatch(transitions.playback_changed, False)

    def _play_current(self) -> None:
        question = self.current_question
        if question is None:
            return
        self._cancel_timer("autostart")
        self.store.dispatch(transitions.playback_changed, True)
        self.sequencer.start(question)
        self._check_completion()

    def _select(self, index: int, play: bool) -> None:
        """Make ``index`` the current question, optionally playing it."""
        question = self.deck.questions[index]
        self.sequencer.cancel()
        self._cancel_timer("advance")
        self._cancel_timer("autostart")
        if not play:
            self.narrator.cancel()
        self.store.dispatch(transitions.question_selected, index, question)
        self._sync_set(question)
        self.store.dispatch(transitions.playback_changed, play)
        if play:
            self.sequencer.start(question)
        self._check_completion()

    def _sync_set(self, question: Question) -> None:
        if question.set_index == self.state.current_set_index:
            return
        self.store.dispatch(transitions.set_entered, question.set_index)
        if self.deck.is_multi_set:
            self._announce(f"Starting question set {question.set_index + 1}")
        self._schedule(
            "set_transition",
            SET_TRANSITION_PULSE,
            self.store.dispatch,
            transitions.set_transition_cleared,
        )

    def _announce(self, text: str) -> None:
        self.announcement = text
        self.narrator.announce(text)

    def _on_step(self, step: int, item) -> None:
        self._check_completion()

    def _on_question_finished(self, question: Question) -> None:
        # the same set may be requested twice, so identity is not a position
        index = self.state.current_question_index
        if self.current_question is None or self.current_question.identity != question.identity:
            return
        self._mark_set_if_last(self.deck.questions[index])
        self._auto_advance(index)

    def _mark_set_if_last(self, question: Question) -> None:
        if self.deck.is_last_in_set(question):
            self.store.dispatch(transitions.set_completed, question.set_index)

    def _auto_advance(self, index: int) -> None:
        if index >= self.deck.last_index:
            self.sequencer.cancel()
            self.store.dispatch(transitions.playback_changed, False)
            return

        current = self.deck.questions[index]
        upcoming = self.deck.questions[index + 1]
        if self.state.is_auto_playing:
            if self.deck.is_multi_set and upcoming.set_index != current.set_index:
                name = self.deck.set_name(upcoming.set_index) or "new set"
                self._announce(f"Moving to {name}")
            else:
                self._announce(NEXT_QUESTION_CUE)
        self._schedule("advance", ADVANCE_SETTLE_DELAY, self._select, index + 1, True)

    # -- navigation -------------------------------------------------------

    def next_question(self) -> None:
        """Skip ahead without the spoken cue; at the end, finish the session."""
        with self.lock:
            if not self.is_ready:
                return
            index = self.state.current_question_index
            if index < self.deck.last_index:
                self._select(index + 1, play=True)
                return
            if self.state.is_playing:
                question = self.current_question
                self._pause()
                self._mark_set_if_last(question)
                if not self.state.session_completed and not self.has_pending("completion"):
                    self._schedule("completion", COMPLETION_DELAY, self._complete_session)

    def previous_question(self) -> None:
        with self.lock:
            if not self.is_ready:
                return
            index = self.state.current_question_index
            if index > 0:
                self._select(index - 1, play=False)

    def jump_to_question(self, index: int) -> None:
        with self.lock:
            if not self.is_ready:
                return
            if not 0 <= index < len(self.deck):
                raise IndexError(f"Question {index} does not exist")
            self._select(index, play=False)

    def jump_to_set(self, set_index: int) -> None:
        with self.lock:
            if not self.is_ready:
                return
            first = self.deck.first_index_of_set(set_index)
            if first is None:
                raise IndexError(f"Set {set_index} does not exist")
            self.store.dispatch(transitions.set_selected, set_index)
            self._select(first, play=False)

    def reorder_sets(self, set_ids) -> None:
        """Play the loaded sets in a new order, keeping the current question.

        Raises:
            ValueError: if ``set_ids`` is not a permutation of the loaded sets.
        """
        with self.lock:
            if not self.is_ready:
                return
            current = self.current_question
            pending_advance = self._timers.get("advance")
            self.deck = self.deck.reordered(set_ids)
            log.info("Sets reordered: %s", ",".join(str(set_id) for set_id in set_ids))
            if current is None:
                return
            new_index = self.deck.index_of(current)
            if new_index is None:
                return
            self.store.dispatch(transitions.question_reindexed, new_index)
            self._sync_set(self.deck.questions[new_index])
            if pending_advance is not None:
                self._retarget_advance(new_index, pending_advance[1])
            self._check_completion()

    def _retarget_advance(self, index: int, handle: TimerHandle) -> None:
        """Point a pending auto-advance at the question now after ``index``."""
        self._cancel_timer("advance")
        if index >= self.deck.last_index:
            self.store.dispatch(transitions.playback_changed, False)
            return
        delay = max(0.0, handle.due - self.scheduler.now())
        self._schedule("advance", delay, self._select, index + 1, True)

    def restart(self) -> None:
        with self.lock:
            self._teardown_playback()
            self.results = None
            self.announcement = None
            self.store.dispatch(transitions.restarted)
            if not self.deck.is_empty:
                self.store.dispatch(
                    transitions.question_selected, 0, self.deck.questions[0]
                )

    # -- narration settings -----------------------------------------------

    def toggle_mute(self) -> bool:
        with self.lock:
            self.narrator.set_muted(not self.narrator.muted)
            return self.narrator.muted

    def set_speed(self, rate: float) -> None:
        with self.lock:
            self.narrator.set_rate(rate)

    # -- completion -------------------------------------------------------

    def _check_completion(self) -> None:
        question = self.current_question
        if question is None:
            return
        last_step = max(len(question.display_sequence), 1) - 1
        at_end = (
            self.state.current_question_index == self.deck.last_index
            and self.state.current_step == last_step
        )
        if not at_end:
            self._cancel_timer("completion")
            return
        if self.state.session_completed or self.has_pending("completion"):
            return
        self._schedule("completion", COMPLETION_DELAY, self._complete_session)

    def _complete_session(self) -> None:
        self.store.dispatch(transitions.session_completed)
        self._announce(SESSION_COMPLETED_MESSAGE)
        log.info("Session completed (%d questions)", len(self.deck))
        self._schedule("navigate", RESULTS_NAVIGATION_DELAY, self._navigate_to_results)

    def dismiss_completion(self) -> None:
        with self.lock:
            self._cancel_timer("navigate")
            self.store.dispatch(transitions.completion_dismissed)

    def show_results(self) -> ResultsHandoff | None:
        with self.lock:
            return self._navigate_to_results()

    def _navigate_to_results(self) -> ResultsHandoff | None:
        if self.deck.is_empty:
            return None
        self._cancel_timer("navigate")
        self.results = ResultsHandoff(
            questions=list(self.deck.questions),
            question_sets=list(self.deck.question_sets),
            level=self.level or "",
            week=self.week or "",
        )
        if self._on_navigate is not None:
            self._on_navigate(self.results)
        return self.results

    # -- read model -------------------------------------------------------

    def snapshot(self) -> PlayerSnapshot:
        with self.lock:
            state = self.state
            question = self.current_question
            current_item = None
            total_steps = 0
            if question is not None:
                total_steps = len(question.display_sequence)
                if state.steps_revealed and state.current_step < total_steps:
                    current_item = question.display_sequence[state.current_step]
            return PlayerSnapshot(
                status=self.status,
                error=self.error,
                level=self.level,
                week=self.week,
                is_multi_set=self.deck.is_multi_set,
                is_muted=self.narrator.muted,
                playback_speed=self.narrator.rate,
                state=state,
                question_sets=list(self.deck.question_sets),
                total_questions=len(self.deck),
                current_question=question,
                current_item=current_item,
                time_display=format_countdown(state.time_remaining),
                step_progress=percent(state.current_step, total_steps),
                question_progress=percent(
                    state.current_question_index + 1 if question else 0, len(self.deck)
                ),
                announcement=self.announcement,
            )
