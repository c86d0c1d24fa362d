"""Timed reveal of one question's display sequence."""
from __future__ import annotations

import logging
from typing import Callable

from player.config import COUNTDOWN_INTERVAL, QUESTION_SETTLE_DELAY, SEQUENCE_LEAD_IN
from player.models import DisplayItem, Question
from player.services import transitions
from player.services.narrator import Narrator
from player.services.scheduler import TimerHandle
from player.services.transitions import PlaybackStore

log = logging.getLogger(__name__)


class _Run:
    """One playback of one question. Superseded runs ignore their timers."""

    __slots__ = ("question", "sequence", "next_step", "handles", "tick_handle", "cancelled")

    def __init__(self, question: Question):
        self.question = question
        self.sequence: tuple[DisplayItem, ...] = tuple(question.display_sequence)
        self.next_step = 0
        self.handles: list[TimerHandle] = []
        self.tick_handle: TimerHandle | None = None
        self.cancelled = False

    @property
    def step_interval(self) -> float:
        return self.question.time_limit / len(self.sequence)


class Sequencer:
    """Walks a display sequence on a fixed time budget.

    Items are revealed one every ``time_limit / len(sequence)`` seconds after a
    short lead-in. Each step updates the store (current step, visible digits or
    operators) and then hands the item to the narrator. A one second countdown
    runs beside the steps for display only. When the last item has been shown
    the countdown stops and ``on_finished`` is called after a settle delay.
    """

    def __init__(
        self,
        store: PlaybackStore,
        scheduler,
        narrator: Narrator,
        *,
        on_step: Callable[[int, DisplayItem], None] | None = None,
        on_finished: Callable[[Question], None] | None = None,
        lead_in: float = SEQUENCE_LEAD_IN,
        settle_delay: float = QUESTION_SETTLE_DELAY,
    ):
        self.store = store
        self.scheduler = scheduler
        self.narrator = narrator
        self.on_step = on_step
        self.on_finished = on_finished
        self.lead_in = lead_in
        self.settle_delay = settle_delay
        self._run: _Run | None = None

    @property
    def is_running(self) -> bool:
        return self._run is not None

    def start(self, question: Question) -> None:
        """Restart playback of ``question`` from its first item."""
        self.cancel()
        self.store.dispatch(transitions.question_started, question)
        run = _Run(question)
        if not run.sequence:
            log.debug("Question %s has an empty display sequence", question.id)
            return
        self._run = run
        self._arm(run, self.lead_in, self._begin)

    def cancel(self) -> None:
        """Invalidate the active run and every timer it scheduled."""
        run = self._run
        self._run = None
        if run is None:
            return
        run.cancelled = True
        for handle in run.handles:
            handle.cancel()
        run.handles.clear()
        run.tick_handle = None

    def _arm(self, run: _Run, delay: float, callback: Callable[[_Run], None]) -> TimerHandle:
        handle = self.scheduler.call_later(delay, self._fire, run, callback)
        run.handles.append(handle)
        return handle

    def _fire(self, run: _Run, callback: Callable[[_Run], None]) -> None:
        if run.cancelled or run is not self._run:
            return
        callback(run)

    def _begin(self, run: _Run) -> None:
        run.tick_handle = self._arm(run, COUNTDOWN_INTERVAL, self._tick)
        self._arm(run, run.step_interval, self._step)

    def _tick(self, run: _Run) -> None:
        state = self.store.dispatch(transitions.countdown_ticked)
        if state.time_remaining > 0:
            run.tick_handle = self._arm(run, COUNTDOWN_INTERVAL, self._tick)
        else:
            run.tick_handle = None

    def _step(self, run: _Run) -> None:
        step = run.next_step
        item = run.sequence[step]
        self.store.dispatch(transitions.step_advanced, step, item)
        self.narrator.speak_item(item)
        run.next_step += 1
        if self.on_step is not None:
            self.on_step(step, item)
        if run.cancelled:
            return

        if run.next_step < len(run.sequence):
            self._arm(run, run.step_interval, self._step)
            return

        if run.tick_handle is not None:
            run.tick_handle.cancel()
            run.tick_handle = None
        self._arm(run, self.settle_delay, self._finish)

    def _finish(self, run: _Run) -> None:
        self._run = None
        if self.on_finished is not None:
            self.on_finished(run.question)
