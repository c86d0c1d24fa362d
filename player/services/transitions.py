"""Playback state transitions.

Each function takes the current ``PlaybackState`` and returns the next one.
The controller and the sequencer never build states by hand; they dispatch one
of these through ``PlaybackStore``.
"""
from __future__ import annotations

import logging
from typing import Callable

from player.models import (
    DigitItem,
    DisplayItem,
    OperatorItem,
    PlaybackState,
    Question,
)

log = logging.getLogger(__name__)

Transition = Callable[..., PlaybackState]
Listener = Callable[[PlaybackState], None]


def initial_state() -> PlaybackState:
    return PlaybackState()


def restarted(state: PlaybackState) -> PlaybackState:
    return initial_state()


def question_selected(state: PlaybackState, index: int, question: Question) -> PlaybackState:
    """Point at a question and clear everything revealed for the previous one."""
    return state.model_copy(
        update={
            "current_question_index": index,
            "current_step": 0,
            "steps_revealed": 0,
            "visible_digits": (),
            "visible_operators": (),
            "time_remaining": question.time_limit,
        }
    )


def question_started(state: PlaybackState, question: Question) -> PlaybackState:
    """Reset the reveal for a fresh run of the current question."""
    return question_selected(state, state.current_question_index, question)


def step_advanced(state: PlaybackState, step: int, item: DisplayItem) -> PlaybackState:
    """Reveal the next display item.

    Raises:
        ValueError: if ``step`` is not the item right after the last revealed.
    """
    if step != state.steps_revealed:
        raise ValueError(
            f"Step {step} out of order; {state.steps_revealed} item(s) revealed"
        )
    update: dict[str, object] = {"current_step": step, "steps_revealed": step + 1}
    if isinstance(item, DigitItem):
        update["visible_digits"] = state.visible_digits + (item,)
    elif isinstance(item, OperatorItem):
        update["visible_operators"] = state.visible_operators + (item,)
    return state.model_copy(update=update)


def countdown_ticked(state: PlaybackState) -> PlaybackState:
    return state.model_copy(update={"time_remaining": max(0, state.time_remaining - 1)})


def playback_changed(state: PlaybackState, playing: bool) -> PlaybackState:
    return state.model_copy(update={"is_playing": playing, "is_auto_playing": playing})


def set_entered(state: PlaybackState, set_index: int) -> PlaybackState:
    return state.model_copy(
        update={"current_set_index": set_index, "is_set_transition": True}
    )


def set_selected(state: PlaybackState, set_index: int) -> PlaybackState:
    """Move to a set without the transition banner (manual set jump)."""
    return state.model_copy(update={"current_set_index": set_index})


def set_transition_cleared(state: PlaybackState) -> PlaybackState:
    return state.model_copy(update={"is_set_transition": False})


def set_completed(state: PlaybackState, set_index: int) -> PlaybackState:
    return state.model_copy(update={"completed_sets": state.completed_sets | {set_index}})


def session_completed(state: PlaybackState) -> PlaybackState:
    return state.model_copy(update={"session_completed": True})


def completion_dismissed(state: PlaybackState) -> PlaybackState:
    return state.model_copy(update={"session_completed": False})


def question_reindexed(state: PlaybackState, index: int) -> PlaybackState:
    """Follow the current question to its new position after a reorder."""
    return state.model_copy(update={"current_question_index": index})


class PlaybackStore:
    """Holds the single ``PlaybackState`` and notifies listeners on change."""

    def __init__(self, state: PlaybackState | None = None):
        self.state = state or initial_state()
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, transition: Transition, *args) -> PlaybackState:
        new_state = transition(self.state, *args)
        if new_state == self.state:
            return self.state
        self.state = new_state
        log.debug("%s -> step=%d question=%d playing=%s", transition.__name__,
                  new_state.current_step, new_state.current_question_index,
                  new_state.is_playing)
        for listener in list(self._listeners):
            listener(new_state)
        return new_state
