"""Playback state and read models."""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from player.config import DEFAULT_TIME_LIMIT
from player.models.questions import (
    DigitItem,
    DisplayItem,
    OperatorItem,
    Question,
    QuestionSet,
)


class SessionStatus(str, Enum):
    """Lifecycle of a player session."""

    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


class PlaybackState(BaseModel):
    """Transient playback state owned by the session controller.

    Instances are never mutated; ``player.services.transitions`` produces a new
    state for every event.
    """

    model_config = ConfigDict(frozen=True)

    current_question_index: int = 0
    current_set_index: int = 0
    current_step: int = 0
    steps_revealed: int = 0
    is_playing: bool = False
    is_auto_playing: bool = False
    time_remaining: int = DEFAULT_TIME_LIMIT
    visible_digits: tuple[DigitItem, ...] = ()
    visible_operators: tuple[OperatorItem, ...] = ()
    completed_sets: frozenset[int] = frozenset()
    session_completed: bool = False
    is_set_transition: bool = False


class ResultsHandoff(BaseModel):
    """State carried to the results view when a session ends."""

    questions: list[Question]
    question_sets: list[QuestionSet]
    level: str
    week: str


class PlayerSnapshot(BaseModel):
    """Everything a UI needs to render the player at one instant."""

    status: SessionStatus
    error: str | None = None
    level: str | None = None
    week: str | None = None
    is_multi_set: bool = False
    is_muted: bool = False
    playback_speed: float = 1.0
    state: PlaybackState
    question_sets: list[QuestionSet] = Field(default_factory=list)
    total_questions: int = 0
    current_question: Question | None = None
    current_item: DisplayItem | None = None
    time_display: str = "00:00"
    step_progress: float = 0.0
    question_progress: float = 0.0
    announcement: str | None = None
