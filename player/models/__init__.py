"""Pydantic models."""
from player.models.playback import (
    PlaybackState,
    PlayerSnapshot,
    ResultsHandoff,
    SessionStatus,
)
from player.models.questions import (
    DigitItem,
    DisplayItem,
    EqualsItem,
    OperatorItem,
    Question,
    QuestionSet,
    QuestionsEnvelope,
)
from player.models.requests import OpenSessionRequest, ReorderRequest, SpeedRequest

__all__ = [
    "DigitItem",
    "DisplayItem",
    "EqualsItem",
    "OpenSessionRequest",
    "OperatorItem",
    "PlaybackState",
    "PlayerSnapshot",
    "Question",
    "QuestionSet",
    "QuestionsEnvelope",
    "ReorderRequest",
    "ResultsHandoff",
    "SessionStatus",
    "SpeedRequest",
]
