"""Question-related Pydantic models."""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from player.config import DEFAULT_TIME_LIMIT


class DigitItem(BaseModel):
    """A number revealed on the abacus board."""

    model_config = ConfigDict(frozen=True)

    type: Literal["digit"] = "digit"
    value: int | str
    display: str | None = None
    position: int | None = None


class OperatorItem(BaseModel):
    """An arithmetic operator between two digits."""

    model_config = ConfigDict(frozen=True)

    type: Literal["operator"] = "operator"
    value: str
    position: int | None = None


class EqualsItem(BaseModel):
    """Closing item of a display sequence."""

    model_config = ConfigDict(frozen=True)

    type: Literal["equals"] = "equals"
    position: int | None = None


DisplayItem = Annotated[
    Union[DigitItem, OperatorItem, EqualsItem], Field(discriminator="type")
]


class QuestionSet(BaseModel):
    """A named, ordered collection of questions of one type."""

    id: int | str
    name: str
    total_questions: int = Field(..., ge=0)
    type: str
    original_order: int = Field(..., ge=0)


class Question(BaseModel):
    """A single drill with its timed display sequence.

    The set membership fields are filled in by the loader and rewritten on
    reorder; everything else is exactly what the backend sent.
    """

    model_config = ConfigDict(frozen=True)

    id: int | str
    question_number: int | None = None
    display_sequence: list[DisplayItem] = Field(default_factory=list)
    time_limit: int = DEFAULT_TIME_LIMIT
    answer: int | float | str | None = None
    formatted_question: str | None = None
    set_id: int | str | None = None
    set_index: int = 0
    question_in_set_index: int = 0
    global_index: int = 0

    @field_validator("time_limit", mode="before")
    @classmethod
    def _default_time_limit(cls, value: object) -> object:
        # the backend sends null or 0 for "use the default"
        if value in (None, 0, ""):
            return DEFAULT_TIME_LIMIT
        return value

    @property
    def identity(self) -> tuple[str, str]:
        """Stable identity that survives reordering."""
        return (str(self.set_id), str(self.id))


class QuestionTypeRef(BaseModel):
    name: str


class BackendQuestionSet(BaseModel):
    id: int | str
    name: str
    question_type: QuestionTypeRef


class QuestionsEnvelope(BaseModel):
    """Payload of the questions-for-set endpoint (inside ``data``)."""

    question_set: BackendQuestionSet
    questions: list[Question]
