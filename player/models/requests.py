"""Request bodies for the player control endpoints."""
from pydantic import BaseModel, Field


class OpenSessionRequest(BaseModel):
    """Model for opening a playback session.

    ``sets`` is a single set id or a comma-separated list of ids; more than
    one id switches the player to multi-set mode.
    """

    level: str = Field(..., min_length=1)
    week: str = Field(..., min_length=1)
    sets: str = Field(..., min_length=1)


class SpeedRequest(BaseModel):
    """Model for changing narration speed."""

    speed: float


class ReorderRequest(BaseModel):
    """Model for reordering the sets of a multi-set session."""

    set_ids: list[int | str] = Field(..., min_length=1)
