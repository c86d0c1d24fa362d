"""Validation utilities."""
from pathlib import Path

from player.errors import InvalidParameters


def validate_segment(name: str, value: object) -> str:
    """Validate a route segment (level, week or set id)."""
    if value is None:
        raise InvalidParameters(f"{name} is required")
    cleaned = str(value).strip()
    if not cleaned:
        raise InvalidParameters(f"{name} is required")
    if cleaned == ".." or Path(cleaned).name != cleaned or "\\" in cleaned:
        raise InvalidParameters(f"Invalid {name}")
    return cleaned


def parse_set_ids(raw: object) -> list[str]:
    """Split a single id or a comma-separated id list, dropping blanks."""
    if isinstance(raw, (list, tuple)):
        parts = [str(part) for part in raw]
    elif raw is None:
        parts = []
    else:
        parts = str(raw).split(",")
    set_ids = [validate_segment("setId", part) for part in parts if str(part).strip()]
    if not set_ids:
        raise InvalidParameters("At least one question set id is required")
    return set_ids


def validate_route_params(
    level: object, week: object, sets: object
) -> tuple[str, str, list[str]]:
    """Validate level, week and set ids before anything is fetched."""
    return (
        validate_segment("level", level),
        validate_segment("week", week),
        parse_set_ids(sets),
    )
