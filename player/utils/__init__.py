"""Utility modules."""
from player.utils.time_utils import format_countdown, percent
from player.utils.validation import parse_set_ids, validate_route_params, validate_segment

__all__ = [
    "format_countdown",
    "percent",
    "parse_set_ids",
    "validate_route_params",
    "validate_segment",
]
