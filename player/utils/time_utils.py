"""Time utilities."""


def format_countdown(seconds: float) -> str:
    """Format remaining seconds the way the player clock shows them."""
    secs = max(0, int(seconds))
    return f"00:{secs:02d}"


def percent(part: float, whole: float) -> float:
    """Percentage of ``part`` in ``whole``; zero when ``whole`` is empty."""
    if whole <= 0:
        return 0.0
    return part / whole * 100
