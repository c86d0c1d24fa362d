from __future__ import annotations
import logging


def setup_console_logging(level: int | str = logging.DEBUG) -> None:
    """
    Call once at app start. Load failures log at ERROR, speech trouble at
    WARNING, and every playback state transition at DEBUG, so DEBUG shows
    the reveal timeline step by step.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    # urllib3 debug output drowns out step timing
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        # already configured (avoid duplicates)
        return

    h = logging.StreamHandler()
    fmt = logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    h.setFormatter(fmt)
    root.addHandler(h)
