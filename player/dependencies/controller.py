"""Session controller dependency for FastAPI."""
from __future__ import annotations

import logging
import threading

from player.services.backend_client import BackendClient
from player.services.loader import QuestionSetLoader
from player.services.narrator import Narrator
from player.services.scheduler import ThreadScheduler
from player.services.session_controller import SessionController
from player.services.speech import build_speech_backend

log = logging.getLogger(__name__)

_controller: SessionController | None = None
_controller_lock = threading.Lock()


def build_controller() -> SessionController:
    """Wire a controller against the configured backend and speech output."""
    scheduler = ThreadScheduler()
    scheduler.start()
    return SessionController(
        QuestionSetLoader(BackendClient()),
        scheduler,
        Narrator(build_speech_backend()),
    )


def get_controller() -> SessionController:
    """Return the process-wide controller, creating it on first use."""
    global _controller
    with _controller_lock:
        if _controller is None:
            _controller = build_controller()
            log.info("Session controller created")
        return _controller


def shutdown_controller() -> None:
    global _controller
    with _controller_lock:
        controller = _controller
        _controller = None
    if controller is None:
        return
    controller.close()
    controller.scheduler.shutdown()
    controller.loader.client.close()
