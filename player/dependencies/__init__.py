"""FastAPI dependencies."""
from player.dependencies.controller import get_controller, shutdown_controller

__all__ = ["get_controller", "shutdown_controller"]
