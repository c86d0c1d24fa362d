"""API route modules."""
from player.routes import session

__all__ = ["session"]
