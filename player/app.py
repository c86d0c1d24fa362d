"""Main FastAPI application exposing the player controls."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from player.config import LOG_LEVEL
from player.dependencies import shutdown_controller
from player.logging_setup import setup_console_logging
from player.routes import session

setup_console_logging(LOG_LEVEL)

app = FastAPI(title="Abacus Drill Player API")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("shutdown")
def shutdown_events() -> None:
    """Stop timers and speech when the server stops."""
    shutdown_controller()


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Include routers
app.include_router(session.router)
