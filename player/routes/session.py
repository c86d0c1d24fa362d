"""Player control endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from player.dependencies import get_controller
from player.models import (
    OpenSessionRequest,
    PlayerSnapshot,
    ReorderRequest,
    ResultsHandoff,
    SpeedRequest,
)
from player.services.session_controller import SessionController

router = APIRouter(prefix="/api/player", tags=["player"])

Controller = Annotated[SessionController, Depends(get_controller)]


@router.post("/open", response_model=PlayerSnapshot)
def open_session(payload: OpenSessionRequest, controller: Controller) -> PlayerSnapshot:
    """Load one or more question sets and start playback once ready."""
    controller.open(payload.level, payload.week, payload.sets)
    return controller.snapshot()


@router.post("/reload", response_model=PlayerSnapshot)
def reload_session(controller: Controller) -> PlayerSnapshot:
    """Retry the last load."""
    if controller.level is None:
        raise HTTPException(status_code=400, detail="No session to reload")
    controller.reload()
    return controller.snapshot()


@router.get("/state", response_model=PlayerSnapshot)
def get_state(controller: Controller) -> PlayerSnapshot:
    return controller.snapshot()


@router.post("/play", response_model=PlayerSnapshot)
def toggle_play(controller: Controller) -> PlayerSnapshot:
    """Toggle between playing and paused."""
    controller.toggle_play()
    return controller.snapshot()


@router.post("/next", response_model=PlayerSnapshot)
def next_question(controller: Controller) -> PlayerSnapshot:
    controller.next_question()
    return controller.snapshot()


@router.post("/previous", response_model=PlayerSnapshot)
def previous_question(controller: Controller) -> PlayerSnapshot:
    controller.previous_question()
    return controller.snapshot()


@router.post("/restart", response_model=PlayerSnapshot)
def restart_session(controller: Controller) -> PlayerSnapshot:
    controller.restart()
    return controller.snapshot()


@router.post("/mute", response_model=PlayerSnapshot)
def toggle_mute(controller: Controller) -> PlayerSnapshot:
    controller.toggle_mute()
    return controller.snapshot()


@router.post("/speed", response_model=PlayerSnapshot)
def set_speed(payload: SpeedRequest, controller: Controller) -> PlayerSnapshot:
    """Change narration speed (0.75, 1, 1.25 or 1.5)."""
    try:
        controller.set_speed(payload.speed)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return controller.snapshot()


@router.post("/reorder", response_model=PlayerSnapshot)
def reorder_sets(payload: ReorderRequest, controller: Controller) -> PlayerSnapshot:
    """Reorder the sets of the current session."""
    try:
        controller.reorder_sets(payload.set_ids)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return controller.snapshot()


@router.post("/jump/question/{index}", response_model=PlayerSnapshot)
def jump_to_question(index: int, controller: Controller) -> PlayerSnapshot:
    try:
        controller.jump_to_question(index)
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return controller.snapshot()


@router.post("/jump/set/{index}", response_model=PlayerSnapshot)
def jump_to_set(index: int, controller: Controller) -> PlayerSnapshot:
    try:
        controller.jump_to_set(index)
    except IndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return controller.snapshot()


@router.post("/dismiss", response_model=PlayerSnapshot)
def dismiss_completion(controller: Controller) -> PlayerSnapshot:
    """Close the completion banner and stay on the player."""
    controller.dismiss_completion()
    return controller.snapshot()


@router.get("/results", response_model=ResultsHandoff)
def get_results(controller: Controller) -> ResultsHandoff:
    """Questions and answers of the session, once it has handed off."""
    if controller.results is None:
        raise HTTPException(status_code=404, detail="Results not available")
    return controller.results


@router.post("/results", response_model=ResultsHandoff)
def show_results(controller: Controller) -> ResultsHandoff:
    """Open the results view now instead of waiting for completion."""
    results = controller.show_results()
    if results is None:
        raise HTTPException(status_code=404, detail="No questions loaded")
    return results
