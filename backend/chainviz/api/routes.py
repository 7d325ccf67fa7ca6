"""REST API routes."""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ..catalog import Catalog, default_catalog
from ..catalog.loader import graph_to_schema, scenario_to_schema
from ..config import settings
from ..engine.playback import InvalidSpeedError
from ..engine.scheduler import AsyncioScheduler, Scheduler
from ..engine.session import PlaybackSession, create_session, get_session, remove_session
from ..engine.validator import ScenarioValidationError
from ..models.schemas import (
    CreateSessionRequest, EdgeSchema, ScenarioSummary, SnapshotResponse,
    SpeedRequest, StartRequest, StepRequest,
)
from .websocket import manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_catalog() -> Catalog:
    return default_catalog()


def get_scheduler() -> Scheduler:
    return AsyncioScheduler()


def _require_session(session_id: str) -> PlaybackSession:
    session = get_session(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Playback session not found")
    return session


def _snapshot_response(session: PlaybackSession) -> SnapshotResponse:
    snap = session.engine.snapshot()
    return SnapshotResponse(
        session_id=session.session_id,
        is_playing=session.controls.is_playing.get(),
        is_paused=session.controls.is_paused.get(),
        speed_options=list(session.controls.speed_options),
        **snap.to_dict(),
    )


def _start(session: PlaybackSession, catalog: Catalog, scenario_id: str) -> None:
    try:
        scenario = catalog.get_scenario(scenario_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Scenario not found: {scenario_id}")
    try:
        session.controls.select(scenario)
    except ScenarioValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)


# ---------------------------------------------------------------------- #
# Catalog
# ---------------------------------------------------------------------- #

@router.get("/graph")
async def get_graph(catalog: Catalog = Depends(get_catalog)) -> dict[str, Any]:
    """Return the diagram's nodes and edges."""
    return graph_to_schema(catalog.graph).model_dump(by_alias=True, mode="json")


@router.get("/graph/nodes/{node_id}/edges")
async def get_node_edges(node_id: str, catalog: Catalog = Depends(get_catalog)):
    """Edges a renderer should emphasize while ``node_id`` is hovered."""
    if not catalog.graph.has_node(node_id):
        raise HTTPException(status_code=404, detail="Node not found")
    return [
        EdgeSchema(
            id=e.id, source=e.source, target=e.target, kind=e.kind,
            label=e.label, description=e.description,
        ).model_dump(by_alias=True, mode="json")
        for e in catalog.graph.edges_touching([node_id])
    ]


@router.get("/scenarios", response_model=list[ScenarioSummary])
async def list_scenarios(catalog: Catalog = Depends(get_catalog)):
    return catalog.summaries()


@router.get("/scenarios/{scenario_id}")
async def get_scenario(scenario_id: str, catalog: Catalog = Depends(get_catalog)):
    try:
        scenario = catalog.get_scenario(scenario_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Scenario not found")
    return scenario_to_schema(scenario).model_dump(mode="json")


@router.get("/speed-options")
async def speed_options():
    return {"default": settings.default_speed, "options": settings.speed_options}


# ---------------------------------------------------------------------- #
# Playback sessions
# ---------------------------------------------------------------------- #

@router.post("/sessions", response_model=SnapshotResponse)
async def open_session(
    request: CreateSessionRequest,
    catalog: Catalog = Depends(get_catalog),
    scheduler: Scheduler = Depends(get_scheduler),
):
    """Create a playback session, optionally selecting (and playing) a scenario."""
    speed = request.speed if request.speed is not None else settings.default_speed
    try:
        session = create_session(
            catalog.graph,
            scheduler=scheduler,
            speed=speed,
            speed_options=tuple(settings.speed_options),
            max_sessions=settings.max_sessions,
        )
    except InvalidSpeedError as e:
        raise HTTPException(status_code=422, detail=str(e))
    session.engine.subscribe(manager.make_snapshot_listener(session.session_id))
    session.on_close(manager.close_listener)

    if request.scenario_id is not None:
        try:
            scenario = catalog.get_scenario(request.scenario_id)
        except KeyError:
            remove_session(session.session_id)
            raise HTTPException(status_code=404, detail=f"Scenario not found: {request.scenario_id}")
        session.controls.select(scenario, autoplay=request.autoplay)

    logger.info("Opened playback session %s", session.session_id)
    return _snapshot_response(session)


@router.get("/sessions/{session_id}", response_model=SnapshotResponse)
async def session_state(session_id: str):
    return _snapshot_response(_require_session(session_id))


@router.delete("/sessions/{session_id}")
async def close_session(session_id: str):
    _require_session(session_id)
    remove_session(session_id)
    return {"status": "closed"}


@router.post("/sessions/{session_id}/start", response_model=SnapshotResponse)
async def start_scenario(
    session_id: str,
    request: StartRequest,
    catalog: Catalog = Depends(get_catalog),
):
    session = _require_session(session_id)
    _start(session, catalog, request.scenario_id)
    return _snapshot_response(session)


@router.post("/sessions/{session_id}/play", response_model=SnapshotResponse)
async def play(session_id: str):
    session = _require_session(session_id)
    session.controls.play()
    return _snapshot_response(session)


@router.post("/sessions/{session_id}/pause", response_model=SnapshotResponse)
async def pause(session_id: str):
    session = _require_session(session_id)
    session.controls.pause()
    return _snapshot_response(session)


@router.post("/sessions/{session_id}/resume", response_model=SnapshotResponse)
async def resume(session_id: str):
    session = _require_session(session_id)
    session.controls.resume()
    return _snapshot_response(session)


@router.post("/sessions/{session_id}/toggle", response_model=SnapshotResponse)
async def toggle(session_id: str):
    session = _require_session(session_id)
    session.controls.toggle()
    return _snapshot_response(session)


@router.post("/sessions/{session_id}/reset", response_model=SnapshotResponse)
async def reset(session_id: str):
    session = _require_session(session_id)
    session.controls.reset()
    return _snapshot_response(session)


@router.post("/sessions/{session_id}/speed", response_model=SnapshotResponse)
async def set_speed(session_id: str, request: SpeedRequest):
    session = _require_session(session_id)
    try:
        session.controls.set_speed(request.speed)
    except InvalidSpeedError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _snapshot_response(session)


@router.post("/sessions/{session_id}/step", response_model=SnapshotResponse)
async def step(session_id: str, request: StepRequest):
    session = _require_session(session_id)
    if request.action == "next":
        session.controls.next_step()
    elif request.action == "previous":
        session.controls.previous_step()
    else:
        if request.index is None:
            raise HTTPException(status_code=422, detail="goto requires an index")
        session.controls.go_to_step(request.index)
    return _snapshot_response(session)
