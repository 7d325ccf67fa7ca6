"""FastAPI application with CORS, lifespan, and routes."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .api.routes import router
from .api.websocket import manager
from .catalog import default_catalog
from .engine.session import clear_sessions, get_session

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: load and validate the catalog so a broken file fails early
    default_catalog()
    yield
    clear_sessions()


app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


@app.websocket("/ws/playback/{session_id}")
async def playback_endpoint(websocket: WebSocket, session_id: str):
    session = get_session(session_id)
    if session is None:
        await websocket.close(code=1008)
        return
    await manager.connect(session_id, websocket)
    # Paint the current state right away instead of waiting for a change
    await websocket.send_json(
        {"type": "playback_state", "session_id": session_id,
         **session.engine.snapshot().to_dict()}
    )
    try:
        while True:
            # Keep connection alive, handle any client messages
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(session_id, websocket)


def run():
    import uvicorn
    uvicorn.run("chainviz.main:app", host=settings.host, port=settings.port, reload=settings.debug)
