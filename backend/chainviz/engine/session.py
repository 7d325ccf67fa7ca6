"""Playback session manager: one controls adapter (and engine) per viewer widget."""
import logging
import uuid
from typing import Callable

from .controls import DEFAULT_SPEED_OPTIONS, PlaybackControls
from .graph import Graph
from .playback import TimelineEngine
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class PlaybackSession:
    def __init__(
        self,
        session_id: str,
        graph: Graph,
        scheduler: Scheduler | None = None,
        speed: float = 1.0,
        speed_options: tuple[float, ...] = DEFAULT_SPEED_OPTIONS,
    ):
        self.session_id = session_id
        self.engine = TimelineEngine(graph, scheduler=scheduler, speed=speed)
        self.controls = PlaybackControls(self.engine, speed_options=speed_options)
        self._close_callbacks: list[Callable[[str], None]] = []

    def on_close(self, callback: Callable[[str], None]) -> None:
        """Register a callback that receives the session id once the session closes."""
        self._close_callbacks.append(callback)

    def close(self) -> None:
        self.controls.close()
        callbacks, self._close_callbacks = self._close_callbacks, []
        for callback in callbacks:
            try:
                callback(self.session_id)
            except Exception:
                logger.exception("Close callback for session %s failed", self.session_id)


_sessions: dict[str, PlaybackSession] = {}


def create_session(
    graph: Graph,
    session_id: str | None = None,
    scheduler: Scheduler | None = None,
    speed: float = 1.0,
    speed_options: tuple[float, ...] = DEFAULT_SPEED_OPTIONS,
    max_sessions: int | None = None,
) -> PlaybackSession:
    session_id = session_id or str(uuid.uuid4())
    # Build first: a refused speed must not evict anything
    session = PlaybackSession(
        session_id, graph, scheduler=scheduler,
        speed=speed, speed_options=speed_options,
    )
    remove_session(session_id)
    # Evict oldest sessions if at capacity
    while max_sessions is not None and _sessions and len(_sessions) >= max_sessions:
        remove_session(next(iter(_sessions)))
    _sessions[session_id] = session
    logger.debug("Created playback session %s", session_id)
    return session


def get_session(session_id: str) -> PlaybackSession | None:
    return _sessions.get(session_id)


def remove_session(session_id: str) -> None:
    session = _sessions.pop(session_id, None)
    if session is not None:
        session.close()
        logger.debug("Removed playback session %s", session_id)


def clear_sessions() -> None:
    for session_id in list(_sessions):
        remove_session(session_id)
