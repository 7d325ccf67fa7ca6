"""Playback controls: maps UI intents onto a TimelineEngine and mirrors its state."""
import logging
from typing import Callable, Generic, TypeVar

from .graph import Edge
from .playback import PlaybackSnapshot, PlaybackStatus, TimelineEngine
from .scenario import Scenario
from .validator import ensure_valid_scenario

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SPEED_OPTIONS: tuple[float, ...] = (0.25, 0.5, 1.0, 1.5, 2.0, 3.0)


class Observable(Generic[T]):
    """A value cell that calls its subscribers when the value changes."""

    def __init__(self, value: T):
        self._value = value
        self._subscribers: list[Callable[[T], None]] = []

    def get(self) -> T:
        return self._value

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def _set(self, value: T) -> None:
        if value == self._value:
            return
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                logger.exception("Observable subscriber %r failed", callback)


class PlaybackControls:
    """Pass-through between UI events and the engine.

    Holds no timers of its own: every intent is a single engine call, and the
    observable values are refreshed only from engine notifications.
    """

    def __init__(
        self,
        engine: TimelineEngine,
        speed_options: tuple[float, ...] = DEFAULT_SPEED_OPTIONS,
    ):
        self._engine = engine
        self._selected: Scenario | None = None
        self.speed_options = tuple(speed_options)

        snap = engine.snapshot()
        self.snapshot = Observable(snap)
        self.is_playing = Observable(snap.status == PlaybackStatus.RUNNING)
        self.is_paused = Observable(snap.status == PlaybackStatus.PAUSED)
        self.is_completed = Observable(snap.status == PlaybackStatus.COMPLETED)
        self.speed = Observable(snap.speed)
        self.current_step_index = Observable(snap.current_step_index)

        self._unsubscribe = engine.subscribe(self._on_engine_change)

    @property
    def engine(self) -> TimelineEngine:
        return self._engine

    @property
    def selected(self) -> Scenario | None:
        return self._selected

    def _on_engine_change(self, snap: PlaybackSnapshot) -> None:
        self.is_playing._set(snap.status == PlaybackStatus.RUNNING)
        self.is_paused._set(snap.status == PlaybackStatus.PAUSED)
        self.is_completed._set(snap.status == PlaybackStatus.COMPLETED)
        self.speed._set(snap.speed)
        self.current_step_index._set(snap.current_step_index)
        self.snapshot._set(snap)

    # ------------------------------------------------------------------ #
    # Intents
    # ------------------------------------------------------------------ #

    def select(self, scenario: Scenario, autoplay: bool = True) -> None:
        """Choose a scenario; by default it starts playing straight away."""
        if autoplay:
            self._engine.start(scenario)
        else:
            ensure_valid_scenario(scenario, self._engine.graph)
            self._engine.reset()
        self._selected = scenario

    def play(self) -> None:
        status = self._engine.status
        if status == PlaybackStatus.PAUSED:
            self._engine.resume()
        elif status in (PlaybackStatus.IDLE, PlaybackStatus.COMPLETED):
            if self._selected is None:
                logger.debug("play() ignored: no scenario selected")
                return
            self._engine.start(self._selected)

    def pause(self) -> None:
        self._engine.pause()

    def resume(self) -> None:
        self._engine.resume()

    def toggle(self) -> None:
        if self._engine.status == PlaybackStatus.RUNNING:
            self._engine.pause()
        else:
            self.play()

    def reset(self) -> None:
        self._engine.reset()

    def set_speed(self, multiplier: float) -> None:
        self._engine.set_speed(multiplier)

    def next_step(self) -> None:
        self._engine.next_step()

    def previous_step(self) -> None:
        self._engine.previous_step()

    def go_to_step(self, index: int) -> None:
        self._engine.go_to_step(index)

    def preview(self, node_id: str) -> list[Edge]:
        """Edges to emphasize while ``node_id`` is hovered; playback is untouched."""
        if not self._engine.graph.has_node(node_id):
            return []
        return self._engine.graph.edges_touching([node_id])

    def close(self) -> None:
        self._unsubscribe()
        self._engine.close()
