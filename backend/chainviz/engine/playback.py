"""Timeline playback: steps a scenario through time and derives highlight state."""
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from .graph import Graph
from .scenario import Scenario, Step
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .validator import ensure_valid_scenario

logger = logging.getLogger(__name__)


class PlaybackStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class InvalidSpeedError(ValueError):
    pass


def active_edge_ids(step: Step | None, graph: Graph) -> frozenset[str]:
    """Edges touching the step's active node or any of its highlighted nodes."""
    if step is None:
        return frozenset()
    return frozenset(e.id for e in graph.edges_touching(step.involved_nodes))


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Consistent, immutable view of the playback state handed to renderers."""
    status: PlaybackStatus
    scenario_id: str | None
    current_step_index: int
    step_count: int
    active_node: str | None
    highlight_nodes: tuple[str, ...]
    active_edge_ids: frozenset[str]
    description: str
    speed: float
    progress: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "scenario_id": self.scenario_id,
            "current_step_index": self.current_step_index,
            "step_count": self.step_count,
            "active_node": self.active_node,
            "highlight_nodes": list(self.highlight_nodes),
            "active_edge_ids": sorted(self.active_edge_ids),
            "description": self.description,
            "speed": self.speed,
            "progress": self.progress,
        }


Listener = Callable[[PlaybackSnapshot], None]


def _check_speed(multiplier: float) -> float:
    if isinstance(multiplier, (str, bool)):
        raise InvalidSpeedError(f"Speed must be a number, got {multiplier!r}")
    try:
        value = float(multiplier)
    except (TypeError, ValueError):
        raise InvalidSpeedError(f"Speed must be a number, got {multiplier!r}") from None
    if not math.isfinite(value) or value <= 0:
        raise InvalidSpeedError(f"Speed must be positive and finite, got {multiplier!r}")
    return value


class TimelineEngine:
    """Drives one scenario at a time through its steps.

    All state changes go through this class. It owns at most one live timer
    handle; every operation that could leave a stale timer behind cancels it
    before doing anything else. Step time is tracked unscaled (as authored in
    ``duration_ms``) and divided by the speed only when a timer is armed, so
    pausing and changing speed never lose or gain progress.
    """

    def __init__(
        self,
        graph: Graph,
        scheduler: Scheduler | None = None,
        speed: float = 1.0,
    ):
        self._graph = graph
        self._scheduler = scheduler or AsyncioScheduler()
        self._speed = _check_speed(speed)
        self._listeners: list[Listener] = []

        self._status = PlaybackStatus.IDLE
        self._scenario: Scenario | None = None
        self._index = -1
        self._timer: TimerHandle | None = None
        self._generation = 0
        # Unscaled step time still to play, measured from _segment_start
        self._remaining_ms = 0.0
        self._segment_start = 0.0

    # ------------------------------------------------------------------ #
    # Read-only state
    # ------------------------------------------------------------------ #

    @property
    def graph(self) -> Graph:
        return self._graph

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def scenario(self) -> Scenario | None:
        return self._scenario

    @property
    def current_step_index(self) -> int:
        return self._index

    @property
    def current_step(self) -> Step | None:
        if self._scenario is None or self._index < 0:
            return None
        return self._scenario.steps[self._index]

    @property
    def active_node(self) -> str | None:
        step = self.current_step
        return step.active_node if step else None

    @property
    def active_edge_ids(self) -> frozenset[str]:
        return active_edge_ids(self.current_step, self._graph)

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    @property
    def progress(self) -> float:
        if self._scenario is None or self._index < 0:
            return 0.0
        if self._status == PlaybackStatus.COMPLETED:
            return 1.0
        return self._index / len(self._scenario.steps)

    def remaining_ms(self) -> float:
        """Unscaled time left in the current step."""
        if self._status != PlaybackStatus.RUNNING:
            return self._remaining_ms
        return max(0.0, self._remaining_ms - self._consumed_ms())

    def snapshot(self) -> PlaybackSnapshot:
        step = self.current_step
        return PlaybackSnapshot(
            status=self._status,
            scenario_id=self._scenario.id if self._scenario is not None else None,
            current_step_index=self._index,
            step_count=len(self._scenario.steps) if self._scenario is not None else 0,
            active_node=step.active_node if step else None,
            highlight_nodes=step.highlight_nodes if step else (),
            active_edge_ids=active_edge_ids(step, self._graph),
            description=step.description if step else "",
            speed=self._speed,
            progress=self.progress,
        )

    # ------------------------------------------------------------------ #
    # Subscriptions
    # ------------------------------------------------------------------ #

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                logger.exception("Playback listener %r failed", listener)

    # ------------------------------------------------------------------ #
    # Controls
    # ------------------------------------------------------------------ #

    def start(self, scenario: Scenario) -> None:
        """Play ``scenario`` from its first step, replacing any current playback.

        Raises ScenarioValidationError before touching state if the scenario
        is empty or references nodes missing from the graph.
        """
        ensure_valid_scenario(scenario, self._graph)
        self._cancel_timer()

        self._scenario = scenario
        self._index = 0
        self._status = PlaybackStatus.RUNNING
        self._arm(scenario.steps[0].duration_ms)
        logger.info(
            "Playback started: scenario=%s steps=%d speed=%s",
            scenario.id, len(scenario.steps), self._speed,
        )
        self._notify()

    def pause(self) -> None:
        if self._status != PlaybackStatus.RUNNING:
            return
        self._remaining_ms = self.remaining_ms()
        self._cancel_timer()
        self._status = PlaybackStatus.PAUSED
        logger.debug(
            "Playback paused at step %d with %.1fms left", self._index, self._remaining_ms
        )
        self._notify()

    def resume(self) -> None:
        if self._status != PlaybackStatus.PAUSED:
            return
        self._status = PlaybackStatus.RUNNING
        self._arm(self._remaining_ms)
        logger.debug("Playback resumed at step %d", self._index)
        self._notify()

    def reset(self) -> None:
        self._cancel_timer()
        changed = self._status != PlaybackStatus.IDLE or self._index != -1
        self._status = PlaybackStatus.IDLE
        self._scenario = None
        self._index = -1
        self._remaining_ms = 0.0
        if changed:
            logger.debug("Playback reset")
            self._notify()

    def set_speed(self, multiplier: float) -> None:
        new_speed = _check_speed(multiplier)
        if self._status == PlaybackStatus.RUNNING:
            # Bank progress made at the old speed, then re-arm at the new one
            remaining = self.remaining_ms()
            self._cancel_timer()
            self._speed = new_speed
            self._arm(remaining)
        else:
            self._speed = new_speed
        logger.debug("Playback speed set to %s", new_speed)
        self._notify()

    def go_to_step(self, index: int) -> None:
        """Jump to ``index`` in the loaded scenario; out of range is a no-op."""
        if self._scenario is None or self._status == PlaybackStatus.IDLE:
            return
        if index < 0 or index >= len(self._scenario.steps):
            return
        self._cancel_timer()
        self._index = index
        duration = self._scenario.steps[index].duration_ms
        if self._status == PlaybackStatus.RUNNING:
            self._arm(duration)
        else:
            self._status = PlaybackStatus.PAUSED
            self._remaining_ms = float(duration)
        self._notify()

    def next_step(self) -> None:
        self.go_to_step(self._index + 1)

    def previous_step(self) -> None:
        self.go_to_step(self._index - 1)

    def close(self) -> None:
        self.reset()
        self._listeners.clear()

    # ------------------------------------------------------------------ #
    # Timer plumbing
    # ------------------------------------------------------------------ #

    def _consumed_ms(self) -> float:
        elapsed = self._scheduler.now() - self._segment_start
        return max(0.0, elapsed) * 1000.0 * self._speed

    def _arm(self, remaining_ms: float) -> None:
        self._cancel_timer()
        self._remaining_ms = float(remaining_ms)
        self._segment_start = self._scheduler.now()
        delay = self._remaining_ms / self._speed / 1000.0
        self._generation += 1
        generation = self._generation
        self._timer = self._scheduler.call_later(delay, lambda: self._on_timer(generation))

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, generation: int) -> None:
        # Only the most recently armed timer may advance the timeline
        if generation != self._generation or self._timer is None:
            return
        self._timer = None
        if self._status != PlaybackStatus.RUNNING or self._scenario is None:
            return

        if self._index + 1 < len(self._scenario.steps):
            self._index += 1
            self._arm(self._scenario.steps[self._index].duration_ms)
        else:
            self._status = PlaybackStatus.COMPLETED
            self._remaining_ms = 0.0
            logger.info("Playback completed: scenario=%s", self._scenario.id)
        self._notify()
