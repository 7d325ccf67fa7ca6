"""Shared test fixtures for ChainViz backend tests."""
import sys
from pathlib import Path

import pytest

# Ensure chainviz package is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from chainviz.catalog import default_catalog
from chainviz.engine.graph import Edge, EdgeKind, Graph, Node
from chainviz.engine.playback import TimelineEngine
from chainviz.engine.scenario import Scenario, Step
from chainviz.engine.scheduler import ManualScheduler
from chainviz.engine.session import clear_sessions


@pytest.fixture
def abc_graph():
    """A -> B (data), B -> C (control)."""
    nodes = {nid: Node(id=nid, name=nid) for nid in ("A", "B", "C")}
    edges = [
        Edge(id="ab", source="A", target="B", kind=EdgeKind.DATA, label="A to B"),
        Edge(id="bc", source="B", target="C", kind=EdgeKind.CONTROL, label="B to C"),
    ]
    return Graph(nodes=nodes, edges=edges)


@pytest.fixture
def abc_scenario():
    """Three one-second steps: A, then B highlighting A, then C."""
    return Scenario(
        id="abc",
        name="A to C",
        steps=(
            Step(active_node="A", duration_ms=1000, description="start at A"),
            Step(active_node="B", duration_ms=1000, highlight_nodes=("A",),
                 description="B, with A highlighted"),
            Step(active_node="C", duration_ms=1000, description="end at C"),
        ),
    )


@pytest.fixture
def reverse_scenario():
    return Scenario(
        id="cba",
        steps=(
            Step(active_node="C", duration_ms=500),
            Step(active_node="A", duration_ms=2000),
        ),
    )


@pytest.fixture
def clock():
    return ManualScheduler()


@pytest.fixture
def engine(abc_graph, clock):
    eng = TimelineEngine(abc_graph, scheduler=clock)
    yield eng
    eng.close()


@pytest.fixture
def recorded(engine):
    """Every snapshot the engine publishes, in order."""
    snapshots = []
    engine.subscribe(snapshots.append)
    return snapshots


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture(autouse=True)
def _clean_sessions():
    yield
    clear_sessions()
