"""Graph data structures for the architecture diagram."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class EdgeKind(str, Enum):
    DATA = "data"
    CONTROL = "control"
    API = "api"
    BIDIRECTIONAL = "bidirectional"


@dataclass(frozen=True)
class Node:
    id: str
    name: str = ""
    description: str = ""
    layer: str = ""
    position: dict[str, float] = field(default_factory=dict, compare=False, hash=False)
    details: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    target: str
    kind: EdgeKind = EdgeKind.DATA
    label: str = ""
    description: str = ""

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


@dataclass
class Graph:
    """Read-only node/edge model. Safe to share between engines."""
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def get_edge(self, edge_id: str) -> Edge | None:
        for e in self.edges:
            if e.id == edge_id:
                return e
        return None

    def get_incoming_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.target == node_id]

    def get_outgoing_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def edges_touching(self, node_ids: Iterable[str]) -> list[Edge]:
        """Edges with either endpoint in ``node_ids``, in graph order."""
        wanted = set(node_ids)
        return [e for e in self.edges if e.source in wanted or e.target in wanted]

    def get_neighbors(self, node_id: str) -> set[str]:
        return {
            e.target if e.source == node_id else e.source
            for e in self.edges if e.touches(node_id)
        }
