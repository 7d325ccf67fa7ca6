"""Graph and scenario validation: integrity and referential checks."""
from collections import Counter

from .graph import Graph
from .scenario import Scenario


class ValidationError(Exception):
    def __init__(self, errors: list[str], what: str = "Validation"):
        self.errors = errors
        super().__init__(f"{what} failed: {errors}")


class GraphValidationError(ValidationError):
    def __init__(self, errors: list[str]):
        super().__init__(errors, "Graph validation")


class ScenarioValidationError(ValidationError):
    def __init__(self, errors: list[str]):
        super().__init__(errors, "Scenario validation")


def validate_graph(graph: Graph) -> list[str]:
    """Validate a graph, returning a list of error messages (empty = valid)."""
    errors: list[str] = []
    errors.extend(_check_node_keys(graph))
    errors.extend(_check_edge_ids(graph))
    errors.extend(_check_edge_endpoints(graph))
    return errors


def validate_scenario(scenario: Scenario, graph: Graph) -> list[str]:
    """Check a scenario is non-empty and every step resolves against ``graph``."""
    errors: list[str] = []
    if not scenario.steps:
        return [f"Scenario '{scenario.id}' has no steps"]

    for idx, step in enumerate(scenario.steps):
        if not graph.has_node(step.active_node):
            errors.append(
                f"Scenario '{scenario.id}' step {idx}: "
                f"unknown active node '{step.active_node}'"
            )
        for node_id in step.highlight_nodes:
            if not graph.has_node(node_id):
                errors.append(
                    f"Scenario '{scenario.id}' step {idx}: "
                    f"unknown highlight node '{node_id}'"
                )
        if isinstance(step.duration_ms, bool) or not isinstance(step.duration_ms, int):
            errors.append(
                f"Scenario '{scenario.id}' step {idx}: "
                f"duration must be an integer number of milliseconds"
            )
        elif step.duration_ms <= 0:
            errors.append(
                f"Scenario '{scenario.id}' step {idx}: "
                f"duration must be positive, got {step.duration_ms}"
            )
    return errors


def ensure_valid_scenario(scenario: Scenario, graph: Graph) -> None:
    errors = validate_scenario(scenario, graph)
    if errors:
        raise ScenarioValidationError(errors)


def ensure_valid_graph(graph: Graph) -> None:
    errors = validate_graph(graph)
    if errors:
        raise GraphValidationError(errors)


def _check_node_keys(graph: Graph) -> list[str]:
    return [
        f"Node key '{key}' does not match node id '{node.id}'"
        for key, node in graph.nodes.items()
        if key != node.id
    ]


def _check_edge_ids(graph: Graph) -> list[str]:
    counts = Counter(e.id for e in graph.edges)
    return [f"Duplicate edge id: {eid}" for eid, n in counts.items() if n > 1]


def _check_edge_endpoints(graph: Graph) -> list[str]:
    errors: list[str] = []
    for edge in graph.edges:
        if not graph.has_node(edge.source) or not graph.has_node(edge.target):
            errors.append(f"Edge {edge.id} references missing node")
    return errors
