"""Scenario catalog: the diagram graph plus the scenarios that walk through it."""
import logging
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from ..engine.graph import Edge, Graph, Node
from ..engine.scenario import Scenario, Step
from ..engine.validator import (
    ScenarioValidationError, ensure_valid_graph, validate_scenario,
)
from ..models.schemas import (
    CatalogSchema, EdgeSchema, GraphSchema, NodeSchema,
    ScenarioSchema, ScenarioSummary, StepSchema,
)

logger = logging.getLogger(__name__)

_scenario_file = TypeAdapter(list[ScenarioSchema] | ScenarioSchema)


class Catalog:
    """A graph and its scenarios. Every scenario is validated on add."""

    def __init__(self, graph: Graph, name: str = "", description: str = ""):
        ensure_valid_graph(graph)
        self.graph = graph
        self.name = name
        self.description = description
        self._scenarios: dict[str, Scenario] = {}

    def add(self, scenario: Scenario, replace: bool = False) -> None:
        errors = validate_scenario(scenario, self.graph)
        if scenario.id in self._scenarios and not replace:
            errors.append(f"Duplicate scenario id: {scenario.id}")
        if errors:
            raise ScenarioValidationError(errors)
        self._scenarios[scenario.id] = scenario

    def get_scenario(self, scenario_id: str) -> Scenario:
        if scenario_id not in self._scenarios:
            raise KeyError(f"Unknown scenario: {scenario_id}")
        return self._scenarios[scenario_id]

    def list_scenarios(self) -> list[Scenario]:
        return list(self._scenarios.values())

    def summaries(self) -> list[ScenarioSummary]:
        return [
            ScenarioSummary(
                id=s.id, name=s.name, description=s.description, color=s.color,
                step_count=len(s.steps), total_duration_ms=s.total_duration_ms,
            )
            for s in self._scenarios.values()
        ]

    def __contains__(self, scenario_id: str) -> bool:
        return scenario_id in self._scenarios


def graph_from_schema(schema: GraphSchema) -> Graph:
    nodes = {
        n.id: Node(
            id=n.id, name=n.name, description=n.description, layer=n.layer,
            position=dict(n.position), details=tuple(n.details),
            metadata=dict(n.metadata),
        )
        for n in schema.nodes
    }
    edges = [
        Edge(
            id=e.id, source=e.source, target=e.target, kind=e.kind,
            label=e.label, description=e.description,
        )
        for e in schema.edges
    ]
    return Graph(nodes=nodes, edges=edges)


def scenario_from_schema(schema: ScenarioSchema) -> Scenario:
    return Scenario(
        id=schema.id,
        name=schema.name,
        description=schema.description,
        color=schema.color,
        steps=tuple(
            Step(
                active_node=s.active,
                duration_ms=s.duration_ms,
                highlight_nodes=tuple(s.highlight),
                description=s.description,
            )
            for s in schema.steps
        ),
    )


def catalog_from_schema(schema: CatalogSchema) -> Catalog:
    catalog = Catalog(
        graph_from_schema(schema.graph),
        name=schema.name,
        description=schema.description,
    )
    for scenario_schema in schema.scenarios:
        catalog.add(scenario_from_schema(scenario_schema))
    return catalog


def load_catalog(path: Path) -> Catalog:
    """Parse and validate a catalog JSON file (graph + scenarios)."""
    schema = CatalogSchema.model_validate_json(Path(path).read_text())
    catalog = catalog_from_schema(schema)
    logger.info(
        "Loaded catalog %s: %d nodes, %d edges, %d scenarios",
        path, len(catalog.graph.nodes), len(catalog.graph.edges),
        len(catalog.list_scenarios()),
    )
    return catalog


def load_scenario_file(path: Path) -> list[Scenario]:
    parsed = _scenario_file.validate_json(Path(path).read_text())
    schemas = parsed if isinstance(parsed, list) else [parsed]
    return [scenario_from_schema(s) for s in schemas]


def load_extra_scenarios(catalog: Catalog, directory: Path | None) -> int:
    """Add scenarios from ``*.json`` files in ``directory``.

    Files that fail to parse or validate are logged and skipped. Returns the
    number of scenarios added.
    """
    if directory is None or not Path(directory).is_dir():
        return 0
    added = 0
    for path in sorted(Path(directory).glob("*.json")):
        try:
            scenarios = load_scenario_file(path)
            for scenario in scenarios:
                catalog.add(scenario)
                added += 1
        except (ValidationError, ScenarioValidationError, OSError) as e:
            logger.warning("Skipping scenario file %s: %s", path, e)
    return added


def graph_to_schema(graph: Graph) -> GraphSchema:
    return GraphSchema(
        nodes=[
            NodeSchema(
                id=n.id, name=n.name, description=n.description, layer=n.layer,
                position=n.position, details=list(n.details), metadata=n.metadata,
            )
            for n in graph.nodes.values()
        ],
        edges=[
            EdgeSchema(
                id=e.id, source=e.source, target=e.target, kind=e.kind,
                label=e.label, description=e.description,
            )
            for e in graph.edges
        ],
    )


def scenario_to_schema(scenario: Scenario) -> ScenarioSchema:
    return ScenarioSchema(
        id=scenario.id,
        name=scenario.name,
        description=scenario.description,
        color=scenario.color,
        steps=[
            StepSchema(
                active=s.active_node, duration_ms=s.duration_ms,
                highlight=list(s.highlight_nodes), description=s.description,
            )
            for s in scenario.steps
        ],
    )
