"""Tests for the built-in catalog, graph helpers, and scenario file loading."""
import json

import pytest

from chainviz.catalog.loader import (
    Catalog, catalog_from_schema, graph_to_schema, load_catalog, load_extra_scenarios,
    load_scenario_file, scenario_to_schema,
)
from chainviz.engine.graph import EdgeKind
from chainviz.engine.playback import PlaybackStatus, TimelineEngine, active_edge_ids
from chainviz.engine.scenario import Scenario, Step
from chainviz.engine.validator import GraphValidationError, ScenarioValidationError
from chainviz.models.schemas import CatalogSchema, ScenarioSchema


class TestBuiltinCatalog:
    def test_graph_shape(self, catalog):
        assert len(catalog.graph.nodes) == 10
        assert len(catalog.graph.edges) == 13
        assert catalog.graph.get_edge("cl-engine").kind == EdgeKind.BIDIRECTIONAL

    def test_scenarios(self, catalog):
        ids = [s.id for s in catalog.list_scenarios()]
        assert ids[:3] == ["transaction", "block-sync", "rpc-query"]

    def test_transaction_scenario(self, catalog):
        scenario = catalog.get_scenario("transaction")
        assert len(scenario.steps) == 9
        assert scenario.steps[0].active_node == "rpc"
        assert scenario.steps[-1].highlight_nodes == ("trie", "sync")
        assert scenario.total_duration_ms == 11000

    def test_unknown_scenario(self, catalog):
        with pytest.raises(KeyError):
            catalog.get_scenario("reorg")

    def test_summaries(self, catalog):
        by_id = {s.id: s for s in catalog.summaries()}
        assert by_id["rpc-query"].step_count == 4
        assert by_id["rpc-query"].total_duration_ms == 3500

    @pytest.mark.parametrize("scenario_id", ["transaction", "block-sync", "rpc-query"])
    def test_every_scenario_plays_to_completion(self, catalog, clock, scenario_id):
        engine = TimelineEngine(catalog.graph, scheduler=clock)
        scenario = catalog.get_scenario(scenario_id)
        seen = []
        engine.subscribe(lambda snap: seen.append(snap.current_step_index))
        engine.start(scenario)
        clock.run_until_idle()
        assert engine.status == PlaybackStatus.COMPLETED
        assert clock.now() == pytest.approx(scenario.total_duration_ms / 1000)
        assert seen[:-1] == list(range(len(scenario.steps)))

    def test_rpc_query_highlights(self, catalog):
        graph = catalog.graph
        # Step 1: storage active, rpc highlighted
        step = catalog.get_scenario("rpc-query").steps[1]
        assert active_edge_ids(step, graph) == {
            "trie-storage", "sync-storage", "rpc-storage", "rpc-evm", "rpc-mempool",
        }


class TestGraphHelpers:
    def test_incoming_outgoing(self, catalog):
        graph = catalog.graph
        assert {e.id for e in graph.get_incoming_edges("sync")} == {
            "engine-sync", "net-sync", "mempool-sync",
        }
        assert {e.id for e in graph.get_outgoing_edges("sync")} == {
            "sync-evm", "sync-storage", "sync-static",
        }

    def test_neighbors(self, abc_graph):
        assert abc_graph.get_neighbors("B") == {"A", "C"}
        assert abc_graph.get_neighbors("A") == {"B"}

    def test_get_edge_missing(self, abc_graph):
        assert abc_graph.get_edge("zz") is None


class TestCatalog:
    def test_rejects_invalid_graph(self):
        schema = CatalogSchema.model_validate({
            "graph": {
                "nodes": [{"id": "a"}],
                "edges": [{"id": "e", "from": "a", "to": "ghost"}],
            },
        })
        with pytest.raises(GraphValidationError):
            catalog_from_schema(schema)

    def test_add_duplicate_scenario(self, abc_graph, abc_scenario):
        catalog = Catalog(abc_graph)
        catalog.add(abc_scenario)
        with pytest.raises(ScenarioValidationError, match="Duplicate"):
            catalog.add(abc_scenario)
        catalog.add(abc_scenario, replace=True)
        assert "abc" in catalog

    def test_add_invalid_scenario(self, abc_graph):
        catalog = Catalog(abc_graph)
        with pytest.raises(ScenarioValidationError):
            catalog.add(Scenario(id="x", steps=(Step(active_node="nope", duration_ms=5),)))
        assert "x" not in catalog

    def test_load_catalog_roundtrip(self, tmp_path, catalog):
        data = {
            "name": "copy",
            "graph": graph_to_schema(catalog.graph).model_dump(by_alias=True, mode="json"),
            "scenarios": [
                scenario_to_schema(catalog.get_scenario("rpc-query")).model_dump(mode="json"),
            ],
        }
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(data))
        loaded = load_catalog(path)
        assert loaded.name == "copy"
        assert loaded.get_scenario("rpc-query") == catalog.get_scenario("rpc-query")
        assert loaded.graph.edges == catalog.graph.edges


class TestScenarioFiles:
    def _write(self, path, data):
        path.write_text(json.dumps(data))
        return path

    def test_single_and_list_files(self, tmp_path):
        one = {"id": "one", "steps": [{"active": "A", "duration_ms": 100}]}
        many = [
            {"id": "two", "steps": [{"active": "B", "duration_ms": 100, "highlight": ["A"]}]},
            {"id": "three", "steps": [{"active": "C", "duration_ms": 100}]},
        ]
        assert [s.id for s in load_scenario_file(self._write(tmp_path / "one.json", one))] == ["one"]
        assert [s.id for s in load_scenario_file(self._write(tmp_path / "many.json", many))] == [
            "two", "three",
        ]

    def test_extra_scenarios_skip_bad_files(self, tmp_path, abc_graph):
        self._write(tmp_path / "a_good.json", {"id": "good", "steps": [{"active": "A", "duration_ms": 10}]})
        self._write(tmp_path / "b_unknown_node.json", {"id": "bad", "steps": [{"active": "Q", "duration_ms": 10}]})
        self._write(tmp_path / "c_empty.json", {"id": "empty", "steps": []})
        self._write(tmp_path / "d_zero.json", {"id": "zero", "steps": [{"active": "A", "duration_ms": 0}]})
        (tmp_path / "e_broken.json").write_text("{not json")

        catalog = Catalog(abc_graph)
        added = load_extra_scenarios(catalog, tmp_path)
        assert added == 1
        assert [s.id for s in catalog.list_scenarios()] == ["good"]

    def test_missing_directory(self, tmp_path, abc_graph):
        catalog = Catalog(abc_graph)
        assert load_extra_scenarios(catalog, tmp_path / "nope") == 0
        assert load_extra_scenarios(catalog, None) == 0

    def test_schema_rejects_empty_steps(self):
        with pytest.raises(ValueError):
            ScenarioSchema.model_validate({"id": "x", "steps": []})
