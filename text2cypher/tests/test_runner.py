import json
import types

import pytest

from text2cypher.pipeline.errors import ConnectionFailure, ExecutionFailure, IntrospectionFailure
from text2cypher.pipeline.records import GraphEdge, GraphNode, GraphPath, to_graph_value
from text2cypher.pipeline import runner as runner_module
from text2cypher.pipeline.runner import FalkorRunner, execute_query, graph_query


class FakeGraph:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.calls = []

    def _run(self, kind, text, timeout):
        self.calls.append((kind, text, timeout))
        if self.error is not None:
            raise self.error
        return types.SimpleNamespace(result_set=self.rows, header=[])

    def query(self, text, params=None, timeout=None):
        return self._run("query", text, timeout)

    def ro_query(self, text, params=None, timeout=None):
        return self._run("ro_query", text, timeout)


class FakeDb:
    def __init__(self, graph, graphs=()):
        self.graph = graph
        self.graphs = list(graphs)
        self.selected = []

    def select_graph(self, name):
        self.selected.append(name)
        return self.graph

    def list_graphs(self):
        return self.graphs


def _runner(graph, graphs=()):
    runner = FalkorRunner("social")
    runner._db = FakeDb(graph, graphs)
    return runner


def test_client_values_converted_by_shape():
    node = types.SimpleNamespace(id=1, labels=["Person"], properties={"name": "Ann"})
    edge = types.SimpleNamespace(id=7, relation="KNOWS", src_node=1, dest_node=2, properties={"since": 2020})
    other = types.SimpleNamespace(id=2, labels=["Person"], properties={})
    path = types.SimpleNamespace(nodes=lambda: [node, other], edges=lambda: [edge])

    assert to_graph_value(node) == GraphNode(1, ["Person"], {"name": "Ann"})
    assert to_graph_value(edge) == GraphEdge(7, "KNOWS", 1, 2, {"since": 2020})
    converted = to_graph_value(path)
    assert isinstance(converted, GraphPath)
    assert len(converted.nodes) == 2 and len(converted.edges) == 1
    assert to_graph_value([b"raw", {"k": [1, 2.5]}]) == ["raw", {"k": [1, 2.5]}]


def test_run_query_read_only_by_default():
    graph = FakeGraph(rows=[[1, "a"]])
    runner = _runner(graph)
    assert runner.run_query("MATCH (n) RETURN n", timeout=500) == [[1, "a"]]
    assert graph.calls == [("ro_query", "MATCH (n) RETURN n", 500)]
    runner.run_query("CREATE (n)", read_only=False)
    assert graph.calls[-1][0] == "query"


def test_execute_query_formats_records():
    node = types.SimpleNamespace(id=1, labels=["Person"], properties={"name": "Ann"})
    runner = _runner(FakeGraph(rows=[[node]]))
    assert execute_query(runner, "MATCH (p) RETURN p") == '(:Person {name: "Ann"})'
    assert execute_query(_runner(FakeGraph(rows=[])), "MATCH (p) RETURN p") == "No results returned."


def test_graph_query_returns_json():
    runner = _runner(FakeGraph(rows=[[1, None]]))
    assert json.loads(graph_query(runner, "RETURN 1, null")) == [[1, None]]


def test_database_errors_map_to_taxonomy():
    with pytest.raises(ExecutionFailure) as info:
        _runner(FakeGraph(error=RuntimeError("Unknown function 'foo'"))).run_query("RETURN foo()")
    assert info.value.query == "RETURN foo()"

    with pytest.raises(ConnectionFailure):
        _runner(FakeGraph(error=ConnectionError("refused"))).run_query("RETURN 1")

    with pytest.raises(IntrospectionFailure):
        _runner(FakeGraph(error=RuntimeError("no such procedure"))).introspect_labels()


def test_introspection_and_graph_listing():
    runner = _runner(FakeGraph(rows=[["Person"], [b"City"]]), graphs=[b"social", "movies"])
    assert runner.introspect_labels() == ["Person", "City"]
    assert runner.list_graphs() == ["social", "movies"]


def test_context_manager_closes():
    with _runner(FakeGraph()) as runner:
        runner.run_query("RETURN 1")
    assert runner._db is None


def test_unreachable_database_names_falkordb(monkeypatch):
    def from_url(url):
        raise OSError(f"cannot reach {url}")

    monkeypatch.setattr(runner_module, "FalkorDB", types.SimpleNamespace(from_url=from_url))
    monkeypatch.setattr(
        runner_module,
        "RedisExceptions",
        types.SimpleNamespace(ConnectionError=ConnectionError, TimeoutError=TimeoutError),
    )
    runner = FalkorRunner("social", connection_target="falkor://db:6379")
    with pytest.raises(ConnectionFailure, match="^Failed to connect to FalkorDB: cannot reach falkor://db:6379"):
        runner.run_query("RETURN 1")
