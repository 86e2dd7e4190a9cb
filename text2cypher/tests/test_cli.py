import json

from text2cypher.pipeline import Text2CypherPipeline, cli

from fakes import FakeConnection, FakeProvider, factory_for, make_config, router_for


def _install(monkeypatch, provider, connection):
    def build(_config):
        return Text2CypherPipeline(make_config(), router=router_for(provider), connection_factory=factory_for(connection))

    monkeypatch.setattr(cli, "Text2CypherPipeline", build)


def test_ask_streams_json_events(monkeypatch, capsys):
    _install(monkeypatch, FakeProvider(queries=["MATCH (n) RETURN count(n)"], answer_chunks=["3"]), FakeConnection(handler=lambda _q: [[3]]))
    code = cli.main(["ask", "--graph", "g", "--question", "How many?", "--json"])
    assert code == 0
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert lines[2] == {"CypherQuery": "MATCH (n) RETURN count(n)"}
    assert lines[-1] == {"Result": "3"}


def test_ask_no_stream_reports_error_exit_code(monkeypatch, capsys):
    _install(monkeypatch, FakeProvider(queries=["NO ANSWER"]), FakeConnection())
    code = cli.main(["ask", "--graph", "g", "--question", "?", "--no-stream", "--json"])
    assert code == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["status"] == "error"
    assert payload["error"] == "No valid query was generated"


def test_ask_plain_output(monkeypatch, capsys):
    _install(monkeypatch, FakeProvider(queries=["MATCH (n) RETURN n"], answer_chunks=["Hello", " world"]), FakeConnection(handler=lambda _q: [[1]]))
    code = cli.main(["ask", "--graph", "g", "--question", "?"])
    out = capsys.readouterr().out
    assert code == 0
    assert "CypherQuery MATCH (n) RETURN n" in out
    assert "Hello world" in out


def test_graphs_and_query_commands(monkeypatch, capsys):
    connection = FakeConnection(graphs=["social"], handler=lambda _q: [[1]])
    _install(monkeypatch, FakeProvider(), connection)
    assert cli.main(["graphs"]) == 0
    assert cli.main(["query", "--graph", "social", "--cypher", "RETURN 1", "--read-only"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == ["social", "[[1]]"]
    assert connection.read_only_flags == [True]
