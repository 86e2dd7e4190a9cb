import json

import pytest

from text2cypher.pipeline.discovery import (
    SchemaDiscovery,
    discover_schema,
    entity_sample_query,
    pair_probe_query,
    quote_label,
    relation_sample_query,
)
from text2cypher.pipeline.errors import ExecutionFailure, IntrospectionFailure
from text2cypher.pipeline.schema import AttributeType

from fakes import FakeConnection


def _graph_handler(text):
    if text.startswith("MATCH (a:`Person`)"):
        return [[["age", "Integer"], 7], [["name", "String"], 10]]
    if text.startswith("MATCH (a:`City`)"):
        return [[["location", "Point"], 3], [["mood", "Quantum"], 1]]
    if text.startswith("MATCH ()-[a:`LIVES_IN`]"):
        return [[["since", "Integer"], 4]]
    if text.startswith("MATCH (s:`Person`)-[a:`LIVES_IN`]->(t:`City`)"):
        return [["edge"]]
    return []


def test_generated_queries():
    assert quote_label("Person") == "`Person`"
    assert quote_label("we`ird") == "`we``ird`"
    query = entity_sample_query("Person", 100)
    assert query.startswith("MATCH (a:`Person`) CALL { WITH a RETURN [k IN keys(a) | [k, typeof(a[k])]] AS types }")
    assert "LIMIT 100" in query
    assert query.endswith("RETURN kt, count(1) ORDER BY kt[0]")
    assert relation_sample_query("KNOWS", 5).startswith("MATCH ()-[a:`KNOWS`]->()")
    assert pair_probe_query("A", "R", "B") == "MATCH (s:`A`)-[a:`R`]->(t:`B`) RETURN a LIMIT 1"


def test_discover_builds_entities_and_relations():
    conn = FakeConnection(labels=["Person", "City"], rel_types=["LIVES_IN"], handler=_graph_handler)
    discovery = SchemaDiscovery(conn, sample_size=50)
    schema = discovery.discover()

    person = schema.entity("Person")
    assert [(a.name, a.type) for a in person.attributes] == [
        ("age", AttributeType.INTEGER),
        ("name", AttributeType.STRING),
    ]
    assert person.attributes[1].count == 10
    assert not any(a.unique or a.required for a in person.attributes)

    city = schema.entity("City")
    assert city.attributes[0].type is AttributeType.POINT
    assert city.attributes[1].type is AttributeType.STRING
    assert discovery.unknown_types == [("City", "mood", "Quantum")]

    assert len(schema.relations) == 1
    relation = schema.relations[0]
    assert (relation.source, relation.label, relation.target) == ("Person", "LIVES_IN", "City")
    assert relation.attributes[0].name == "since"

    assert all(flag for flag in conn.read_only_flags)
    assert all("LIMIT 50" in q for q in conn.queries if "typeof" in q)
    payload = json.loads(schema.to_json())
    assert payload["relations"][0]["source"] == "Person"


def test_probe_every_label_pair():
    conn = FakeConnection(labels=["A", "B"], rel_types=["R"], handler=lambda _q: [])
    SchemaDiscovery(conn).discover()
    probes = [q for q in conn.queries if q.startswith("MATCH (s:")]
    assert len(probes) == 4


def test_query_failure_becomes_introspection_failure():
    def failing(text):
        raise ExecutionFailure("boom", text)

    conn = FakeConnection(labels=["Person"], handler=failing)
    with pytest.raises(IntrospectionFailure):
        SchemaDiscovery(conn).discover()


def test_discover_schema_uses_given_sample_size():
    conn = FakeConnection(labels=["Person"], rel_types=[], handler=_graph_handler)
    schema = discover_schema(conn, sample_size=5)
    assert schema.entity("Person").attributes[0].name == "age"
    assert schema.relations == ()
    assert all("LIMIT 5" in q for q in conn.queries if "typeof" in q)
