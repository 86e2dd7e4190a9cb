import json
import unittest

from text2cypher.pipeline.schema import Attribute, AttributeType, Entity, Relation, Schema


def _sample_schema() -> Schema:
    return Schema(
        entities=(
            Entity("Person", (Attribute("name", AttributeType.STRING, count=10), Attribute("age", AttributeType.INTEGER))),
            Entity("Tag"),
        ),
        relations=(Relation("KNOWS", "Person", "Person", (Attribute("since", AttributeType.INTEGER),)),),
    )


class SchemaTests(unittest.TestCase):
    def test_json_shape(self):
        payload = json.loads(_sample_schema().to_json())
        person = payload["entities"][0]
        self.assertEqual(person["label"], "Person")
        self.assertEqual(person["attributes"][0], {"name": "name", "type": "String"})
        self.assertNotIn("attributes", payload["entities"][1])
        relation = payload["relations"][0]
        self.assertEqual(relation["source"], "Person")
        self.assertEqual(relation["target"], "Person")
        self.assertEqual(relation["attributes"], [{"name": "since", "type": "Integer"}])

    def test_unique_and_required_only_when_set(self):
        attr = Attribute("id", AttributeType.INTEGER, unique=True, required=True)
        self.assertEqual(attr.to_dict(), {"name": "id", "type": "Integer", "unique": True, "required": True})

    def test_json_round_trip_drops_counts(self):
        schema = _sample_schema()
        restored = Schema.from_json(schema.to_json())
        self.assertEqual(restored.to_json(), schema.to_json())
        self.assertTrue(restored.has_relation("Person", "KNOWS", "Person"))
        self.assertEqual(restored.entity("Person").attributes[0].count, 0)

    def test_describe(self):
        text = _sample_schema().describe()
        self.assertIn("Person: name: String, age: Integer", text)
        self.assertIn("(Person)-[:KNOWS]->(Person) {since: Integer}", text)


def test_attribute_type_parsing():
    assert AttributeType.parse("Integer") is AttributeType.INTEGER
    assert AttributeType.parse("Vectorf32") is AttributeType.VECTOR
    assert AttributeType.parse("Point") is AttributeType.POINT
    assert AttributeType.parse("Duration") is AttributeType.STRING
    assert AttributeType.lookup("Duration") is None
