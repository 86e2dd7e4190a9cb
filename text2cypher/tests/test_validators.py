import unittest

from text2cypher.pipeline.validators import (
    CypherValidator,
    check_balanced,
    check_balanced_brackets,
    check_balanced_parentheses,
)


class CypherValidatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = CypherValidator()

    def test_valid_read_query(self):
        result = self.validator.validate("MATCH (p:Person)-[:KNOWS]->(f) RETURN f.name")
        self.assertTrue(result.is_valid)
        self.assertEqual(result.errors, [])
        self.assertEqual(result.warnings, [])

    def test_empty_query_short_circuits(self):
        result = self.validator.validate("   ")
        self.assertFalse(result.is_valid)
        self.assertEqual(result.errors, ["Query is empty"])

    def test_missing_keywords(self):
        result = self.validator.validate("hello there")
        self.assertFalse(result.is_valid)
        self.assertIn("Query does not contain valid Cypher keywords", result.errors)

    def test_destructive_operations_rejected(self):
        for query in ("MATCH (n) DETACH DELETE n", "DROP INDEX ON :Person(name)", "match (n) delete n"):
            result = self.validator.validate(query)
            self.assertFalse(result.is_valid, query)
            self.assertIn("Query contains potentially dangerous operations (DROP, DELETE ALL)", result.errors)

    def test_missing_match_is_warning_only(self):
        result = self.validator.validate("WITH 1 AS x RETURN x")
        self.assertTrue(result.is_valid)
        self.assertIn("Query does not contain a MATCH clause", result.warnings)

    def test_create_and_call_leaders_skip_match_warning(self):
        result = self.validator.validate("CALL db.labels() YIELD label RETURN label")
        self.assertNotIn("Query does not contain a MATCH clause", result.warnings)
        result = self.validator.validate("unwind [1, 2] AS x RETURN x")
        self.assertNotIn("Query does not contain a MATCH clause", result.warnings)

    def test_missing_return_is_warning_only(self):
        result = self.validator.validate("MATCH (n:Person)")
        self.assertTrue(result.is_valid)
        self.assertIn("Query does not contain a RETURN clause", result.warnings)

    def test_unbalanced_delimiters(self):
        result = self.validator.validate("MATCH (n:Person RETURN n")
        self.assertIn("Unbalanced parentheses in query", result.errors)
        result = self.validator.validate("MATCH (n)-[r:KNOWS->(m) RETURN m")
        self.assertIn("Unbalanced brackets in query", result.errors)

    def test_all_checks_reported_together(self):
        result = self.validator.validate("MATCH (n DELETE n")
        self.assertIn("Unbalanced parentheses in query", result.errors)
        self.assertIn("Query contains potentially dangerous operations (DROP, DELETE ALL)", result.errors)
        self.assertIn("Query does not contain a RETURN clause", result.warnings)

    def test_validation_is_pure(self):
        query = "MATCH (n) RETURN n LIMIT 5"
        self.assertEqual(self.validator.validate(query), self.validator.validate(query))


def test_check_balanced():
    assert check_balanced("((a)(b))", "(", ")")
    assert check_balanced("", "(", ")")
    assert not check_balanced(")(", "(", ")")
    assert not check_balanced("(()", "(", ")")
    assert check_balanced_parentheses("f(g(x))")
    assert check_balanced_brackets("[[1], [2]]")
    assert not check_balanced_brackets("[1]]")
