"""Tests for boolean query composition."""

import pytest

from codeintel.errors import QueryParseError
from codeintel.index.engine import IndexEngine
from codeintel.index.query import QueryBuilder, escape_regex, wildcard_to_regex


def ids(results) -> set[str]:
    return {r.id for r in results}


class TestRegexHelpers:
    def test_escape_regex(self):
        assert escape_regex("a.b*c") == "a\\.b\\*c"

    def test_wildcard_to_regex(self):
        assert wildcard_to_regex("get*Name?") == "get.*Name."
        assert wildcard_to_regex("a.b") == "a\\.b"


# =============================================================================
# Builder validation
# =============================================================================


class TestBuilderValidation:
    """Invalid clauses are rejected when added."""

    def test_unknown_field(self):
        with pytest.raises(QueryParseError, match="unknown or unsupported field"):
            QueryBuilder().term("colour", "red")

    def test_range_on_text_field(self):
        with pytest.raises(QueryParseError):
            QueryBuilder().range("name", 1, 2)

    def test_inverted_range(self):
        with pytest.raises(QueryParseError, match="lower bound exceeds upper bound"):
            QueryBuilder().range("start_line", 10, 5)

    def test_of_kind_requires_kinds(self):
        with pytest.raises(QueryParseError):
            QueryBuilder().of_kind()

    def test_unknown_relation(self):
        with pytest.raises(QueryParseError):
            QueryBuilder().has_relation("uses", "add")

    def test_chaining_counts_clauses(self):
        builder = QueryBuilder().and_("add").or_("sum").not_("total")

        assert len(builder) == 3
        assert not builder.is_empty
        assert QueryBuilder().is_empty


# =============================================================================
# Execution
# =============================================================================


class TestAdvancedSearch:
    """Tests for executing composed queries against the sample index."""

    def test_kind_and_text(self, index_engine: IndexEngine):
        builder = QueryBuilder().of_kind("method").and_("multiply")
        assert ids(index_engine.advanced_search(builder)) == {
            "Calculator#multiply",
            "CalculatorUser#computeTotal",
        }

    def test_kind_and_relation(self, index_engine: IndexEngine):
        builder = QueryBuilder().of_kind("method").has_relation("calls", "add")
        assert ids(index_engine.advanced_search(builder)) == {"Calculator#multiply", "Calculator#apply"}

    def test_term_on_keyword_field(self, index_engine: IndexEngine):
        builder = QueryBuilder().of_kind("field").term("class_name", "Calculator")
        assert ids(index_engine.advanced_search(builder)) == {
            "Calculator.total",
            "Calculator.MAX_VALUE",
            "Calculator.MIN_VALUE",
        }

    def test_term_on_text_field_is_lowercased(self, index_engine: IndexEngine):
        builder = QueryBuilder().of_kind("method").term("name", "Multiply")
        assert ids(index_engine.advanced_search(builder)) == {"Calculator#multiply"}

    def test_line_range(self, index_engine: IndexEngine):
        builder = QueryBuilder().of_kind("method").term("class_name", "Calculator").range("start_line", 15, 20)
        assert ids(index_engine.advanced_search(builder)) == {"Calculator#add"}

    def test_wildcard(self, index_engine: IndexEngine):
        builder = QueryBuilder().of_kind("method").wildcard("name", "mult*")
        assert ids(index_engine.advanced_search(builder)) == {"Calculator#multiply"}

    def test_prefix(self, index_engine: IndexEngine):
        builder = QueryBuilder().of_kind("class", "interface").prefix("id", "com.example.calc.Calc")
        assert ids(index_engine.advanced_search(builder)) == {
            "com.example.calc.Calculator",
            "com.example.calc.CalculatorUser",
        }

    def test_not_clause(self, index_engine: IndexEngine):
        builder = QueryBuilder().of_kind("class").not_("arithmetic", fields=["javadoc"])
        assert ids(index_engine.advanced_search(builder)) == {
            "com.example.calc.BaseCalculator",
            "com.example.calc.CalculatorUser",
            "com.example.calc.SimilarCalculator",
        }

    def test_only_should_clauses(self, index_engine: IndexEngine):
        builder = QueryBuilder().or_("remember", fields=["name"]).or_("unused", fields=["name"])
        results = index_engine.advanced_search(builder, max_results=50)

        assert {"Calculator#remember", "Calculator#unused"} <= ids(results)

    def test_empty_builder_matches_everything(self, index_engine: IndexEngine):
        results = index_engine.advanced_search(QueryBuilder(), max_results=100)
        assert len(results) == 43

    def test_invalid_text_fails_on_build(self, index_engine: IndexEngine):
        builder = QueryBuilder().and_("   ")
        with pytest.raises(QueryParseError):
            index_engine.advanced_search(builder)
