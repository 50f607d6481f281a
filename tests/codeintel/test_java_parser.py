"""Tests for the Java parsing frontend."""

from pathlib import Path

import pytest

from codeintel.errors import ExtractionError
from codeintel.extraction.models.entities import EntityKind
from codeintel.extraction.parsers import JavaParser, get_parser_for_file, get_parser_for_language
from codeintel.extraction.parsers.base import clean_doc_comment

from conftest import (
    BROKEN_SOURCE,
    CALCULATOR_SOURCE,
    CALCULATOR_USER_SOURCE,
    COLOR_SOURCE,
    OPERATION_SOURCE,
)


@pytest.fixture
def parser() -> JavaParser:
    return JavaParser()


def members_by_name(decl):
    return {member.name: member for member in decl.members}


# =============================================================================
# Registry
# =============================================================================


class TestParserRegistry:
    def test_parser_for_java_file(self):
        parser = get_parser_for_file(Path("src/Calculator.java"))
        assert isinstance(parser, JavaParser)

    def test_no_parser_for_other_files(self):
        assert get_parser_for_file(Path("README.md")) is None

    def test_parser_for_language(self):
        parser = get_parser_for_language("java", allow_partial=True)
        assert isinstance(parser, JavaParser)
        assert parser.allow_partial
        assert get_parser_for_language("cobol") is None


# =============================================================================
# Types
# =============================================================================


class TestJavaTypes:
    """Type declarations, inheritance clauses and documentation."""

    def test_package_and_class(self, parser):
        unit = parser.parse_content(CALCULATOR_SOURCE, "Calculator.java")

        assert unit.package == "com.example.calc"
        assert len(unit.declarations) == 1
        decl = unit.declarations[0]
        assert decl.kind == EntityKind.CLASS
        assert decl.name == "Calculator"
        assert decl.start_line == 7
        assert decl.end_line == 40
        assert decl.modifiers == ["public"]

    def test_inheritance_clauses(self, parser):
        decl = parser.parse_content(CALCULATOR_SOURCE, "Calculator.java").declarations[0]

        assert decl.extends == ["BaseCalculator"]
        assert decl.implements == ["Operation", "Comparable<Calculator>"]

    def test_doc_comment_stops_at_block_tags(self, parser):
        decl = parser.parse_content(CALCULATOR_SOURCE, "Calculator.java").declarations[0]
        assert decl.documentation == "Simple arithmetic calculator."

    def test_interface(self, parser):
        decl = parser.parse_content(OPERATION_SOURCE, "Operation.java").declarations[0]

        assert decl.kind == EntityKind.INTERFACE
        assert decl.documentation == "An arithmetic operation over two operands."
        apply = members_by_name(decl)["apply"]
        assert apply.body is None
        assert apply.return_type == "int"

    def test_interface_extends(self, parser):
        source = "interface Shape extends Comparable<Shape>, Cloneable {\n}\n"
        decl = parser.parse_content(source, "Shape.java").declarations[0]

        assert decl.extends == ["Comparable<Shape>", "Cloneable"]
        assert decl.implements == []

    def test_enum(self, parser):
        decl = parser.parse_content(COLOR_SOURCE, "Color.java").declarations[0]

        assert decl.kind == EntityKind.ENUM
        assert decl.constants == ["RED", "GREEN", "BLUE"]
        assert set(members_by_name(decl)) == {"Label", "label"}

    def test_nested_types(self, parser):
        source = """package p;

public class Outer {
    static class Inner {
        void run() {
        }
    }

    interface Callback {
    }
}
"""
        decl = parser.parse_content(source, "Outer.java").declarations[0]

        assert [n.name for n in decl.nested] == ["Inner", "Callback"]
        assert decl.nested[0].members[0].name == "run"
        assert decl.nested[1].kind == EntityKind.INTERFACE

    def test_default_package(self, parser):
        unit = parser.parse_content("class A {\n}\n", "A.java")
        assert unit.package == ""


# =============================================================================
# Members
# =============================================================================


class TestJavaMembers:
    """Methods, fields and their details."""

    def test_methods_and_fields(self, parser):
        decl = parser.parse_content(CALCULATOR_SOURCE, "Calculator.java").declarations[0]
        members = members_by_name(decl)

        assert [m.kind for m in decl.members].count(EntityKind.METHOD) == 5
        assert set(members) >= {"add", "multiply", "remember", "unused", "apply", "total", "MAX_VALUE"}

    def test_method_details(self, parser):
        decl = parser.parse_content(CALCULATOR_SOURCE, "Calculator.java").declarations[0]
        add = members_by_name(decl)["add"]

        assert add.return_type == "int"
        assert add.parameters == [("a", "int"), ("b", "int")]
        assert add.calls == ["remember"]
        assert add.documentation == "Adds two numbers and returns the sum."
        assert add.modifiers == ["public"]
        assert (add.start_line, add.end_line) == (15, 19)
        assert add.body.startswith("{")

    def test_annotations_are_not_modifiers(self, parser):
        decl = parser.parse_content(CALCULATOR_SOURCE, "Calculator.java").declarations[0]
        apply = members_by_name(decl)["apply"]

        assert apply.modifiers == ["public"]
        assert apply.documentation == ""

    def test_calls_inside_loops(self, parser):
        decl = parser.parse_content(CALCULATOR_SOURCE, "Calculator.java").declarations[0]
        assert members_by_name(decl)["multiply"].calls == ["add"]

    def test_qualified_calls_use_method_name(self, parser):
        decl = parser.parse_content(CALCULATOR_USER_SOURCE, "CalculatorUser.java").declarations[0]
        members = members_by_name(decl)

        assert members["computeTotal"].calls == ["multiply"]
        assert members["reset"].calls == ["clear"]

    def test_field_with_several_variables(self, parser):
        decl = parser.parse_content(CALCULATOR_SOURCE, "Calculator.java").declarations[0]
        constants = members_by_name(decl)["MAX_VALUE"]

        assert constants.field_type == "int"
        assert constants.modifiers == ["public", "static", "final"]
        assert [(v.name, v.initializer) for v in constants.variables] == [
            ("MAX_VALUE", "100"),
            ("MIN_VALUE", "-100"),
        ]

    def test_field_doc_and_initializer(self, parser):
        decl = parser.parse_content(CALCULATOR_SOURCE, "Calculator.java").declarations[0]
        total = members_by_name(decl)["total"]

        assert total.documentation == "Running total of the calculator."
        assert total.variables[0].initializer == "0"

    def test_constructors_are_not_extracted(self, parser):
        source = "class A {\n    A() {\n        init();\n    }\n    void init() {\n    }\n}\n"
        decl = parser.parse_content(source, "A.java").declarations[0]

        assert [m.name for m in decl.members] == ["init"]

    def test_varargs_and_array_parameters(self, parser):
        source = "class A {\n    void log(String[] lines, Object... args) {\n    }\n}\n"
        method = parser.parse_content(source, "A.java").declarations[0].members[0]

        assert method.parameters == [("lines", "String[]"), ("args", "Object...")]

    def test_anonymous_class_calls_belong_to_enclosing_method(self, parser):
        source = """class A {
    void start() {
        Runnable r = new Runnable() {
            public void run() {
                work();
            }
        };
        r.run();
    }
}
"""
        decl = parser.parse_content(source, "A.java").declarations[0]

        assert [m.name for m in decl.members] == ["start"]
        assert decl.members[0].calls == ["work", "run"]

    def test_local_classes_are_not_walked(self, parser):
        source = """class A {
    void start() {
        class Helper {
            void help() {
                hidden();
            }
        }
        visible();
    }
}
"""
        method = parser.parse_content(source, "A.java").declarations[0].members[0]
        assert method.calls == ["visible"]


# =============================================================================
# Errors
# =============================================================================


class TestJavaErrors:
    def test_syntax_error_raises(self, parser):
        with pytest.raises(ExtractionError) as exc_info:
            parser.parse_content(BROKEN_SOURCE, "Broken.java")

        assert exc_info.value.file_path == Path("Broken.java")
        assert "syntax error" in exc_info.value.reason

    def test_partial_parse_keeps_going(self):
        parser = JavaParser(allow_partial=True)
        unit = parser.parse_content(BROKEN_SOURCE, "Broken.java")

        assert unit.has_errors

    def test_unreadable_file(self, parser, temp_dir):
        with pytest.raises(ExtractionError, match="cannot read file"):
            parser.parse_file(temp_dir / "Missing.java", temp_dir)

    def test_parse_file_uses_relative_path(self, parser, temp_dir):
        file_path = temp_dir / "pkg" / "Operation.java"
        file_path.parent.mkdir()
        file_path.write_text(OPERATION_SOURCE)

        unit = parser.parse_file(file_path, temp_dir)
        assert unit.file_path == "pkg/Operation.java"


class TestCleanDocComment:
    def test_multiline(self):
        text = "/**\n * First line.\n * Second line.\n *\n * @param x value\n */"
        assert clean_doc_comment(text) == "First line.\nSecond line."

    def test_single_line(self):
        assert clean_doc_comment("/** Short. */") == "Short."
