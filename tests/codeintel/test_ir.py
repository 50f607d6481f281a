"""Tests for the intermediate representation."""

import pytest

from codeintel.extraction.models.entities import CodeEntityBuilder, EntityKind, RelationType
from codeintel.extraction.models.ir import (
    EnumAttributes,
    FieldAttributes,
    MethodAttributes,
    TypeAttributes,
    build_full_text,
    build_ir,
    ir_id,
    ir_path,
)


# =============================================================================
# Ids and paths
# =============================================================================


class TestIdsAndPaths:
    """Ids and paths are pure functions of (kind, parent, name)."""

    def test_type_id_and_path(self):
        assert ir_id(EntityKind.CLASS, "com.example.calc", "Calculator") == "com.example.calc.Calculator"
        assert ir_path(EntityKind.CLASS, "com.example.calc", "Calculator") == "com/example/calc/Calculator"

    def test_type_in_default_package(self):
        assert ir_id(EntityKind.INTERFACE, "", "Operation") == "Operation"
        assert ir_path(EntityKind.INTERFACE, "", "Operation") == "Operation"

    def test_method_id_and_path(self):
        assert ir_id(EntityKind.METHOD, "Calculator", "add") == "Calculator#add"
        assert ir_path(EntityKind.METHOD, "Calculator", "add") == "Calculator/add"

    def test_field_id_and_path(self):
        assert ir_id(EntityKind.FIELD, "Calculator", "total") == "Calculator.total"
        assert ir_path(EntityKind.FIELD, "Calculator", "total") == "Calculator/total"

    def test_overloads_share_an_id(self):
        first = CodeEntityBuilder("add", EntityKind.METHOD, "Calculator").add_parameter("a", "int").build()
        second = CodeEntityBuilder("add", EntityKind.METHOD, "Calculator").add_parameter("a", "double").build()

        assert build_ir(first).id == build_ir(second).id


# =============================================================================
# Full text
# =============================================================================


class TestFullText:
    """Tests for build_full_text."""

    def test_method_text_order(self):
        entity = (
            CodeEntityBuilder("add", EntityKind.METHOD, "Calculator")
            .set_documentation("Adds numbers.")
            .set_return_type("int")
            .add_parameter("a", "int")
            .add_parameter("b", "long")
            .add_call("remember")
            .build()
        )

        assert build_full_text(entity) == "add method Adds numbers. int int a long b remember"

    def test_field_text(self):
        entity = (
            CodeEntityBuilder("total", EntityKind.FIELD, "Calculator")
            .set_field_type("int")
            .set_initializer("0")
            .build()
        )

        assert build_full_text(entity) == "total field int 0"

    def test_enum_text_lists_constants(self):
        entity = (
            CodeEntityBuilder("Color", EntityKind.ENUM, "com.example")
            .add_constant("RED")
            .add_constant("GREEN")
            .build()
        )

        assert build_full_text(entity) == "Color enum RED GREEN"

    def test_empty_parts_are_skipped(self):
        entity = CodeEntityBuilder("Marker", EntityKind.INTERFACE, "").build()
        assert build_full_text(entity) == "Marker interface"


# =============================================================================
# Attributes
# =============================================================================


class TestAttributes:
    """The attribute variant follows the entity kind."""

    def test_class_attributes(self):
        entity = (
            CodeEntityBuilder("Calculator", EntityKind.CLASS, "com.example")
            .set_range(3, 40)
            .set_file_path("com/example/Calculator.java")
            .add_modifier("public")
            .build()
        )
        attrs = build_ir(entity).attributes

        assert isinstance(attrs, TypeAttributes)
        assert attrs.to_dict() == {
            "javadoc": "",
            "modifiers": ["public"],
            "startLine": 3,
            "endLine": 40,
            "filePath": "com/example/Calculator.java",
            "package": "com.example",
            "isInterface": False,
        }

    def test_interface_flag(self):
        entity = CodeEntityBuilder("Operation", EntityKind.INTERFACE, "com.example").build()
        attrs = build_ir(entity).attributes

        assert isinstance(attrs, TypeAttributes)
        assert attrs.is_interface

    def test_method_attributes(self):
        entity = (
            CodeEntityBuilder("add", EntityKind.METHOD, "Calculator")
            .set_return_type("int")
            .add_parameter("a", "int")
            .add_call("remember")
            .build()
        )
        data = build_ir(entity).attributes.to_dict()

        assert isinstance(build_ir(entity).attributes, MethodAttributes)
        assert data["className"] == "Calculator"
        assert data["returnType"] == "int"
        assert data["parameters"] == {"a": "int"}
        assert data["methodCalls"] == ["remember"]

    def test_field_attributes_without_initializer(self):
        entity = CodeEntityBuilder("calculator", EntityKind.FIELD, "User").set_field_type("Calculator").build()
        attrs = build_ir(entity).attributes

        assert isinstance(attrs, FieldAttributes)
        assert "initializer" not in attrs.to_dict()
        assert attrs.to_dict()["fieldType"] == "Calculator"

    def test_enum_attributes(self):
        entity = CodeEntityBuilder("Color", EntityKind.ENUM, "com.example").add_constant("RED").build()
        attrs = build_ir(entity).attributes

        assert isinstance(attrs, EnumAttributes)
        assert attrs.to_dict()["constants"] == ["RED"]


# =============================================================================
# Relationships
# =============================================================================


class TestIRRelationships:
    def test_add_relationship_accepts_strings(self):
        ir = build_ir(CodeEntityBuilder("Calculator", EntityKind.CLASS, "com.example").build())
        ir.add_relationship("Extends", "BaseCalculator")
        ir.add_relationship(RelationType.IMPLEMENTS, "Operation")
        ir.add_relationship(RelationType.IMPLEMENTS, "Operation")

        assert ir.relationships == {"extends": ["BaseCalculator"], "implements": ["Operation"]}
        assert ir.relation_pairs() == [
            (RelationType.EXTENDS, "BaseCalculator"),
            (RelationType.IMPLEMENTS, "Operation"),
        ]

    def test_unknown_relationship(self):
        ir = build_ir(CodeEntityBuilder("A", EntityKind.CLASS, "").build())
        with pytest.raises(ValueError):
            ir.add_relationship("uses", "B")

    def test_to_dict(self):
        ir = build_ir(CodeEntityBuilder("total", EntityKind.FIELD, "Calculator").set_field_type("int").build())
        data = ir.to_dict()

        assert data["id"] == "Calculator.total"
        assert data["kind"] == "field"
        assert data["path"] == "Calculator/total"
        assert data["relationships"] == {}
