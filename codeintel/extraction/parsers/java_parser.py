"""Java frontend using tree-sitter-java."""

import tree_sitter_java
from tree_sitter import Language, Node

from ..models.entities import EntityKind
from .base import (
    BaseParser,
    Declaration,
    SourceUnit,
    VariableDeclarator,
    register_parser,
)

TYPE_DECLARATIONS = {
    "class_declaration": EntityKind.CLASS,
    "record_declaration": EntityKind.CLASS,
    "interface_declaration": EntityKind.INTERFACE,
    "enum_declaration": EntityKind.ENUM,
}

FIELD_DECLARATIONS = ("field_declaration", "constant_declaration")

ANNOTATION_NODES = ("marker_annotation", "annotation")

# Type declarations inside a method body are not walked for the method's calls
LOCAL_TYPE_NODES = ("class_declaration", "interface_declaration", "enum_declaration", "record_declaration")


@register_parser("java")
class JavaParser(BaseParser):
    """Parser for Java source code.

    Extracts the package, type declarations (nested types included), methods,
    fields and enum constants. Constructors are not extracted.
    """

    @property
    def language(self) -> str:
        return "java"

    @property
    def file_extensions(self) -> list[str]:
        return [".java"]

    def _init_language(self) -> Language:
        return Language(tree_sitter_java.language())

    def _extract_declarations(self, root_node: Node, source: bytes, unit: SourceUnit) -> None:
        package_node = self._find_first_child(root_node, "package_declaration")
        if package_node:
            unit.package = self._package_name(package_node, source)

        for child in root_node.children:
            if child.type in TYPE_DECLARATIONS:
                unit.declarations.append(self._parse_type(child, source))

    def _package_name(self, node: Node, source: bytes) -> str:
        for child in node.named_children:
            if child.type in ("scoped_identifier", "identifier"):
                return self._get_node_text(child, source)
        return ""

    # ------------------------------------------------------------------
    # Types
    # ------------------------------------------------------------------

    def _parse_type(self, node: Node, source: bytes) -> Declaration:
        kind = TYPE_DECLARATIONS[node.type]
        decl = Declaration(
            kind=kind,
            name=self._get_node_text(node.child_by_field_name("name"), source),
            start_line=self._start_line(node),
            end_line=self._end_line(node),
            modifiers=self._modifiers(node, source),
            documentation=self._get_doc_comment(node, source),
        )

        superclass = node.child_by_field_name("superclass")
        if superclass is not None:
            decl.extends.extend(self._type_names(superclass, source))

        interfaces = node.child_by_field_name("interfaces")
        if interfaces is not None:
            decl.implements.extend(self._type_names(interfaces, source))

        extends_interfaces = self._find_first_child(node, "extends_interfaces")
        if extends_interfaces is not None:
            decl.extends.extend(self._type_names(extends_interfaces, source))

        body = node.child_by_field_name("body")
        if body is not None:
            if body.type == "enum_body":
                self._parse_enum_body(body, source, decl)
            else:
                self._parse_members(body, source, decl)
        return decl

    def _type_names(self, node: Node, source: bytes) -> list[str]:
        """Names listed in a superclass / super_interfaces / extends_interfaces clause."""
        type_list = self._find_first_child(node, "type_list")
        candidates = type_list.named_children if type_list is not None else node.named_children
        return [self._get_node_text(c, source) for c in candidates if c.type not in ANNOTATION_NODES]

    def _parse_enum_body(self, body: Node, source: bytes, decl: Declaration) -> None:
        for child in body.named_children:
            if child.type == "enum_constant":
                decl.constants.append(
                    self._get_node_text(child.child_by_field_name("name"), source)
                )
            elif child.type == "enum_body_declarations":
                self._parse_members(child, source, decl)

    def _parse_members(self, body: Node, source: bytes, decl: Declaration) -> None:
        for child in body.named_children:
            if child.type == "method_declaration":
                decl.members.append(self._parse_method(child, source))
            elif child.type in FIELD_DECLARATIONS:
                decl.members.append(self._parse_field(child, source))
            elif child.type in TYPE_DECLARATIONS:
                decl.nested.append(self._parse_type(child, source))

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def _parse_method(self, node: Node, source: bytes) -> Declaration:
        decl = Declaration(
            kind=EntityKind.METHOD,
            name=self._get_node_text(node.child_by_field_name("name"), source),
            start_line=self._start_line(node),
            end_line=self._end_line(node),
            modifiers=self._modifiers(node, source),
            documentation=self._get_doc_comment(node, source),
            return_type=self._get_node_text(node.child_by_field_name("type"), source) or None,
        )

        params = node.child_by_field_name("parameters")
        if params is not None:
            decl.parameters.extend(self._parameters(params, source))

        body = node.child_by_field_name("body")
        if body is not None:
            decl.body = self._get_node_text(body, source)
            for call in self._find_nodes_recursive(body, ["method_invocation"], stop_at=LOCAL_TYPE_NODES):
                name = self._get_node_text(call.child_by_field_name("name"), source)
                if name:
                    decl.calls.append(name)
        return decl

    def _parameters(self, node: Node, source: bytes) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        for child in node.named_children:
            if child.type == "formal_parameter":
                type_text = self._get_node_text(child.child_by_field_name("type"), source)
                dims = child.child_by_field_name("dimensions")
                if dims is not None:
                    type_text += self._get_node_text(dims, source)
                name = self._get_node_text(child.child_by_field_name("name"), source)
                params.append((name, type_text))
            elif child.type == "spread_parameter":
                type_node = next(
                    (c for c in child.named_children if c.type not in ("modifiers", "variable_declarator")),
                    None,
                )
                declarator = self._find_first_child(child, "variable_declarator")
                name_node = declarator.child_by_field_name("name") if declarator is not None else None
                params.append(
                    (self._get_node_text(name_node, source), f"{self._get_node_text(type_node, source)}...")
                )
        return params

    def _parse_field(self, node: Node, source: bytes) -> Declaration:
        decl = Declaration(
            kind=EntityKind.FIELD,
            name="",
            start_line=self._start_line(node),
            end_line=self._end_line(node),
            modifiers=self._modifiers(node, source),
            documentation=self._get_doc_comment(node, source),
            field_type=self._get_node_text(node.child_by_field_name("type"), source),
        )
        for declarator in node.children_by_field_name("declarator"):
            value = declarator.child_by_field_name("value")
            decl.variables.append(
                VariableDeclarator(
                    name=self._get_node_text(declarator.child_by_field_name("name"), source),
                    initializer=self._get_node_text(value, source) if value is not None else None,
                    start_line=self._start_line(declarator),
                    end_line=self._end_line(declarator),
                )
            )
        if decl.variables:
            decl.name = decl.variables[0].name
        return decl

    def _modifiers(self, node: Node, source: bytes) -> list[str]:
        modifiers = self._find_first_child(node, "modifiers")
        if modifiers is None:
            return []
        return [
            self._get_node_text(child, source)
            for child in modifiers.children
            if child.type not in ANNOTATION_NODES and "comment" not in child.type
        ]
