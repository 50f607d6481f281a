"""Intermediate representation: the flat, indexable projection of a CodeEntity.

Ids and paths are pure functions of ``(kind, parent_name, name)``:

    class  com.acme.Calculator   ->  id "com.acme.Calculator", path "com/acme/Calculator"
    method Calculator.add        ->  id "Calculator#add",      path "Calculator/add"
    field  Calculator.total      ->  id "Calculator.total",    path "Calculator/total"

Overloaded methods share one id.
"""

from dataclasses import dataclass, field
from typing import Any, Union

from .entities import CodeEntity, EntityKind, RelationType


@dataclass
class BaseAttributes:
    """Attributes every IR carries, whatever its kind."""

    documentation: str = ""
    modifiers: tuple[str, ...] = ()
    start_line: int | None = None
    end_line: int | None = None
    file_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire shape of the attributes (camelCase keys)."""
        data: dict[str, Any] = {
            "javadoc": self.documentation,
            "modifiers": list(self.modifiers),
        }
        if self.start_line is not None:
            data["startLine"] = self.start_line
            data["endLine"] = self.end_line
        if self.file_path:
            data["filePath"] = self.file_path
        return data


@dataclass
class TypeAttributes(BaseAttributes):
    package: str = ""
    is_interface: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["package"] = self.package
        data["isInterface"] = self.is_interface
        return data


@dataclass
class MethodAttributes(BaseAttributes):
    class_name: str = ""
    return_type: str = ""
    parameters: tuple[tuple[str, str], ...] = ()
    method_calls: tuple[str, ...] = ()
    body: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["className"] = self.class_name
        data["returnType"] = self.return_type
        data["parameters"] = dict(self.parameters)
        data["methodCalls"] = list(self.method_calls)
        return data


@dataclass
class FieldAttributes(BaseAttributes):
    class_name: str = ""
    field_type: str = ""
    initializer: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["className"] = self.class_name
        data["fieldType"] = self.field_type
        if self.initializer is not None:
            data["initializer"] = self.initializer
        return data


@dataclass
class EnumAttributes(BaseAttributes):
    package: str = ""
    constants: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["package"] = self.package
        data["constants"] = list(self.constants)
        return data


IRAttributes = Union[TypeAttributes, MethodAttributes, FieldAttributes, EnumAttributes]


@dataclass
class IntermediateRepresentation:
    """Indexable projection of one declaration."""

    id: str
    name: str
    kind: EntityKind
    path: str
    text: str
    attributes: IRAttributes
    _relationships: dict[RelationType, dict[str, None]] = field(
        default_factory=dict, repr=False
    )

    def add_relationship(self, relation: RelationType | str, target: str) -> None:
        relation = RelationType.parse(relation)
        self._relationships.setdefault(relation, {})[target] = None

    @property
    def relationships(self) -> dict[str, list[str]]:
        """Relation kind value -> targets, in insertion order."""
        return {rel.value: list(targets) for rel, targets in self._relationships.items()}

    def relation_pairs(self) -> list[tuple[RelationType, str]]:
        return [
            (rel, target)
            for rel, targets in self._relationships.items()
            for target in targets
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "path": self.path,
            "text": self.text,
            "attributes": self.attributes.to_dict(),
            "relationships": self.relationships,
        }


def ir_id(kind: EntityKind, parent_name: str, name: str) -> str:
    """Deterministic id of a declaration."""
    if kind.is_type:
        return f"{parent_name}.{name}" if parent_name else name
    if kind == EntityKind.METHOD:
        return f"{parent_name}#{name}"
    return f"{parent_name}.{name}"


def ir_path(kind: EntityKind, parent_name: str, name: str) -> str:
    """Slash form of the qualified name."""
    if kind.is_type:
        prefix = parent_name.replace(".", "/")
        return f"{prefix}/{name}" if prefix else name
    return f"{parent_name}/{name}" if parent_name else name


def build_full_text(entity: CodeEntity) -> str:
    """Concatenate the searchable text of an entity.

    Order: name, kind, documentation, then the kind-specific tokens
    (return type, ``type name`` per parameter and called names for methods;
    type and initializer for fields; constants for enums).
    """
    parts: list[str] = [entity.name, entity.kind.value, entity.documentation]

    if entity.kind == EntityKind.METHOD:
        parts.append(entity.return_type or "")
        parts.extend(f"{type_name} {name}" for name, type_name in entity.parameters)
        parts.extend(entity.called_names)
    elif entity.kind == EntityKind.FIELD:
        parts.append(entity.field_type or "")
        parts.append(entity.initializer or "")
    elif entity.kind == EntityKind.ENUM:
        parts.extend(entity.constants)

    return " ".join(part for part in parts if part)


def _base_kwargs(entity: CodeEntity) -> dict[str, Any]:
    return {
        "documentation": entity.documentation,
        "modifiers": tuple(sorted(entity.modifiers)),
        "start_line": entity.source_range.start_line if entity.source_range else None,
        "end_line": entity.source_range.end_line if entity.source_range else None,
        "file_path": entity.file_path,
    }


def build_attributes(entity: CodeEntity) -> IRAttributes:
    """Select the attribute variant for the entity's kind."""
    base = _base_kwargs(entity)
    if entity.kind == EntityKind.METHOD:
        return MethodAttributes(
            **base,
            class_name=entity.parent_name,
            return_type=entity.return_type or "",
            parameters=entity.parameters,
            method_calls=entity.called_names,
            body=entity.body,
        )
    if entity.kind == EntityKind.FIELD:
        return FieldAttributes(
            **base,
            class_name=entity.parent_name,
            field_type=entity.field_type or "",
            initializer=entity.initializer,
        )
    if entity.kind == EntityKind.ENUM:
        return EnumAttributes(**base, package=entity.parent_name, constants=entity.constants)
    return TypeAttributes(
        **base,
        package=entity.parent_name,
        is_interface=entity.kind == EntityKind.INTERFACE,
    )


def build_ir(entity: CodeEntity) -> IntermediateRepresentation:
    """Project an entity onto its IR. Relationships are attached later by the project."""
    return IntermediateRepresentation(
        id=ir_id(entity.kind, entity.parent_name, entity.name),
        name=entity.name,
        kind=entity.kind,
        path=ir_path(entity.kind, entity.parent_name, entity.name),
        text=build_full_text(entity),
        attributes=build_attributes(entity),
    )
