"""Data models for declarations extracted from parsed source code."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class EntityKind(str, Enum):
    """Kinds of extracted declarations."""

    CLASS = "class"
    INTERFACE = "interface"
    METHOD = "method"
    FIELD = "field"
    ENUM = "enum"

    @property
    def is_type(self) -> bool:
        return self in (EntityKind.CLASS, EntityKind.INTERFACE, EntityKind.ENUM)


class RelationType(str, Enum):
    """Kinds of directed edges between declarations."""

    EXTENDS = "extends"
    IMPLEMENTS = "implements"
    CALLS = "calls"

    @classmethod
    def parse(cls, value: "str | RelationType") -> "RelationType":
        """Parse a relation kind, ignoring case (``Extends``, ``EXTENDS``, ``extends``)."""
        if isinstance(value, RelationType):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(r.value for r in cls)
            raise ValueError(f"Unknown relation type {value!r}, expected one of: {valid}") from None


@dataclass(frozen=True)
class SourceRange:
    """Line range of a declaration (1-based, inclusive)."""

    start_line: int
    end_line: int

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def __str__(self) -> str:
        return f"{self.start_line}-{self.end_line}"


PRIMITIVE_TYPES = frozenset(
    {"void", "boolean", "byte", "char", "short", "int", "long", "float", "double", "var"}
)


def base_type_name(type_text: str) -> str:
    """``Base<T>`` -> ``Base``, ``java.util.List<String>`` -> ``java.util.List``."""
    return type_text.split("<", 1)[0].strip()


@dataclass(frozen=True)
class CodeEntity:
    """One extracted declaration.

    Instances are produced by :class:`CodeEntityBuilder` and never change
    afterwards. ``parent_name`` is the package for types and the owning type
    name for members.
    """

    name: str
    kind: EntityKind
    parent_name: str = ""
    source_range: SourceRange | None = None
    documentation: str = ""
    modifiers: frozenset[str] = frozenset()
    relationships: Mapping[RelationType, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({}), hash=False
    )
    file_path: str | None = None

    # Methods
    return_type: str | None = None
    parameters: tuple[tuple[str, str], ...] = ()
    called_names: tuple[str, ...] = ()
    body: str | None = None

    # Fields
    field_type: str | None = None
    initializer: str | None = None

    # Enums
    constants: tuple[str, ...] = ()

    @property
    def is_type(self) -> bool:
        return self.kind.is_type

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def package_name(self) -> str:
        """Package of a type declaration, empty for members."""
        return self.parent_name if self.is_type else ""

    @property
    def parameter_map(self) -> dict[str, str]:
        """Parameters as an insertion-ordered name -> type mapping."""
        return dict(self.parameters)

    @property
    def line_count(self) -> int:
        return self.source_range.line_count if self.source_range else 0

    def related(self, relation: RelationType) -> frozenset[str]:
        return self.relationships.get(relation, frozenset())


class CodeEntityBuilder:
    """Accumulates the state of one declaration and finalises it once.

    Usage:
        builder = CodeEntityBuilder("add", EntityKind.METHOD, "Calculator")
        builder.set_return_type("int")
        builder.add_parameter("a", "int")
        entity = builder.build()
    """

    def __init__(self, name: str, kind: EntityKind, parent_name: str = ""):
        self._name = name
        self._kind = kind
        self._parent_name = parent_name
        self._source_range: SourceRange | None = None
        self._documentation = ""
        self._modifiers: set[str] = set()
        self._relationships: dict[RelationType, dict[str, None]] = {}
        self._file_path: str | None = None
        self._return_type: str | None = None
        self._parameters: dict[str, str] = {}
        self._calls: dict[str, None] = {}
        self._body: str | None = None
        self._field_type: str | None = None
        self._initializer: str | None = None
        self._constants: list[str] = []
        self._built = False

    def _check_open(self) -> None:
        if self._built:
            raise RuntimeError(f"Entity {self._name!r} has already been built")

    def set_range(self, start_line: int, end_line: int) -> "CodeEntityBuilder":
        self._check_open()
        self._source_range = SourceRange(start_line, end_line)
        return self

    def set_documentation(self, text: str | None) -> "CodeEntityBuilder":
        self._check_open()
        self._documentation = text or ""
        return self

    def set_file_path(self, path: str | None) -> "CodeEntityBuilder":
        self._check_open()
        self._file_path = path
        return self

    def add_modifier(self, modifier: str) -> "CodeEntityBuilder":
        self._check_open()
        self._modifiers.add(modifier)
        return self

    def add_relationship(self, relation: RelationType, target: str) -> "CodeEntityBuilder":
        self._check_open()
        self._relationships.setdefault(relation, {})[target] = None
        return self

    def set_return_type(self, return_type: str | None) -> "CodeEntityBuilder":
        self._check_open()
        self._return_type = return_type
        return self

    def add_parameter(self, name: str, type_name: str) -> "CodeEntityBuilder":
        self._check_open()
        self._parameters[name] = type_name
        return self

    def add_call(self, name: str) -> "CodeEntityBuilder":
        """Record a called method name. Repeated calls collapse to one."""
        self._check_open()
        self._calls[name] = None
        return self.add_relationship(RelationType.CALLS, name)

    def set_body(self, body: str | None) -> "CodeEntityBuilder":
        self._check_open()
        self._body = body
        return self

    def set_field_type(self, field_type: str | None) -> "CodeEntityBuilder":
        self._check_open()
        self._field_type = field_type
        return self

    def set_initializer(self, initializer: str | None) -> "CodeEntityBuilder":
        self._check_open()
        self._initializer = initializer
        return self

    def add_constant(self, constant: str) -> "CodeEntityBuilder":
        self._check_open()
        self._constants.append(constant)
        return self

    def build(self) -> CodeEntity:
        """Finalise the entity. The builder cannot be used afterwards."""
        self._check_open()
        self._built = True
        return CodeEntity(
            name=self._name,
            kind=self._kind,
            parent_name=self._parent_name,
            source_range=self._source_range,
            documentation=self._documentation,
            modifiers=frozenset(self._modifiers),
            relationships=MappingProxyType(
                {rel: frozenset(targets) for rel, targets in self._relationships.items()}
            ),
            file_path=self._file_path,
            return_type=self._return_type,
            parameters=tuple(self._parameters.items()),
            called_names=tuple(self._calls),
            body=self._body,
            field_type=self._field_type,
            initializer=self._initializer,
            constants=tuple(self._constants),
        )
