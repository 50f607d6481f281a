"""Entity, IR and project models."""

from .entities import (
    CodeEntity,
    CodeEntityBuilder,
    EntityKind,
    RelationType,
    SourceRange,
)
from .ir import (
    EnumAttributes,
    FieldAttributes,
    IntermediateRepresentation,
    MethodAttributes,
    TypeAttributes,
    build_full_text,
    build_ir,
    ir_id,
    ir_path,
)
from .project import ProjectStructure

__all__ = [
    "CodeEntity",
    "CodeEntityBuilder",
    "EntityKind",
    "RelationType",
    "SourceRange",
    "IntermediateRepresentation",
    "TypeAttributes",
    "MethodAttributes",
    "FieldAttributes",
    "EnumAttributes",
    "build_full_text",
    "build_ir",
    "ir_id",
    "ir_path",
    "ProjectStructure",
]
