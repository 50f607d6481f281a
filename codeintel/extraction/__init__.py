"""Entity extraction and the entity / IR / project models.

Provides:
- EntityExtractor: source discovery, parsing and entity construction
- ProjectStructure: aggregate store of one project's entities and IRs
- CodeEntity / IntermediateRepresentation models
"""

from .extractor import EntityExtractor
from .models import (
    CodeEntity,
    CodeEntityBuilder,
    EntityKind,
    IntermediateRepresentation,
    ProjectStructure,
    RelationType,
    SourceRange,
)

__all__ = [
    "EntityExtractor",
    "CodeEntity",
    "CodeEntityBuilder",
    "EntityKind",
    "IntermediateRepresentation",
    "ProjectStructure",
    "RelationType",
    "SourceRange",
]
