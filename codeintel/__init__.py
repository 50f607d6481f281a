"""codeintel - Java code analysis with a multi-level full-text index and semantic graphs."""

__version__ = "0.1.0"

from .config import AppConfig, load_config
from .extraction import EntityExtractor, ProjectStructure
from .index import IndexEngine, IndexLevel
from .semantic import SemanticAnalyzer

__all__ = [
    "AppConfig",
    "load_config",
    "EntityExtractor",
    "ProjectStructure",
    "IndexEngine",
    "IndexLevel",
    "SemanticAnalyzer",
    "__version__",
]
