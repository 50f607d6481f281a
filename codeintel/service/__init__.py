"""Project lifecycle: uploads, background analysis and cached queries."""

from .archive import ArchiveError, extract_zip
from .cache import ArtifactCache
from .projects import AnalysisSystem, ProjectRegistry, ProjectResponse, ProjectStatus

__all__ = [
    "AnalysisSystem",
    "ArchiveError",
    "ArtifactCache",
    "ProjectRegistry",
    "ProjectResponse",
    "ProjectStatus",
    "extract_zip",
]
