"""Exception hierarchy shared by the pipeline, the service layer and the API."""

from pathlib import Path


class CodeIntelError(Exception):
    """Base class for all codeintel errors."""


class ExtractionError(CodeIntelError):
    """A source file could not be parsed. The file is skipped, the pass continues."""

    def __init__(self, file_path: Path | str, reason: str):
        self.file_path = Path(file_path)
        self.reason = reason
        super().__init__(f"{file_path}: {reason}")


class IndexBuildError(CodeIntelError):
    """Writing or committing index documents failed. Fatal to the analysis pass."""


class QueryParseError(CodeIntelError):
    """A query string could not be parsed."""

    def __init__(self, query: str, reason: str):
        self.query = query
        self.reason = reason
        super().__init__(f"Invalid query {query!r}: {reason}")


class NotFoundError(CodeIntelError):
    """Unknown project, method or entity id."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")
