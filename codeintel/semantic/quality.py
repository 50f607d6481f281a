"""Heuristic code quality rules evaluated per entity."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from ..config import SemanticConfig
from ..extraction.models.entities import CodeEntity, EntityKind
from ..extraction.models.project import ProjectStructure
from ..utils.logging import get_logger
from ..utils.metrics import timed
from .call_graph import CallGraph
from .similarity import SimilarityPair

logger = get_logger("quality")


class QualityIssueType(str, Enum):
    LONG_METHOD = "long_method"
    LARGE_CLASS = "large_class"
    TOO_MANY_PARAMETERS = "too_many_parameters"
    MISSING_DOC = "missing_doc"
    INCONSISTENT_NAMING = "inconsistent_naming"
    POTENTIAL_NULL_POINTER = "potential_null_pointer"
    COMPLEX_CONDITION = "complex_condition"
    DEAD_CODE = "dead_code"
    DUPLICATE_CODE = "duplicate_code"


class QualitySeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


SEVERITY_PENALTY = {
    QualitySeverity.ERROR: 10,
    QualitySeverity.WARNING: 5,
    QualitySeverity.INFO: 1,
}


@dataclass(frozen=True)
class QualityIssue:
    entity_id: str
    issue_type: QualityIssueType
    severity: QualitySeverity
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityId": self.entity_id,
            "type": self.issue_type.value,
            "severity": self.severity.value,
            "message": self.message,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QualityIssue":
        return cls(
            entity_id=data["entityId"],
            issue_type=QualityIssueType(data["type"]),
            severity=QualitySeverity(data["severity"]),
            message=data["message"],
        )


class QualityAnalyzer:
    """Evaluates the rules entity by entity into one flat issue list per pass."""

    def __init__(self, config: SemanticConfig | None = None):
        self.config = config or SemanticConfig()
        self._issues: list[QualityIssue] = []

    def _add(
        self,
        entity_id: str,
        issue_type: QualityIssueType,
        severity: QualitySeverity,
        message: str,
    ) -> None:
        self._issues.append(QualityIssue(entity_id, issue_type, severity, message))

    def analyze_class(self, entity: CodeEntity, entity_id: str, method_count: int = 0) -> None:
        if not entity.documentation:
            self._add(
                entity_id,
                QualityIssueType.MISSING_DOC,
                QualitySeverity.WARNING,
                f"Class {entity.name} has no documentation",
            )
        if method_count > self.config.max_class_methods:
            self._add(
                entity_id,
                QualityIssueType.LARGE_CLASS,
                QualitySeverity.WARNING,
                f"{entity.name} declares {method_count} methods "
                f"(max {self.config.max_class_methods})",
            )

    def analyze_method(self, entity: CodeEntity, entity_id: str) -> None:
        if entity.line_count > self.config.max_method_lines:
            self._add(
                entity_id,
                QualityIssueType.LONG_METHOD,
                QualitySeverity.WARNING,
                f"Method {entity.name} is {entity.line_count} lines long "
                f"(max {self.config.max_method_lines})",
            )
        if len(entity.parameters) > self.config.max_parameters:
            self._add(
                entity_id,
                QualityIssueType.TOO_MANY_PARAMETERS,
                QualitySeverity.WARNING,
                f"Method {entity.name} has {len(entity.parameters)} parameters "
                f"(max {self.config.max_parameters})",
            )
        if not entity.documentation:
            self._add(
                entity_id,
                QualityIssueType.MISSING_DOC,
                QualitySeverity.INFO,
                f"Method {entity.name} has no documentation",
            )

    def analyze_field(self, entity: CodeEntity, entity_id: str) -> None:
        if not entity.is_static and entity.name[:1].isupper():
            self._add(
                entity_id,
                QualityIssueType.INCONSISTENT_NAMING,
                QualitySeverity.INFO,
                f"Field {entity.name} should start with a lowercase letter",
            )

    def analyze_dead_code(self, structure: ProjectStructure, call_graph: CallGraph) -> None:
        """Private methods nothing in the project calls."""
        for method in structure.methods:
            if "private" not in method.modifiers:
                continue
            method_id = structure.ir_for(method).id
            if not call_graph.get_callers(method_id):
                self._add(
                    method_id,
                    QualityIssueType.DEAD_CODE,
                    QualitySeverity.INFO,
                    f"Private method {method.name} is never called",
                )

    def analyze_duplicates(self, pairs: Iterable[SimilarityPair]) -> None:
        for pair in pairs:
            self._add(
                pair.method1,
                QualityIssueType.DUPLICATE_CODE,
                QualitySeverity.WARNING,
                f"{pair.method1} looks like a duplicate of {pair.method2} "
                f"(similarity {pair.similarity:.2f})",
            )

    @property
    def issues(self) -> list[QualityIssue]:
        return list(self._issues)

    def issues_for(self, entity_id: str) -> list[QualityIssue]:
        return [issue for issue in self._issues if issue.entity_id == entity_id]

    def calculate_quality_score(self, issues: Iterable[QualityIssue] | None = None) -> int:
        """100 minus 10 per error, 5 per warning and 1 per info, clamped to [0, 100]."""
        issues = self._issues if issues is None else issues
        penalty = sum(SEVERITY_PENALTY[issue.severity] for issue in issues)
        return max(0, min(100, 100 - penalty))

    @timed("quality")
    def analyze(
        self,
        structure: ProjectStructure,
        call_graph: CallGraph | None = None,
        duplicates: Iterable[SimilarityPair] = (),
    ) -> None:
        for entity in structure.entities:
            entity_id = structure.ir_for(entity).id
            if entity.kind == EntityKind.CLASS:
                method_count = len(structure.members_of(entity.name, EntityKind.METHOD))
                self.analyze_class(entity, entity_id, method_count)
            elif entity.kind == EntityKind.METHOD:
                self.analyze_method(entity, entity_id)
            elif entity.kind == EntityKind.FIELD:
                self.analyze_field(entity, entity_id)

        if call_graph is not None:
            self.analyze_dead_code(structure, call_graph)
        self.analyze_duplicates(duplicates)
        logger.debug(f"Quality: {len(self._issues)} issues, score {self.calculate_quality_score()}")
