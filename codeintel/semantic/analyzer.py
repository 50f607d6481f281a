"""Runs the semantic analyzers over a project and serves their persisted results."""

from pathlib import Path
from typing import Any

from ..config import SemanticConfig
from ..extraction.models.project import ProjectStructure
from ..utils.logging import LogContext, get_logger
from .call_graph import CallGraph, CallResolver, build_call_graph
from .concepts import ConceptExtractor, ConceptOccurrence
from .data_flow import DataFlowAnalyzer, DataFlowNode
from .quality import QualityAnalyzer, QualityIssue
from .similarity import SimilarityAnalyzer, SimilarityPair
from .store import ConceptRecord, SemanticStores

logger = get_logger("semantic")

DIRECTIONS = ("callers", "callees")


class SemanticAnalyzer:
    """Call graph, data flow, similarity, concepts and quality for one project.

    ``analyze_project`` runs the analyzers sequentially and persists each
    result into its own store under ``<project index dir>/semantic``. Lookups
    are served from the stores and return empty results before the first
    analysis.
    """

    def __init__(self, index_dir: Path, config: SemanticConfig | None = None):
        self.config = config or SemanticConfig()
        self.semantic_dir = Path(index_dir) / "semantic"
        self.stores = SemanticStores(self.semantic_dir)

        self.call_graph: CallGraph | None = None
        self.data_flow: DataFlowAnalyzer | None = None
        self.similarity: SimilarityAnalyzer | None = None
        self.concepts: ConceptExtractor | None = None
        self.quality: QualityAnalyzer | None = None
        self.resolver: CallResolver | None = None

    @property
    def is_analyzed(self) -> bool:
        return self.quality is not None

    def analyze_project(self, structure: ProjectStructure) -> dict[str, Any]:
        """Run every analyzer and persist the results."""
        with LogContext(f"Semantic analysis of {structure.name or 'project'}", logger):
            self.resolver = CallResolver(structure)
            call_graph = build_call_graph(structure, self.resolver)
            self.stores.call_graph.save(call_graph)

            data_flow = DataFlowAnalyzer()
            data_flow.analyze(structure, call_graph)
            self.stores.data_flow.save(data_flow)

            similarity = SimilarityAnalyzer()
            similarity.analyze(structure)
            self.stores.similarity.save(similarity.pairs(self.config.similarity_store_threshold))

            concepts = ConceptExtractor()
            concepts.analyze(structure)
            self.stores.concepts.save(concepts)

            quality = QualityAnalyzer(self.config)
            quality.analyze(
                structure,
                call_graph,
                similarity.find_potential_duplicates(self.config.duplicate_threshold),
            )

        self.call_graph = call_graph
        self.data_flow = data_flow
        self.similarity = similarity
        self.concepts = concepts
        self.quality = quality
        summary = self.summary()
        logger.info(
            f"Semantic analysis done: {summary['call_graph']['edges']} call edges, "
            f"{summary['duplicates']} potential duplicates, quality score {summary['quality_score']}"
        )
        return summary

    def find_related_methods(self, method_id: str, direction: str = "callees") -> list[str]:
        """Callers or callees of a method id.

        Raises:
            ValueError: ``direction`` is neither ``callers`` nor ``callees``
        """
        direction = direction.strip().lower()
        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of {', '.join(DIRECTIONS)}, got {direction!r}")
        store = self.stores.call_graph
        if direction == "callers":
            return store.callers(method_id, self.config.related_limit)
        return store.callees(method_id, self.config.related_limit)

    def find_data_flow_node(self, method_id: str) -> DataFlowNode | None:
        return self.stores.data_flow.get(method_id)

    def find_similar_methods(self, method_id: str, min_similarity: float | None = None) -> list[SimilarityPair]:
        if min_similarity is None:
            min_similarity = self.config.duplicate_threshold
        return self.stores.similarity.similar_to(method_id, min_similarity)

    def find_potential_duplicates(self, threshold: float | None = None) -> list[SimilarityPair]:
        if self.similarity is None:
            return []
        return self.similarity.find_potential_duplicates(
            self.config.duplicate_threshold if threshold is None else threshold
        )

    def get_concept(self, concept: str) -> ConceptRecord | None:
        return self.stores.concepts.get(concept)

    def find_entities_by_concept(self, concept: str) -> list[ConceptOccurrence]:
        record = self.stores.concepts.get(concept)
        return record.occurrences if record else []

    def top_concepts(self, limit: int = 20) -> list[tuple[str, int]]:
        if self.concepts is None:
            return []
        return self.concepts.rank_concepts(limit)

    def get_quality_issues(self, entity_id: str | None = None) -> list[QualityIssue]:
        if self.quality is None:
            return []
        if entity_id is None:
            return self.quality.issues
        return self.quality.issues_for(entity_id)

    def quality_score(self) -> int | None:
        if self.quality is None:
            return None
        return self.quality.calculate_quality_score()

    def summary(self) -> dict[str, Any]:
        if not self.is_analyzed:
            return {"analyzed": False}
        return {
            "analyzed": True,
            "call_graph": {"nodes": len(self.call_graph), "edges": self.call_graph.edge_count},
            "data_flow_nodes": self.data_flow.node_count,
            "similarity_methods": len(self.similarity.method_ids),
            "duplicates": len(self.find_potential_duplicates()),
            "concepts": len(self.concepts.concepts),
            "quality_issues": len(self.quality.issues),
            "quality_score": self.quality.calculate_quality_score(),
        }
