"""Persisted semantic results, one self-contained index per analyzer.

Layout under ``<indexDir>/<project>/semantic``::

    call_graph/       one document per caller -> callee edge
    data_flow/        one document per method node
    code_similarity/  one document per method pair above the store threshold
    concept/          one document per concept
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import tantivy

from ..errors import IndexBuildError
from ..utils.logging import get_logger
from .call_graph import CallGraph
from .concepts import ConceptExtractor, ConceptOccurrence, ConceptSource
from .data_flow import DataFlowAnalyzer, DataFlowNode
from .similarity import SimilarityPair

logger = get_logger("semantic_store")

WRITER_HEAP_BYTES = 50 * 1024 * 1024


class SemanticStore:
    """Base class: a small tantivy index rewritten in full on every save."""

    name = ""

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.schema = self.build_schema()
        try:
            self._index = tantivy.Index(self.schema, path=str(self.directory), reuse=True)
        except ValueError as e:
            raise IndexBuildError(f"Cannot open {self.name} store at {self.directory}: {e}") from e

    def build_schema(self) -> tantivy.Schema:
        raise NotImplementedError

    def _write(self, documents: Iterable[tantivy.Document]) -> int:
        count = 0
        try:
            writer = self._index.writer(WRITER_HEAP_BYTES, 1)
        except ValueError as e:
            raise IndexBuildError(f"Cannot open {self.name} store writer: {e}") from e
        try:
            writer.delete_all_documents()
            for doc in documents:
                writer.add_document(doc)
                count += 1
            writer.commit()
        except (ValueError, OSError, RuntimeError) as e:
            writer.rollback()
            raise IndexBuildError(f"Failed to write {self.name} store: {e}") from e
        finally:
            writer.wait_merging_threads()
        self._index.reload()
        logger.debug(f"Saved {count} documents to {self.name} store")
        return count

    @property
    def document_count(self) -> int:
        return self._index.searcher().num_docs

    def _find(self, query: tantivy.Query, limit: int | None = None) -> list[tantivy.Document]:
        searcher = self._index.searcher()
        limit = limit or max(searcher.num_docs, 1)
        return [searcher.doc(address) for _, address in searcher.search(query, limit).hits]

    def _term(self, field_name: str, value: str) -> tantivy.Query:
        return tantivy.Query.term_query(self.schema, field_name, value)


def _raw_schema(*fields: str) -> tantivy.SchemaBuilder:
    builder = tantivy.SchemaBuilder()
    for name in fields:
        builder.add_text_field(name, stored=True, tokenizer_name="raw")
    return builder


class CallGraphStore(SemanticStore):
    name = "call_graph"

    def build_schema(self) -> tantivy.Schema:
        return _raw_schema("caller", "callee").build()

    def save(self, call_graph: CallGraph) -> int:
        def documents():
            for caller, callee in call_graph.edges():
                doc = tantivy.Document()
                doc.add_text("caller", caller)
                doc.add_text("callee", callee)
                yield doc

        return self._write(documents())

    def callers(self, method_id: str, limit: int = 100) -> list[str]:
        docs = self._find(self._term("callee", method_id), limit)
        return sorted(doc.get_first("caller") for doc in docs)

    def callees(self, method_id: str, limit: int = 100) -> list[str]:
        docs = self._find(self._term("caller", method_id), limit)
        return sorted(doc.get_first("callee") for doc in docs)


def _pairs(values: Iterable[str]) -> dict[str, str]:
    result: dict[str, str] = {}
    for value in values:
        name, _, type_name = value.partition(":")
        result[name] = type_name
    return result


class DataFlowStore(SemanticStore):
    name = "data_flow"

    def build_schema(self) -> tantivy.Schema:
        return _raw_schema("method_id", "inputs", "outputs", "connections").build()

    def save(self, analyzer: DataFlowAnalyzer) -> int:
        def documents():
            for node in analyzer.all_nodes():
                doc = tantivy.Document()
                doc.add_text("method_id", node.method_id)
                for name, type_name in node.inputs.items():
                    doc.add_text("inputs", f"{name}:{type_name}")
                for name, type_name in node.outputs.items():
                    doc.add_text("outputs", f"{name}:{type_name}")
                for target in sorted(node.connections):
                    doc.add_text("connections", target)
                yield doc

        return self._write(documents())

    def get(self, method_id: str) -> DataFlowNode | None:
        docs = self._find(self._term("method_id", method_id), 1)
        if not docs:
            return None
        doc = docs[0]
        return DataFlowNode(
            method_id=method_id,
            inputs=_pairs(doc.get_all("inputs")),
            outputs=_pairs(doc.get_all("outputs")),
            connections=set(doc.get_all("connections")),
        )


class SimilarityStore(SemanticStore):
    name = "code_similarity"

    def build_schema(self) -> tantivy.Schema:
        builder = _raw_schema("method1", "method2")
        builder.add_float_field("similarity", stored=True, indexed=True, fast=True)
        return builder.build()

    def save(self, pairs: Iterable[SimilarityPair]) -> int:
        def documents():
            for pair in pairs:
                doc = tantivy.Document()
                doc.add_text("method1", pair.method1)
                doc.add_text("method2", pair.method2)
                doc.add_float("similarity", float(pair.similarity))
                yield doc

        return self._write(documents())

    def similar_to(self, method_id: str, min_similarity: float = 0.0) -> list[SimilarityPair]:
        """Stored pairs involving ``method_id``, with ``method1 == method_id``, best first."""
        query = tantivy.Query.boolean_query(
            [
                (tantivy.Occur.Should, self._term("method1", method_id)),
                (tantivy.Occur.Should, self._term("method2", method_id)),
            ]
        )
        result: list[SimilarityPair] = []
        for doc in self._find(query):
            score = doc.get_first("similarity")
            if score < min_similarity:
                continue
            first, second = doc.get_first("method1"), doc.get_first("method2")
            other = second if first == method_id else first
            result.append(SimilarityPair(method_id, other, score))
        result.sort(key=lambda p: (-p.similarity, p.method2))
        return result


@dataclass
class ConceptRecord:
    concept: str
    frequency: int
    occurrences: list[ConceptOccurrence] = field(default_factory=list)
    related: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "concept": self.concept,
            "frequency": self.frequency,
            "entities": [occ.to_dict() for occ in self.occurrences],
            "related": list(self.related),
        }


class ConceptStore(SemanticStore):
    name = "concept"

    def build_schema(self) -> tantivy.Schema:
        builder = _raw_schema("concept", "occurrences", "related")
        builder.add_integer_field("frequency", stored=True, indexed=True, fast=True)
        return builder.build()

    def save(self, extractor: ConceptExtractor) -> int:
        def documents():
            for concept, occurrences in extractor.items():
                doc = tantivy.Document()
                doc.add_text("concept", concept)
                doc.add_integer("frequency", len(occurrences))
                for occ in occurrences:
                    doc.add_text("occurrences", f"{occ.source.value}|{occ.entity_id}")
                for related in extractor.get_related_concepts(concept):
                    doc.add_text("related", related)
                yield doc

        return self._write(documents())

    def get(self, concept: str) -> ConceptRecord | None:
        concept = concept.strip().lower()
        docs = self._find(self._term("concept", concept), 1)
        if not docs:
            return None
        doc = docs[0]
        occurrences = []
        for value in doc.get_all("occurrences"):
            source, _, entity_id = value.partition("|")
            occurrences.append(ConceptOccurrence(entity_id, ConceptSource(source)))
        return ConceptRecord(
            concept=concept,
            frequency=doc.get_first("frequency"),
            occurrences=occurrences,
            related=list(doc.get_all("related")),
        )


class SemanticStores:
    """The four stores of one project."""

    def __init__(self, semantic_dir: Path):
        self.directory = Path(semantic_dir)
        self.call_graph = CallGraphStore(self.directory / CallGraphStore.name)
        self.data_flow = DataFlowStore(self.directory / DataFlowStore.name)
        self.similarity = SimilarityStore(self.directory / SimilarityStore.name)
        self.concepts = ConceptStore(self.directory / ConceptStore.name)
