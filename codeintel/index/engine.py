"""Multi-level index over the IRs of one project.

Document levels:
- file:    one per source file, content = concatenated member text
- type:    one per class / interface / enum IR
- method:  one per method IR
- field:   one per field IR
- snippet: fixed-size line chunks of every method body

The writer is single-writer: only ``build_index`` and ``commit`` mutate the
index, and reader refreshes are serialised with commits. Reads are served
from the last refreshed snapshot.
"""

import threading
from collections import Counter
from pathlib import Path
from typing import Iterator

import tantivy

from ..config import IndexConfig
from ..errors import IndexBuildError, QueryParseError
from ..extraction.models.entities import EntityKind, RelationType
from ..extraction.models.ir import (
    EnumAttributes,
    FieldAttributes,
    IntermediateRepresentation,
    MethodAttributes,
    TypeAttributes,
)
from ..extraction.models.project import ProjectStructure
from ..utils.logging import get_logger
from ..utils.metrics import timed_operation
from . import schema as f
from .query import QueryBuilder, kind_filter, parse_text_query
from .results import SearchResult

logger = get_logger("index")


def chunk_lines(text: str, size: int) -> Iterator[tuple[int, str]]:
    """Yield ``(line_offset, chunk)`` for every ``size`` lines of ``text``.

    The trailing partial chunk is kept; chunks with only whitespace are skipped.
    """
    lines = text.splitlines()
    for offset in range(0, len(lines), size):
        chunk = "\n".join(lines[offset:offset + size])
        if chunk.strip():
            yield offset, chunk


class IndexEngine:
    """Builds and queries the multi-level index stored in ``index_dir``."""

    def __init__(self, index_dir: Path, config: IndexConfig | None = None):
        self.index_dir = Path(index_dir)
        self.config = config or IndexConfig()
        self._lock = threading.Lock()
        self._writer: tantivy.IndexWriter | None = None

        self.index_dir.mkdir(parents=True, exist_ok=True)
        self._schema = f.build_schema()
        try:
            self._index: tantivy.Index | None = tantivy.Index(
                self._schema, path=str(self.index_dir), reuse=True
            )
        except ValueError as e:
            raise IndexBuildError(f"Cannot open index at {self.index_dir}: {e}") from e
        self._built = self._index.searcher().num_docs > 0

    @property
    def is_built(self) -> bool:
        return self._built

    @property
    def index(self) -> tantivy.Index:
        if self._index is None:
            raise RuntimeError(f"Index at {self.index_dir} is closed")
        return self._index

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def build_index(self, structure: ProjectStructure) -> dict[str, int]:
        """Clear the index and regenerate every document level.

        Returns:
            Number of documents written per kind

        Raises:
            IndexBuildError: Writing or committing failed
        """
        if not structure.relationships_built:
            raise IndexBuildError("Relationships must be built before indexing")

        counts: Counter[str] = Counter()
        with self._lock, timed_operation("index_build"):
            writer = self._open_writer()
            try:
                writer.delete_all_documents()
                for doc, kind in self._documents(structure):
                    writer.add_document(doc)
                    counts[kind] += 1
                writer.commit()
            except (ValueError, OSError, RuntimeError) as e:
                writer.rollback()
                raise IndexBuildError(f"Failed to write index at {self.index_dir}: {e}") from e
            finally:
                self._release_writer(writer)
            self.index.reload()
            self._built = True

        logger.info(
            f"Indexed {sum(counts.values())} documents "
            + ", ".join(f"{kind}={count}" for kind, count in sorted(counts.items()))
        )
        return dict(counts)

    def _open_writer(self) -> tantivy.IndexWriter:
        try:
            heap_size = self.config.buffer_size_mb * 1024 * 1024
            self._writer = self.index.writer(heap_size, self.config.writer_threads)
        except ValueError as e:
            raise IndexBuildError(f"Cannot open index writer at {self.index_dir}: {e}") from e
        return self._writer

    def _release_writer(self, writer: tantivy.IndexWriter) -> None:
        # Releases the writer lock held on the index directory
        self._writer = None
        writer.wait_merging_threads()

    def commit(self) -> None:
        """Commit pending writes, if a writer is open, and refresh readers."""
        with self._lock:
            if self._writer is not None:
                try:
                    self._writer.commit()
                except ValueError as e:
                    raise IndexBuildError(f"Commit failed at {self.index_dir}: {e}") from e
            self.index.reload()

    def refresh(self) -> None:
        """Reopen readers on the last commit."""
        with self._lock:
            self.index.reload()

    def close(self) -> None:
        with self._lock:
            self._index = None
            self._built = False

    def _documents(self, structure: ProjectStructure) -> Iterator[tuple[tantivy.Document, str]]:
        for file_path in structure.source_files():
            yield self._file_document(structure, file_path), f.FILE_KIND

        irs = structure.irs
        for kinds in (
            (EntityKind.CLASS, EntityKind.INTERFACE, EntityKind.ENUM),
            (EntityKind.METHOD,),
            (EntityKind.FIELD,),
        ):
            for ir in irs:
                if ir.kind in kinds:
                    yield self._entity_document(ir), ir.kind.value

        snippet_id = 0
        for ir in irs:
            if ir.kind != EntityKind.METHOD:
                continue
            for doc in self._snippet_documents(ir, snippet_id):
                snippet_id += 1
                yield doc, f.SNIPPET_KIND

    def _file_document(self, structure: ProjectStructure, file_path: str) -> tantivy.Document:
        irs: dict[str, IntermediateRepresentation] = {}
        package = ""
        for entity in structure.entities_in_file(file_path):
            ir = structure.ir_for(entity)
            irs.setdefault(ir.id, ir)
            if entity.is_type and not package:
                package = entity.parent_name

        doc = tantivy.Document()
        doc.add_text(f.ID, f"file:{file_path}")
        doc.add_text(f.KIND, f.FILE_KIND)
        doc.add_text(f.NAME, Path(file_path).name)
        doc.add_text(f.PATH, file_path)
        doc.add_text(f.FILE_PATH, file_path)
        doc.add_text(f.PACKAGE, package)
        doc.add_text(f.CONTENT, "\n".join(ir.text for ir in irs.values()))
        return doc

    def _entity_document(self, ir: IntermediateRepresentation) -> tantivy.Document:
        attrs = ir.attributes
        doc = tantivy.Document()
        doc.add_text(f.ID, ir.id)
        doc.add_text(f.KIND, ir.kind.value)
        doc.add_text(f.NAME, ir.name)
        doc.add_text(f.PATH, ir.path)
        doc.add_text(f.CONTENT, ir.text)
        doc.add_text(f.JAVADOC, attrs.documentation)
        if attrs.file_path:
            doc.add_text(f.FILE_PATH, attrs.file_path)
        if attrs.start_line is not None:
            doc.add_integer(f.START_LINE, attrs.start_line)
            doc.add_integer(f.END_LINE, attrs.end_line or attrs.start_line)
        for modifier in attrs.modifiers:
            doc.add_text(f.MODIFIERS, modifier)
        for relation, target in ir.relation_pairs():
            doc.add_text(f.RELATIONS, f.relation_term(relation, target))

        if isinstance(attrs, (TypeAttributes, EnumAttributes)):
            doc.add_text(f.PACKAGE, attrs.package)
        if isinstance(attrs, EnumAttributes):
            for constant in attrs.constants:
                doc.add_text(f.CONSTANTS, constant)
        elif isinstance(attrs, MethodAttributes):
            doc.add_text(f.CLASS_NAME, attrs.class_name)
            doc.add_text(f.METHOD, ir.name)
            doc.add_text(f.RETURN_TYPE, attrs.return_type)
            for name, type_name in attrs.parameters:
                doc.add_text(f.PARAMS, f"{name}:{type_name}")
        elif isinstance(attrs, FieldAttributes):
            doc.add_text(f.CLASS_NAME, attrs.class_name)
            doc.add_text(f.FIELD_TYPE, attrs.field_type)
            if attrs.initializer is not None:
                doc.add_text(f.INITIALIZER, attrs.initializer)
        return doc

    def _snippet_documents(
        self, ir: IntermediateRepresentation, first_id: int
    ) -> Iterator[tantivy.Document]:
        attrs = ir.attributes
        if not isinstance(attrs, MethodAttributes):
            return
        text = attrs.body or ir.text
        line_count = len(text.splitlines())
        base_line = None
        if attrs.end_line is not None and attrs.body:
            base_line = attrs.end_line - line_count + 1

        for n, (offset, chunk) in enumerate(chunk_lines(text, self.config.snippet_lines)):
            doc = tantivy.Document()
            doc.add_text(f.ID, f"snippet:{first_id + n}")
            doc.add_text(f.KIND, f.SNIPPET_KIND)
            doc.add_text(f.NAME, ir.name)
            doc.add_text(f.PATH, ir.path)
            doc.add_text(f.METHOD, ir.id)
            doc.add_text(f.CLASS_NAME, attrs.class_name)
            doc.add_text(f.SNIPPET, chunk)
            if attrs.file_path:
                doc.add_text(f.FILE_PATH, attrs.file_path)
            if base_line is not None:
                start = base_line + offset
                doc.add_integer(f.START_LINE, start)
                doc.add_integer(f.END_LINE, start + len(chunk.splitlines()) - 1)
            yield doc

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def _limit(self, max_results: int | None) -> int:
        if max_results is None:
            max_results = self.config.default_max_results
        return max(1, min(max_results, self.config.max_results_limit))

    def _execute(self, query: tantivy.Query, max_results: int | None) -> list[SearchResult]:
        searcher = self.index.searcher()
        hits = searcher.search(query, self._limit(max_results)).hits
        return [SearchResult.from_document(searcher.doc(address), score) for score, address in hits]

    def search(
        self,
        query: str,
        level: f.IndexLevel | str = f.IndexLevel.ALL,
        max_results: int | None = None,
    ) -> list[SearchResult]:
        """Full-text search routed to the fields of ``level``.

        Raises:
            QueryParseError: Malformed query or unknown level
        """
        try:
            level = f.IndexLevel.parse(level)
        except ValueError as e:
            raise QueryParseError(str(level), str(e)) from e
        if not self._built:
            return []

        text_query = parse_text_query(self.index, query, f.LEVEL_FIELDS[level])
        kinds = f.LEVEL_KINDS[level]
        if kinds:
            text_query = tantivy.Query.boolean_query(
                [
                    (tantivy.Occur.Must, text_query),
                    (tantivy.Occur.Must, kind_filter(self._schema, kinds)),
                ]
            )
        return self._execute(text_query, max_results)

    def search_by_relation(
        self,
        relation: RelationType | str,
        target: str,
        max_results: int | None = None,
    ) -> list[SearchResult]:
        """Documents having a ``relation`` edge to ``target``."""
        try:
            term = f.relation_term(relation, target)
        except ValueError as e:
            raise QueryParseError(str(relation), str(e)) from e
        if not self._built:
            return []
        return self._execute(tantivy.Query.term_query(self._schema, f.RELATIONS, term), max_results)

    def semantic_search(self, query: str, max_results: int | None = None) -> list[SearchResult]:
        """Search restricted to documentation comments."""
        if not self._built:
            return []
        return self._execute(parse_text_query(self.index, query, [f.JAVADOC]), max_results)

    def advanced_search(self, builder: QueryBuilder, max_results: int | None = None) -> list[SearchResult]:
        """Execute an externally composed boolean query as-is."""
        if not self._built:
            return []
        return self._execute(builder.build(self.index), max_results)

    def get_document(self, doc_id: str) -> SearchResult | None:
        if not self._built:
            return None
        results = self._execute(tantivy.Query.term_query(self._schema, f.ID, doc_id), 1)
        return results[0] if results else None

    def document_counts(self) -> dict[str, int]:
        """Number of indexed documents per kind."""
        kinds = [f.FILE_KIND] + [kind.value for kind in EntityKind] + [f.SNIPPET_KIND]
        if not self._built:
            return {kind: 0 for kind in kinds}
        searcher = self.index.searcher()
        return {
            kind: searcher.search(
                tantivy.Query.term_query(self._schema, f.KIND, kind), 1, count=True
            ).count
            for kind in kinds
        }
