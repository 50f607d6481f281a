"""Per-project analysis sessions and the worker pool that runs them.

Each project is one coarse-grained job: extraction -> relationship build ->
indexing -> semantic analysis, run sequentially on one worker. Different
projects run concurrently on the bounded pool; they share nothing but the
session map (guarded by a lock) and the artifact cache.

On-disk layout::

    <projects_dir>/<id>/project.zip   uploaded archive
    <projects_dir>/<id>/src/**        extracted sources
    <index_dir>/<id>/main/            multi-level index
    <index_dir>/<id>/semantic/*/      semantic stores
"""

import shutil
import threading
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from ..config import AppConfig
from ..errors import NotFoundError, QueryParseError
from ..extraction.extractor import EntityExtractor
from ..extraction.models.project import ProjectStructure
from ..index.engine import IndexEngine
from ..index.schema import IndexLevel
from ..semantic.analyzer import SemanticAnalyzer
from ..utils.logging import get_logger
from ..utils.metrics import get_operation_metrics, timed_operation
from ..utils.progress import PipelineMetrics
from .archive import extract_zip
from .cache import ArtifactCache

logger = get_logger("projects")

ARCHIVE_NAME = "project.zip"
SOURCE_DIR = "src"
MAIN_INDEX_DIR = "main"


class ProjectStatus(str, Enum):
    PROCESSING = "PROCESSING"
    READY = "READY"
    ERROR = "ERROR"
    NOT_FOUND = "NOT_FOUND"


@dataclass
class ProjectResponse:
    project_id: str
    status: ProjectStatus
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectId": self.project_id,
            "status": self.status.value,
            "message": self.message,
        }


class AnalysisSystem:
    """Extraction, index and semantic analysis of one project."""

    def __init__(
        self,
        project_id: str,
        source_dir: Path,
        index_dir: Path,
        config: AppConfig,
        metrics: PipelineMetrics | None = None,
        show_progress: bool = False,
    ):
        self.project_id = project_id
        self.source_dir = source_dir
        self.index_dir = index_dir
        self.config = config
        self.metrics = metrics
        self.show_progress = show_progress
        self.structure: ProjectStructure | None = None
        self.engine: IndexEngine | None = None
        self.semantic: SemanticAnalyzer | None = None
        self.stats: dict[str, Any] = {}

    def run(self) -> dict[str, Any]:
        """Run the whole pipeline. Any exception aborts the pass."""
        with timed_operation("project_analysis"):
            extractor = EntityExtractor(self.config, self.metrics, self.show_progress)
            structure = extractor.extract_project(self.source_dir, name=self.project_id)

            self._start_phase("indexing", len(structure.irs))
            engine = IndexEngine(self.index_dir / MAIN_INDEX_DIR, self.config.index)
            document_counts = engine.build_index(structure)
            self._end_phase("indexing", sum(document_counts.values()))

            self._start_phase("semantic", len(structure.methods))
            semantic = SemanticAnalyzer(self.index_dir, self.config.semantic)
            semantic_summary = semantic.analyze_project(structure)
            self._end_phase("semantic", len(structure.methods))

        self.structure = structure
        self.engine = engine
        self.semantic = semantic
        self.stats = {
            "entities": structure.stats,
            "documents": document_counts,
            "semantic": semantic_summary,
            "skipped_files": [path for path, _ in extractor.failed_files],
        }
        return self.stats

    def _start_phase(self, name: str, total: int) -> None:
        if self.metrics:
            self.metrics.start_phase(name, total)

    def _end_phase(self, name: str, processed: int) -> None:
        if self.metrics:
            self.metrics.phases[name].processed_items = processed
            self.metrics.end_phase(name)

    def close(self) -> None:
        if self.engine is not None:
            self.engine.close()


@dataclass
class ProjectSession:
    project_id: str
    status: ProjectStatus = ProjectStatus.PROCESSING
    message: str = "Analysis in progress"
    system: AnalysisSystem | None = None
    future: Future | None = None
    created_at: datetime = field(default_factory=datetime.now)

    def response(self) -> ProjectResponse:
        return ProjectResponse(self.project_id, self.status, self.message)


class ProjectRegistry:
    """Owns every project session of the service."""

    def __init__(self, config: AppConfig | None = None):
        self.config = config or AppConfig()
        self.cache = ArtifactCache(self.config.cache)
        self._sessions: dict[str, ProjectSession] = {}
        self._lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.service.worker_count,
            thread_name_prefix="project",
        )

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def project_dir(self, project_id: str) -> Path:
        return Path(self.config.projects_dir) / project_id

    def index_dir(self, project_id: str) -> Path:
        return Path(self.config.index_dir) / project_id

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_archive(self, data: bytes, filename: str = ARCHIVE_NAME) -> ProjectResponse:
        """Store an uploaded zip and start its analysis."""
        project_id = uuid.uuid4().hex
        project_dir = self.project_dir(project_id)
        try:
            project_dir.mkdir(parents=True, exist_ok=False)
            archive_path = project_dir / ARCHIVE_NAME
            archive_path.write_bytes(data)
        except OSError as e:
            logger.error(f"Cannot store upload {filename} for project {project_id}: {e}")
            return ProjectResponse(project_id, ProjectStatus.ERROR, f"Cannot store upload: {e}")

        def prepare() -> Path:
            source_dir = project_dir / SOURCE_DIR
            extract_zip(archive_path, source_dir)
            return source_dir

        return self._submit(project_id, prepare, f"Uploaded {filename}")

    def submit_directory(self, source_dir: Path, project_id: str | None = None) -> ProjectResponse:
        """Start the analysis of sources already on disk."""
        project_id = project_id or uuid.uuid4().hex
        return self._submit(project_id, lambda: Path(source_dir), f"Analyzing {source_dir}")

    def _submit(self, project_id: str, prepare: Callable[[], Path], message: str) -> ProjectResponse:
        session = ProjectSession(project_id=project_id, message=f"{message}, analysis in progress")
        with self._lock:
            if project_id in self._sessions:
                raise ValueError(f"Project already exists: {project_id}")
            self._sessions[project_id] = session
        session.future = self._executor.submit(self._run, session, prepare)
        logger.info(f"Project {project_id} submitted")
        return session.response()

    def _run(self, session: ProjectSession, prepare: Callable[[], Path]) -> None:
        project_id = session.project_id
        system: AnalysisSystem | None = None
        try:
            source_dir = prepare()
            system = AnalysisSystem(project_id, source_dir, self.index_dir(project_id), self.config)
            stats = system.run()
        except Exception as e:
            logger.exception(f"Analysis of project {project_id} failed")
            get_operation_metrics().record_error("project_analysis")
            if system is not None:
                system.close()
            with self._lock:
                deleted = self._sessions.get(project_id) is not session
                session.status = ProjectStatus.ERROR
                session.message = f"Analysis failed: {e}"
            if deleted:
                self._remove_directories(project_id)
            return

        with self._lock:
            deleted = self._sessions.get(project_id) is not session
            if not deleted:
                session.system = system
                session.status = ProjectStatus.READY
                session.message = (
                    f"Analysis complete: {stats['entities']['entities']} entities, "
                    f"{len(stats['skipped_files'])} files skipped"
                )
        if deleted:
            # Deleted while processing
            system.close()
            self._remove_directories(project_id)
            return
        self.cache.invalidate_prefix(f"{project_id}:")
        logger.info(f"Project {project_id} ready")

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self, project_id: str) -> ProjectResponse:
        with self._lock:
            session = self._sessions.get(project_id)
            if session is None:
                return ProjectResponse(project_id, ProjectStatus.NOT_FOUND, "Project not found")
            return session.response()

    def list_projects(self) -> list[ProjectResponse]:
        with self._lock:
            return [session.response() for session in self._sessions.values()]

    def wait_until_ready(self, project_id: str, timeout: float) -> ProjectResponse:
        """Poll until the project leaves PROCESSING or ``timeout`` seconds pass."""
        deadline = time.monotonic() + timeout
        response = self.status(project_id)
        while response.status == ProjectStatus.PROCESSING and time.monotonic() < deadline:
            time.sleep(self.config.service.poll_interval)
            response = self.status(project_id)
        return response

    def get_system(self, project_id: str) -> AnalysisSystem | None:
        """The ready analysis system, or None while processing or failed.

        Raises:
            NotFoundError: Unknown project
        """
        with self._lock:
            session = self._sessions.get(project_id)
            if session is None:
                raise NotFoundError("project", project_id)
            if session.status != ProjectStatus.READY:
                return None
            return session.system

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _cached(self, project_id: str, key: str, compute: Callable[[AnalysisSystem], Any], empty: Any) -> Any:
        system = self.get_system(project_id)
        if system is None:
            return empty
        cache_key = f"{project_id}:{key}"
        value = self.cache.get(cache_key)
        if value is None:
            value = compute(system)
            self.cache.put(cache_key, value)
        return value

    def search(
        self,
        project_id: str,
        query: str,
        level: IndexLevel | str = IndexLevel.ALL,
        max_results: int | None = None,
    ) -> list[dict[str, Any]]:
        try:
            level = IndexLevel.parse(level)
        except ValueError as e:
            raise QueryParseError(str(level), str(e)) from e
        return self._cached(
            project_id,
            f"search:{level.value}:{max_results}:{query}",
            lambda s: [r.to_dict() for r in s.engine.search(query, level, max_results)],
            [],
        )

    def search_by_relation(
        self, project_id: str, relation: str, target: str, max_results: int | None = None
    ) -> list[dict[str, Any]]:
        return self._cached(
            project_id,
            f"relation:{relation.lower()}:{max_results}:{target}",
            lambda s: [r.to_dict() for r in s.engine.search_by_relation(relation, target, max_results)],
            [],
        )

    def semantic_search(self, project_id: str, query: str, max_results: int | None = None) -> list[dict[str, Any]]:
        return self._cached(
            project_id,
            f"semantic:{max_results}:{query}",
            lambda s: [r.to_dict() for r in s.engine.semantic_search(query, max_results)],
            [],
        )

    def find_related_methods(self, project_id: str, method_id: str, direction: str) -> list[str]:
        return self._cached(
            project_id,
            f"calls:{direction.lower()}:{method_id}",
            lambda s: s.semantic.find_related_methods(method_id, direction),
            [],
        )

    def find_data_flow_node(self, project_id: str, method_id: str) -> dict[str, Any] | None:
        system = self.get_system(project_id)
        if system is None:
            return None
        node = system.semantic.find_data_flow_node(method_id)
        return node.to_dict() if node else None

    def find_similar_methods(
        self, project_id: str, method_id: str, min_similarity: float | None = None
    ) -> list[dict[str, Any]]:
        return self._cached(
            project_id,
            f"similar:{min_similarity}:{method_id}",
            lambda s: [p.to_dict() for p in s.semantic.find_similar_methods(method_id, min_similarity)],
            [],
        )

    def find_entities_by_concept(self, project_id: str, concept: str) -> list[dict[str, Any]]:
        return self._cached(
            project_id,
            f"concept:{concept.lower()}",
            lambda s: [o.to_dict() for o in s.semantic.find_entities_by_concept(concept)],
            [],
        )

    def get_quality_issues(self, project_id: str, entity_id: str | None = None) -> list[dict[str, Any]]:
        system = self.get_system(project_id)
        if system is None:
            return []
        return [issue.to_dict() for issue in system.semantic.get_quality_issues(entity_id)]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def delete(self, project_id: str) -> ProjectResponse:
        """Evict the project and remove its project and index directories.

        Raises:
            NotFoundError: Unknown project
        """
        with self._lock:
            session = self._sessions.pop(project_id, None)
            processing = session is not None and session.status == ProjectStatus.PROCESSING
        if session is None:
            raise NotFoundError("project", project_id)

        self.cache.invalidate_prefix(f"{project_id}:")
        if session.system is not None:
            session.system.close()
        # A running analysis removes the directories when it finishes
        if not processing:
            self._remove_directories(project_id)
        logger.info(f"Project {project_id} deleted")
        return ProjectResponse(project_id, ProjectStatus.NOT_FOUND, "Project deleted")

    def _remove_directories(self, project_id: str) -> None:
        for directory in (self.project_dir(project_id), self.index_dir(project_id)):
            if directory.exists():
                shutil.rmtree(directory)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            if session.system is not None:
                session.system.close()
