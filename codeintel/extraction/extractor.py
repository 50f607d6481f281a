"""Entity extraction: discover source files, parse them and build the project structure."""

from concurrent.futures import ThreadPoolExecutor
from fnmatch import fnmatch
from pathlib import Path

from ..config import AppConfig
from ..errors import ExtractionError
from ..utils.logging import LogContext, get_logger
from ..utils.metrics import get_operation_metrics, timed_operation
from ..utils.progress import PipelineMetrics, create_progress
from .models.entities import (
    CodeEntity,
    CodeEntityBuilder,
    EntityKind,
    RelationType,
    base_type_name,
)
from .models.project import ProjectStructure
from .parsers.base import Declaration, SourceUnit, get_parser_for_file

logger = get_logger("extractor")


class EntityExtractor:
    """Turns a source tree into a :class:`ProjectStructure`.

    Responsible for:
    - Discovering source files
    - Parsing them with the registered frontend (one bad file never aborts the pass)
    - Producing one CodeEntity per declaration (one per variable for fields)
    - Finalising the project's relationships
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        metrics: PipelineMetrics | None = None,
        show_progress: bool = False,
    ):
        self.config = config or AppConfig()
        self.metrics = metrics
        self.show_progress = show_progress
        self.failed_files: list[tuple[str, str]] = []

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover_files(self, root: Path) -> list[Path]:
        """Discover all source files under ``root`` matching the configured patterns."""
        files: set[Path] = set()

        for pattern in self.config.parser.include_patterns:
            for file_path in root.glob(pattern):
                if not file_path.is_file():
                    continue
                if self._should_exclude(file_path.relative_to(root)):
                    continue
                if self._is_file_too_large(file_path):
                    logger.debug(f"Skipping large file: {file_path}")
                    continue
                files.add(file_path)

        logger.info(f"Discovered {len(files)} source files in {root}")
        return sorted(files)

    def _should_exclude(self, relative_path: Path) -> bool:
        path_str = "/" + relative_path.as_posix()
        return any(fnmatch(path_str, pattern) for pattern in self.config.parser.exclude_patterns)

    def _is_file_too_large(self, file_path: Path) -> bool:
        try:
            size_mb = file_path.stat().st_size / (1024 * 1024)
            return size_mb > self.config.parser.max_file_size_mb
        except OSError:
            return True

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_files(self, files: list[Path], root: Path) -> list[SourceUnit]:
        """Parse files with the parser thread pool. Units are returned in file order."""
        self.failed_files = []
        phase = self.metrics.start_phase("parsing", len(files)) if self.metrics else None

        workers = min(self.config.parser.thread_count, max(len(files), 1))
        progress = create_progress(disable=not self.show_progress)
        with progress:
            task = progress.add_task("Parsing files", total=len(files))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="parser") as pool:
                results = []
                for result in pool.map(lambda path: self._parse_single_file(path, root), files):
                    results.append(result)
                    progress.advance(task)

        units = [unit for unit in results if unit is not None]
        if phase and self.metrics:
            phase.processed_items = len(units)
            phase.failed_items = len(files) - len(units)
            self.metrics.end_phase("parsing")
            self.metrics.total_files = len(units)
        return units

    def _parse_single_file(self, file_path: Path, root: Path) -> SourceUnit | None:
        parser = get_parser_for_file(file_path, allow_partial=self.config.parser.allow_partial)
        if parser is None:
            logger.debug(f"No parser for file: {file_path}")
            return None
        try:
            return parser.parse_file(file_path, root)
        except ExtractionError as e:
            logger.warning(f"Skipping {e.file_path}: {e.reason}")
            self.failed_files.append((e.file_path.as_posix(), e.reason))
            get_operation_metrics().record_error("extraction")
            return None

    # ------------------------------------------------------------------
    # Entity construction
    # ------------------------------------------------------------------

    def extract_unit(self, unit: SourceUnit, structure: ProjectStructure) -> int:
        """Register the entities of one source unit.

        Returns:
            Number of entities registered
        """
        count = 0
        for decl in unit.declarations:
            count += self._register_type(decl, unit, structure)
        return count

    def _register_type(self, decl: Declaration, unit: SourceUnit, structure: ProjectStructure) -> int:
        builder = self._start(decl, unit.package, unit)
        for target in decl.extends:
            builder.add_relationship(RelationType.EXTENDS, base_type_name(target))
        for target in decl.implements:
            builder.add_relationship(RelationType.IMPLEMENTS, base_type_name(target))
        for constant in decl.constants:
            builder.add_constant(constant)
        structure.add_entity(builder.build())
        count = 1

        for member in decl.members:
            for entity in self._member_entities(member, decl.name, unit):
                structure.add_entity(entity)
                count += 1

        # Nested types are qualified by the package, like top-level ones
        for nested in decl.nested:
            count += self._register_type(nested, unit, structure)
        return count

    def _member_entities(self, decl: Declaration, owner: str, unit: SourceUnit) -> list[CodeEntity]:
        if decl.kind == EntityKind.METHOD:
            builder = self._start(decl, owner, unit)
            builder.set_return_type(decl.return_type)
            builder.set_body(decl.body)
            for name, type_name in decl.parameters:
                builder.add_parameter(name, type_name)
            for call in decl.calls:
                builder.add_call(call)
            return [builder.build()]

        entities: list[CodeEntity] = []
        for variable in decl.variables:
            builder = self._start(decl, owner, unit, name=variable.name)
            builder.set_field_type(decl.field_type)
            builder.set_initializer(variable.initializer)
            entities.append(builder.build())
        return entities

    def _start(
        self,
        decl: Declaration,
        parent_name: str,
        unit: SourceUnit,
        name: str | None = None,
    ) -> CodeEntityBuilder:
        builder = CodeEntityBuilder(name or decl.name, decl.kind, parent_name)
        builder.set_range(decl.start_line, decl.end_line)
        builder.set_documentation(decl.documentation)
        builder.set_file_path(unit.file_path)
        for modifier in decl.modifiers:
            builder.add_modifier(modifier)
        return builder

    # ------------------------------------------------------------------
    # Whole project
    # ------------------------------------------------------------------

    def extract_project(self, root: Path, name: str = "") -> ProjectStructure:
        """Extract every source file under ``root`` and build relationships."""
        structure = ProjectStructure(name=name or root.name)

        with LogContext(f"Extracting entities from {root}", logger), timed_operation("extraction"):
            files = self.discover_files(root)
            units = self.parse_files(files, root)
            for unit in units:
                self.extract_unit(unit, structure)
            edge_count = structure.build_relationships()

        stats = structure.stats
        if self.metrics:
            self.metrics.entities_by_kind = dict(stats["by_kind"])
        get_operation_metrics().increment("entities_extracted", stats["entities"])
        logger.info(
            f"Extracted {stats['entities']} entities from {len(units)} files "
            f"({len(self.failed_files)} skipped, {edge_count} reference edges)"
        )
        return structure
