"""Tests for project sessions and the analysis worker pool."""

import threading
from pathlib import Path
from typing import Generator

import pytest

from codeintel.config import AppConfig
from codeintel.errors import NotFoundError, QueryParseError
from codeintel.service import projects
from codeintel.service.archive import ArchiveError
from codeintel.service.projects import (
    AnalysisSystem,
    ProjectRegistry,
    ProjectResponse,
    ProjectStatus,
)
from codeintel.utils.progress import PipelineMetrics

WAIT_TIMEOUT = 60.0


@pytest.fixture
def registry(app_config: AppConfig) -> Generator[ProjectRegistry, None, None]:
    registry = ProjectRegistry(app_config)
    yield registry
    registry.shutdown(wait=True)


@pytest.fixture
def ready_project(registry: ProjectRegistry, java_project: Path) -> str:
    response = registry.submit_directory(java_project, project_id="sample")
    assert registry.wait_until_ready(response.project_id, WAIT_TIMEOUT).status == ProjectStatus.READY
    return response.project_id


# =============================================================================
# Analysis system
# =============================================================================


class TestAnalysisSystem:
    def test_run(self, java_project: Path, app_config: AppConfig, temp_dir: Path):
        metrics = PipelineMetrics()
        system = AnalysisSystem("sample", java_project, temp_dir / "idx", app_config, metrics=metrics)
        stats = system.run()

        assert stats["entities"]["entities"] == 23
        assert stats["documents"]["method"] == 11
        assert stats["semantic"]["call_graph"]["edges"] == 5
        assert stats["skipped_files"] == ["com/example/Broken.java"]
        assert (temp_dir / "idx" / "main").is_dir()
        assert (temp_dir / "idx" / "semantic" / "call_graph").is_dir()
        assert set(metrics.phases) == {"parsing", "indexing", "semantic"}
        system.close()


# =============================================================================
# Submission and status
# =============================================================================


class TestSubmission:
    """Tests for submitting projects and tracking their status."""

    def test_directory_becomes_ready(self, registry: ProjectRegistry, ready_project: str):
        response = registry.status(ready_project)

        assert response.status == ProjectStatus.READY
        assert response.message == "Analysis complete: 23 entities, 1 files skipped"

    def test_archive_becomes_ready(self, registry: ProjectRegistry, sample_zip: bytes, app_config: AppConfig):
        response = registry.submit_archive(sample_zip, "sample.zip")

        assert response.status == ProjectStatus.PROCESSING
        assert len(response.project_id) == 32
        assert registry.wait_until_ready(response.project_id, WAIT_TIMEOUT).status == ProjectStatus.READY
        assert (app_config.projects_dir / response.project_id / "project.zip").is_file()
        assert (app_config.projects_dir / response.project_id / "src" / "com/example/calc/Calculator.java").is_file()

    def test_bad_archive_becomes_error(self, registry: ProjectRegistry):
        response = registry.submit_archive(b"not a zip", "broken.zip")
        final = registry.wait_until_ready(response.project_id, WAIT_TIMEOUT)

        assert final.status == ProjectStatus.ERROR
        assert final.message.startswith("Analysis failed: Not a zip archive")

    def test_missing_directory_analyzes_nothing(self, registry: ProjectRegistry, temp_dir: Path):
        response = registry.submit_directory(temp_dir / "missing")
        final = registry.wait_until_ready(response.project_id, WAIT_TIMEOUT)

        assert final.status == ProjectStatus.READY
        assert final.message.startswith("Analysis complete: 0 entities")

    def test_duplicate_id(self, registry: ProjectRegistry, ready_project: str, java_project: Path):
        with pytest.raises(ValueError, match="already exists"):
            registry.submit_directory(java_project, project_id=ready_project)

    def test_unknown_status(self, registry: ProjectRegistry):
        response = registry.status("nope")

        assert response.status == ProjectStatus.NOT_FOUND
        assert response.to_dict() == {"projectId": "nope", "status": "NOT_FOUND", "message": "Project not found"}

    def test_list_projects(self, registry: ProjectRegistry, ready_project: str):
        assert [r.project_id for r in registry.list_projects()] == [ready_project]

    def test_response_to_dict(self):
        response = ProjectResponse("abc", ProjectStatus.READY, "done")
        assert response.to_dict() == {"projectId": "abc", "status": "READY", "message": "done"}


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    """Queries delegate to the ready project's index and semantic stores."""

    def test_search(self, registry: ProjectRegistry, ready_project: str):
        results = registry.search(ready_project, "multiply", level="method")
        assert results[0]["id"] == "Calculator#multiply"

    def test_search_is_cached(self, registry: ProjectRegistry, ready_project: str):
        first = registry.search(ready_project, "multiply", level="method")
        second = registry.search(ready_project, "multiply", level="method")

        assert first is second
        assert registry.cache.get_stats()["hits"] >= 1

    def test_search_bad_level(self, registry: ProjectRegistry, ready_project: str):
        with pytest.raises(QueryParseError):
            registry.search(ready_project, "multiply", level="galaxy")

    def test_relation_search(self, registry: ProjectRegistry, ready_project: str):
        results = registry.search_by_relation(ready_project, "extends", "BaseCalculator")
        assert [r["id"] for r in results] == ["com.example.calc.Calculator"]

    def test_semantic_search(self, registry: ProjectRegistry, ready_project: str):
        results = registry.semantic_search(ready_project, "arithmetic")
        assert {r["id"] for r in results} == {"com.example.calc.Calculator", "com.example.calc.Operation"}

    def test_related_methods(self, registry: ProjectRegistry, ready_project: str):
        assert registry.find_related_methods(ready_project, "Calculator#multiply", "callers") == [
            "CalculatorUser#computeTotal"
        ]

    def test_data_flow(self, registry: ProjectRegistry, ready_project: str):
        node = registry.find_data_flow_node(ready_project, "Calculator#add")

        assert node["connections"] == ["Calculator#remember"]
        assert registry.find_data_flow_node(ready_project, "Nope#none") is None

    def test_similar_methods(self, registry: ProjectRegistry, ready_project: str):
        results = registry.find_similar_methods(ready_project, "SimilarCalculator#sum", 0.8)
        assert "SimilarCalculator#plus" in {r["method2"] for r in results}

    def test_concepts(self, registry: ProjectRegistry, ready_project: str):
        results = registry.find_entities_by_concept(ready_project, "arithmetic")
        assert {r["entityId"] for r in results} == {"com.example.calc.Calculator", "com.example.calc.Operation"}

    def test_quality_issues(self, registry: ProjectRegistry, ready_project: str):
        issues = registry.get_quality_issues(ready_project, "Color.Label")
        assert [issue["type"] for issue in issues] == ["inconsistent_naming"]

    def test_unknown_project(self, registry: ProjectRegistry):
        with pytest.raises(NotFoundError):
            registry.search("nope", "add")
        with pytest.raises(NotFoundError):
            registry.get_quality_issues("nope")

    def test_failed_project_returns_empty(self, registry: ProjectRegistry):
        response = registry.submit_archive(b"not a zip")
        registry.wait_until_ready(response.project_id, WAIT_TIMEOUT)

        assert registry.get_system(response.project_id) is None
        assert registry.search(response.project_id, "add") == []
        assert registry.find_data_flow_node(response.project_id, "A#b") is None


# =============================================================================
# Deletion
# =============================================================================


class TestDelete:
    def test_delete_removes_directories(self, registry: ProjectRegistry, sample_zip: bytes, app_config: AppConfig):
        project_id = registry.submit_archive(sample_zip).project_id
        registry.wait_until_ready(project_id, WAIT_TIMEOUT)

        response = registry.delete(project_id)

        assert response.status == ProjectStatus.NOT_FOUND
        assert not (app_config.projects_dir / project_id).exists()
        assert not (app_config.index_dir / project_id).exists()
        assert registry.status(project_id).status == ProjectStatus.NOT_FOUND

    def test_delete_while_processing_failed_analysis(
        self, registry: ProjectRegistry, app_config: AppConfig, monkeypatch
    ):
        release = threading.Event()

        def stalled_extract(archive_path: Path, target_dir: Path) -> int:
            release.wait(WAIT_TIMEOUT)
            raise ArchiveError("Not a zip archive: project.zip")

        monkeypatch.setattr(projects, "extract_zip", stalled_extract)
        project_id = registry.submit_archive(b"not a zip").project_id

        registry.delete(project_id)
        release.set()
        registry.shutdown(wait=True)

        assert not (app_config.projects_dir / project_id).exists()
        assert not (app_config.index_dir / project_id).exists()

    def test_delete_keeps_directory_sources(self, registry: ProjectRegistry, ready_project: str, java_project: Path):
        registry.delete(ready_project)
        assert (java_project / "com/example/calc/Calculator.java").is_file()

    def test_delete_unknown(self, registry: ProjectRegistry):
        with pytest.raises(NotFoundError):
            registry.delete("nope")

    def test_delete_invalidates_cache(self, registry: ProjectRegistry, ready_project: str):
        registry.search(ready_project, "multiply")
        registry.delete(ready_project)

        assert len(registry.cache) == 0
