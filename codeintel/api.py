"""
REST API for codeintel.

Upload a zipped Java project, poll its status, then query the multi-level
index and the semantic results.

Run: uvicorn codeintel.api:app --host 127.0.0.1 --port 8080
"""

from contextlib import asynccontextmanager, contextmanager
from typing import Annotated

from fastapi import FastAPI, File, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import __version__
from .config import AppConfig
from .errors import NotFoundError, QueryParseError
from .service.projects import ProjectRegistry, ProjectStatus
from .utils.logging import get_logger, setup_logging

logger = get_logger("api")

API_PREFIX = "/api/v1/projects"


# ── Error helpers ──────────────────────────────────────

class APIError(Exception):
    """Structured API exception with HTTP status code."""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(message)


def _error_payload(code: str, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


@contextmanager
def _api_errors(operation: str):
    """Translate domain errors raised by ``operation`` into API errors."""
    try:
        yield
    except APIError:
        raise
    except NotFoundError as err:
        raise APIError(404, "NOT_FOUND", str(err)) from err
    except (QueryParseError, ValueError) as err:
        raise APIError(400, "BAD_REQUEST", str(err)) from err
    except Exception as err:
        logger.exception(f"Error in {operation}")
        raise APIError(500, "INTERNAL", "Internal server error") from err


# ── App ───────────────────────────────────────────────

def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the application around one project registry."""
    config = config or AppConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config.log_level, config.log_file)
        config.projects_dir.mkdir(parents=True, exist_ok=True)
        config.index_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Serving projects from {config.projects_dir}, indexes in {config.index_dir}")
        yield
        app.state.registry.shutdown(wait=False)

    app = FastAPI(title="codeintel API", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.registry = ProjectRegistry(config)

    @app.exception_handler(APIError)
    async def api_error_handler(_: Request, exc: APIError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_payload(exc.code, exc.message),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(_: Request, exc: RequestValidationError):
        errors = exc.errors()
        first_error = errors[0].get("msg") if errors else "Invalid request payload"
        return JSONResponse(
            status_code=400,
            content=_error_payload("BAD_REQUEST", first_error),
        )

    def registry() -> ProjectRegistry:
        return app.state.registry

    # ── Routes ────────────────────────────────────────

    @app.get("/health")
    def health():
        return {"status": "ok", "version": __version__}

    @app.post(API_PREFIX)
    def upload_project(file: Annotated[UploadFile, File()]):
        """Store the archive and start the analysis in the background."""
        with _api_errors("upload"):
            data = file.file.read()
            if not data:
                raise APIError(400, "BAD_REQUEST", "Uploaded file is empty")
            response = registry().submit_archive(data, file.filename or "project.zip")
        return response.to_dict()

    @app.get(API_PREFIX + "/{project_id}")
    def project_status(project_id: str):
        response = registry().status(project_id)
        if response.status == ProjectStatus.NOT_FOUND:
            raise APIError(404, "NOT_FOUND", f"project not found: {project_id}")
        return response.to_dict()

    @app.delete(API_PREFIX + "/{project_id}")
    def delete_project(project_id: str):
        with _api_errors("delete"):
            response = registry().delete(project_id)
        return response.to_dict()

    @app.get(API_PREFIX + "/{project_id}/search")
    def search(
        project_id: str,
        query: str,
        level: str = "all",
        max_results: Annotated[int | None, Query(alias="maxResults", ge=1)] = None,
    ):
        with _api_errors("search"):
            return registry().search(project_id, query, level, max_results)

    @app.get(API_PREFIX + "/{project_id}/search/relation")
    def search_by_relation(
        project_id: str,
        relation_type: Annotated[str, Query(alias="relationType")],
        target: str,
        max_results: Annotated[int | None, Query(alias="maxResults", ge=1)] = None,
    ):
        with _api_errors("relation search"):
            return registry().search_by_relation(project_id, relation_type, target, max_results)

    @app.get(API_PREFIX + "/{project_id}/search/semantic")
    def semantic_search(
        project_id: str,
        query: str,
        max_results: Annotated[int | None, Query(alias="maxResults", ge=1)] = None,
    ):
        with _api_errors("semantic search"):
            return registry().semantic_search(project_id, query, max_results)

    @app.get(API_PREFIX + "/{project_id}/semantic/calls")
    def related_methods(
        project_id: str,
        method_id: Annotated[str, Query(alias="methodId")],
        direction: str = "callees",
    ):
        with _api_errors("call lookup"):
            return registry().find_related_methods(project_id, method_id, direction)

    @app.get(API_PREFIX + "/{project_id}/semantic/dataflow")
    def data_flow(project_id: str, method_id: Annotated[str, Query(alias="methodId")]):
        with _api_errors("data flow lookup"):
            node = registry().find_data_flow_node(project_id, method_id)
            if node is None:
                raise APIError(404, "NOT_FOUND", f"data flow node not found: {method_id}")
        return node

    @app.get(API_PREFIX + "/{project_id}/semantic/similar")
    def similar_methods(
        project_id: str,
        method_id: Annotated[str, Query(alias="methodId")],
        min_similarity: Annotated[float | None, Query(alias="minSimilarity", ge=0.0, le=1.0)] = None,
    ):
        with _api_errors("similarity lookup"):
            return registry().find_similar_methods(project_id, method_id, min_similarity)

    @app.get(API_PREFIX + "/{project_id}/semantic/concepts")
    def concept_entities(project_id: str, concept: str):
        with _api_errors("concept lookup"):
            return registry().find_entities_by_concept(project_id, concept)

    @app.get(API_PREFIX + "/{project_id}/semantic/quality")
    def quality_issues(
        project_id: str,
        entity_id: Annotated[str | None, Query(alias="entityId")] = None,
    ):
        with _api_errors("quality lookup"):
            return registry().get_quality_issues(project_id, entity_id)

    return app


app = create_app()
