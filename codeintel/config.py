"""Configuration system for codeintel using Pydantic Settings.

One ``AppConfig`` is created at startup (CLI command or API app factory) and
passed to every component that needs it. There is no process-wide instance.
"""

from pathlib import Path
from typing import Literal

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ParserConfig(BaseSettings):
    """Source discovery and parsing frontend configuration."""

    model_config = SettingsConfigDict(env_prefix="PARSER_")

    thread_count: int = Field(
        default=4,
        ge=1,
        description="Parser threads used by the extractor for one project",
    )
    include_patterns: list[str] = Field(default=["**/*.java"])
    exclude_patterns: list[str] = Field(
        default=[
            "**/.git/**",
            "**/build/**",
            "**/target/**",
            "**/node_modules/**",
        ],
    )
    max_file_size_mb: float = Field(
        default=5.0,
        description="Skip files larger than this",
    )
    allow_partial: bool = Field(
        default=False,
        description="Extract what we can from files with syntax errors instead of skipping them",
    )


class IndexConfig(BaseSettings):
    """Multi-level index configuration."""

    model_config = SettingsConfigDict(env_prefix="INDEX_")

    buffer_size_mb: int = Field(
        default=256,
        ge=16,
        description="Heap size of the index writer",
    )
    writer_threads: int = Field(
        default=1,
        ge=1,
        description="Indexing threads of the index writer",
    )
    snippet_lines: int = Field(
        default=3,
        ge=1,
        description="Number of method body lines per snippet document",
    )
    default_max_results: int = Field(default=10, ge=1)
    max_results_limit: int = Field(
        default=100,
        ge=1,
        description="Upper bound applied to any requested result count",
    )


class SemanticConfig(BaseSettings):
    """Thresholds of the semantic analyzers."""

    model_config = SettingsConfigDict(env_prefix="SEMANTIC_")

    duplicate_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    similarity_store_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Minimum similarity for a method pair to be persisted",
    )
    max_method_lines: int = Field(default=30, ge=1)
    max_parameters: int = Field(default=5, ge=0)
    max_class_methods: int = Field(default=20, ge=1)
    related_limit: int = Field(
        default=100,
        ge=1,
        description="Maximum number of callers/callees returned for a method",
    )


class CacheConfig(BaseSettings):
    """Query result cache configuration."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    enabled: bool = Field(default=True)
    ttl_seconds: float = Field(default=3600.0, gt=0)
    max_entries: int = Field(default=10000, ge=1)


class ServiceConfig(BaseSettings):
    """Project service and HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="SERVICE_")

    worker_count: int = Field(
        default=4,
        ge=1,
        description="Number of projects analyzed concurrently",
    )
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8080)
    poll_interval: float = Field(
        default=0.2,
        gt=0,
        description="Interval of the caller-side wait-for-ready poll loop",
    )


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CODEINTEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    parser: ParserConfig = Field(default_factory=ParserConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    semantic: SemanticConfig = Field(default_factory=SemanticConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)

    # Paths
    projects_dir: Path = Field(
        default=Path("./.codeintel/projects"),
        description="Uploaded archives and extracted sources, one directory per project",
    )
    index_dir: Path = Field(
        default=Path("./.codeintel/indexes"),
        description="Index directories, one per project",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    log_file: Path | None = Field(default=None)

    @field_validator("projects_dir", "index_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: str | Path) -> Path:
        """Resolve paths to absolute."""
        return Path(v).resolve()

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from YAML file."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file."""
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                self.model_dump(mode="json"),
                f,
                default_flow_style=False,
                allow_unicode=True,
            )


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from file or create default."""
    if path and path.exists():
        return AppConfig.from_yaml(path)
    return AppConfig()
