"""CLI entry point for codeintel."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import AppConfig, load_config
from .errors import CodeIntelError
from .index.engine import IndexEngine
from .index.results import SearchResult
from .semantic.analyzer import SemanticAnalyzer
from .service.projects import MAIN_INDEX_DIR, AnalysisSystem
from .utils.logging import setup_logging
from .utils.metrics import format_duration, get_operation_metrics
from .utils.progress import PipelineMetrics

app = typer.Typer(
    name="codeintel",
    help="Java code analysis: multi-level full-text index and semantic graphs",
    add_completion=False,
)
console = Console()

IndexDirOption = Annotated[
    Optional[Path],
    typer.Option("--index-dir", "-i", help="Index directory of the project"),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Configuration file path"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-V", help="Enable verbose logging"),
]
MaxResultsOption = Annotated[
    Optional[int],
    typer.Option("--max-results", "-n", min=1, help="Maximum number of results"),
]
ProjectPath = Annotated[
    Path,
    typer.Argument(
        help="Path to the Java project",
        exists=True,
        file_okay=False,
        dir_okay=True,
        resolve_path=True,
    ),
]


def version_callback(value: bool) -> None:
    if value:
        console.print(f"codeintel version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = False,
) -> None:
    """codeintel - Java code search and semantic analysis."""
    pass


def _setup(config_file: Path | None, index_dir: Path | None, verbose: bool) -> AppConfig:
    config = load_config(config_file)
    if index_dir:
        config.index_dir = index_dir.resolve()
    setup_logging("DEBUG" if verbose else config.log_level, config.log_file)
    return config


def _run_analysis(path: Path, config: AppConfig, show_progress: bool = True) -> AnalysisSystem:
    metrics = PipelineMetrics()
    system = AnalysisSystem(path.name, path, config.index_dir, config, metrics, show_progress)
    try:
        system.run()
    except CodeIntelError as e:
        console.print(f"[red]Analysis failed: {e}[/red]")
        raise typer.Exit(1)
    if show_progress:
        metrics.print_summary()
    return system


def _open_engine(config: AppConfig) -> IndexEngine:
    try:
        engine = IndexEngine(config.index_dir / MAIN_INDEX_DIR, config.index)
    except CodeIntelError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if not engine.is_built:
        console.print(f"[red]No index found in {config.index_dir}, run 'codeintel analyze' first[/red]")
        raise typer.Exit(1)
    return engine


@app.command()
def analyze(
    path: ProjectPath,
    index_dir: IndexDirOption = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Extract, index and semantically analyze a Java project.

    The index and semantic stores are written to the index directory and
    can be queried afterwards with the search commands.
    """
    config = _setup(config_file, index_dir, verbose)

    console.print(
        Panel(
            f"[bold blue]Analyzing project:[/bold blue] {path}\n"
            f"[dim]Index:[/dim] {config.index_dir}\n"
            f"[dim]Parser threads:[/dim] {config.parser.thread_count}",
            title="codeintel",
        )
    )

    system = _run_analysis(path, config)
    _print_analysis_summary(system)
    system.close()


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Full-text query")],
    level: Annotated[
        str,
        typer.Option("--level", "-l", help="file, class, interface, method, field, snippet or all"),
    ] = "all",
    max_results: MaxResultsOption = None,
    index_dir: IndexDirOption = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Search the index at a given level."""
    config = _setup(config_file, index_dir, verbose)
    engine = _open_engine(config)
    try:
        results = engine.search(query, level, max_results)
    except CodeIntelError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    _print_results(results, f"Search: {query} ({level})")


@app.command()
def relation(
    relation_type: Annotated[str, typer.Argument(help="extends, implements or calls")],
    target: Annotated[str, typer.Argument(help="Relation target name")],
    max_results: MaxResultsOption = None,
    index_dir: IndexDirOption = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Find entities having a relation to a target."""
    config = _setup(config_file, index_dir, verbose)
    engine = _open_engine(config)
    try:
        results = engine.search_by_relation(relation_type, target, max_results)
    except CodeIntelError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    _print_results(results, f"Relation: {relation_type} {target}")


@app.command()
def semantic(
    query: Annotated[str, typer.Argument(help="Query against documentation comments")],
    max_results: MaxResultsOption = None,
    index_dir: IndexDirOption = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Search documentation comments."""
    config = _setup(config_file, index_dir, verbose)
    engine = _open_engine(config)
    try:
        results = engine.semantic_search(query, max_results)
    except CodeIntelError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    _print_results(results, f"Documentation search: {query}")


@app.command()
def calls(
    method_id: Annotated[str, typer.Argument(help="Method id, e.g. com.example.Service#run")],
    direction: Annotated[
        str,
        typer.Option("--direction", "-d", help="callers or callees"),
    ] = "callees",
    index_dir: IndexDirOption = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """List the callers or callees of a method."""
    config = _setup(config_file, index_dir, verbose)
    analyzer = SemanticAnalyzer(config.index_dir, config.semantic)
    try:
        related = analyzer.find_related_methods(method_id, direction)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if not related:
        console.print(f"[yellow]No {direction} found for {method_id}[/yellow]")
        return
    console.print(f"[bold]{direction.capitalize()} of {method_id}:[/bold]")
    for name in related:
        console.print(f"  - {name}")


@app.command()
def quality(
    path: ProjectPath,
    entity_id: Annotated[
        Optional[str],
        typer.Option("--entity", "-e", help="Only issues of this entity id"),
    ] = None,
    index_dir: IndexDirOption = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Analyze a project and report its code quality issues."""
    config = _setup(config_file, index_dir, verbose)
    system = _run_analysis(path, config, show_progress=False)
    issues = system.semantic.get_quality_issues(entity_id)
    system.close()

    table = Table(title="Quality Issues")
    table.add_column("Severity", style="cyan")
    table.add_column("Type")
    table.add_column("Entity")
    table.add_column("Message")
    for issue in issues:
        table.add_row(issue.severity.value, issue.issue_type.value, issue.entity_id, issue.message)
    console.print(table)
    console.print(f"\n[bold]Quality score:[/bold] {system.semantic.quality_score()}")


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Bind port")] = None,
    config_file: ConfigOption = None,
) -> None:
    """Run the REST API."""
    import uvicorn

    from .api import create_app

    config = load_config(config_file)
    uvicorn.run(
        create_app(config),
        host=host or config.service.host,
        port=port or config.service.port,
    )


@app.command(name="config")
def config_command(
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output path for config file"),
    ] = None,
    show: Annotated[
        bool,
        typer.Option("--show", "-s", help="Show current configuration"),
    ] = False,
) -> None:
    """Manage configuration."""
    if show:
        config = load_config()
        console.print(Panel(str(config.model_dump()), title="Current Configuration"))
        return

    if output:
        config = AppConfig()
        config.to_yaml(output)
        console.print(f"[green]Configuration saved to {output}[/green]")
    else:
        console.print("Use --show to display config or --output to save default config")


def _print_results(results: list[SearchResult], title: str) -> None:
    if not results:
        console.print("[yellow]No results[/yellow]")
        return

    table = Table(title=title)
    table.add_column("Score", justify="right")
    table.add_column("Kind", style="cyan")
    table.add_column("Id")
    table.add_column("Lines", justify="right")

    for result in results:
        attrs = result.attributes
        table.add_row(
            f"{result.score:.2f}",
            result.kind,
            result.id,
            f"{attrs.get('startLine', 0)}-{attrs.get('endLine', 0)}",
        )
    console.print(table)


def _print_analysis_summary(system: AnalysisSystem) -> None:
    """Print a summary of one analysis pass."""
    stats = system.stats
    table = Table(title="Analysis Summary")

    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    entities = stats["entities"]
    table.add_row("Source Files", f"{entities['files']:,}")
    for kind, count in entities["by_kind"].items():
        table.add_row(f"{kind.capitalize()} entities", f"{count:,}")
    table.add_row("Reference Edges", f"{entities['reference_edges']:,}")
    table.add_row("Index Documents", f"{sum(stats['documents'].values()):,}")

    semantic_summary = stats["semantic"]
    table.add_row("Call Edges", f"{semantic_summary['call_graph']['edges']:,}")
    table.add_row("Concepts", f"{semantic_summary['concepts']:,}")
    table.add_row("Potential Duplicates", f"{semantic_summary['duplicates']:,}")
    table.add_row("Quality Issues", f"{semantic_summary['quality_issues']:,}")
    table.add_row("Quality Score", f"{semantic_summary['quality_score']}")

    timing = get_operation_metrics().summary()["timing"].get("project_analysis")
    if timing:
        table.add_row("Processing Time", format_duration(timing["total"]))

    console.print(table)

    if stats["skipped_files"]:
        console.print(f"\n[yellow]Skipped {len(stats['skipped_files'])} files with syntax errors:[/yellow]")
        for file_path in stats["skipped_files"]:
            console.print(f"  - {file_path}")

    console.print(f"\n[green]Index saved to: {system.index_dir}[/green]")


if __name__ == "__main__":
    app()
