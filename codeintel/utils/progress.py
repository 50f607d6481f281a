"""Progress tracking utilities using Rich."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

console = Console()


def create_progress(disable: bool = False) -> Progress:
    """Create a configured progress bar."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False,
        disable=disable,
    )


@dataclass
class PhaseMetrics:
    """Metrics for a single processing phase."""

    name: str
    total_items: int = 0
    processed_items: int = 0
    failed_items: int = 0
    start_time: datetime | None = None
    end_time: datetime | None = None

    @property
    def success_rate(self) -> float:
        """Calculate success rate as percentage."""
        if self.total_items == 0:
            return 100.0
        return ((self.total_items - self.failed_items) / self.total_items) * 100

    @property
    def duration(self) -> timedelta | None:
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    @property
    def items_per_second(self) -> float:
        if self.duration and self.processed_items > 0 and self.duration.total_seconds() > 0:
            return self.processed_items / self.duration.total_seconds()
        return 0.0


@dataclass
class PipelineMetrics:
    """Metrics for one analysis pass (extraction, indexing, semantic stages)."""

    phases: dict[str, PhaseMetrics] = field(default_factory=dict)
    start_time: datetime | None = None
    end_time: datetime | None = None
    total_files: int = 0
    entities_by_kind: dict[str, int] = field(default_factory=dict)

    def start_phase(self, name: str, total_items: int = 0) -> PhaseMetrics:
        """Start tracking a new phase."""
        if self.start_time is None:
            self.start_time = datetime.now()
        phase = PhaseMetrics(name=name, total_items=total_items, start_time=datetime.now())
        self.phases[name] = phase
        return phase

    def end_phase(self, name: str) -> None:
        """Mark a phase as complete."""
        if name in self.phases:
            self.phases[name].end_time = datetime.now()
            self.end_time = self.phases[name].end_time

    @property
    def total_duration(self) -> timedelta | None:
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    def to_table(self) -> Table:
        """Generate a Rich table with metrics summary."""
        table = Table(title="Pipeline Metrics", show_header=True)
        table.add_column("Phase", style="cyan")
        table.add_column("Items", justify="right")
        table.add_column("Failed", justify="right", style="red")
        table.add_column("Success %", justify="right")
        table.add_column("Duration", justify="right")

        for name, phase in self.phases.items():
            duration_str = str(phase.duration).split(".")[0] if phase.duration else "-"
            table.add_row(
                name,
                str(phase.processed_items),
                str(phase.failed_items),
                f"{phase.success_rate:.1f}%",
                duration_str,
            )

        return table

    def print_summary(self) -> None:
        """Print a summary of metrics to console."""
        console.print()
        console.print(self.to_table())

        if self.total_duration:
            console.print(f"[bold]Total duration:[/bold] {str(self.total_duration).split('.')[0]}")
        console.print(f"[bold]Total files:[/bold] {self.total_files:,}")

        if self.entities_by_kind:
            console.print("\n[bold]Entities by kind:[/bold]")
            for kind, count in sorted(
                self.entities_by_kind.items(), key=lambda x: x[1], reverse=True
            ):
                console.print(f"  {kind}: {count:,}")
