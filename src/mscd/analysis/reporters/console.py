"""Console reporter for composition depth results."""

from __future__ import annotations

from io import StringIO
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..models import Granularity

if TYPE_CHECKING:
    from ..models import AnalysisReport, FieldResolution

# Fixed width so text reports do not depend on the terminal
TEXT_WIDTH = 120


def sorted_depths(depths: dict[str, int]) -> list[tuple[str, int]]:
    """Order a {path: depth} table by descending depth, then path.

    Examples:
        >>> sorted_depths({"b.rs": 1, "a.rs": 1, "c.rs": 3})
        [('c.rs', 3), ('a.rs', 1), ('b.rs', 1)]
    """
    return sorted(depths.items(), key=lambda item: (-item[1], item[0]))


class ConsoleReporter:
    """Renders an AnalysisReport as a human-readable terminal report.

    Rendering is pure: the same report always produces the same text.
    """

    def __init__(self, console: Console | None = None, verbose: bool = False) -> None:
        self.console = console or Console()
        self.verbose = verbose

    def render(
        self, report: AnalysisReport, granularity: Granularity = Granularity.SUMMARY
    ) -> None:
        """Print the full report: summary, structs, depth table, warnings."""
        self.print_summary(report)
        self.print_entities(report)
        if granularity == Granularity.FILES:
            self.print_depth_table("Depth by File", "File", report.depth.file_depths)
        elif granularity == Granularity.DIRECTORIES:
            self.print_depth_table(
                "Depth by Directory", "Directory", report.depth.directory_depths
            )
        elif granularity == Granularity.TARGET:
            self.print_depth_table(
                f"Target Directory: {report.root}", "File", report.depth.file_depths
            )
        self.print_warnings(report)

    def render_text(
        self, report: AnalysisReport, granularity: Granularity = Granularity.SUMMARY
    ) -> str:
        """Render the report to plain text (no colour, fixed width)."""
        buffer = StringIO()
        console = Console(
            file=buffer,
            width=TEXT_WIDTH,
            color_system=None,
            force_terminal=False,
            highlight=False,
            emoji=False,
        )
        ConsoleReporter(console, self.verbose).render(report, granularity)
        return buffer.getvalue()

    def write(
        self,
        report: AnalysisReport,
        destination: Path,
        granularity: Granularity = Granularity.SUMMARY,
    ) -> None:
        """Write the plain-text report to a file."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(self.render_text(report, granularity), encoding="utf-8")

    def print_summary(self, report: AnalysisReport) -> None:
        depth = report.depth
        self.console.print("\n[bold blue]Struct Composition Depth[/bold blue]")
        self.console.print("━" * 60)
        self.console.print()

        self.console.print("[bold]Summary[/bold]")
        self.console.print(f"  Root: {escape(report.root)}")
        self.console.print(f"  Files Analyzed: {len(report.files)}")
        self.console.print(f"  Structs: {depth.entity_count}")
        self.console.print(f"  Max Depth: [bold]{depth.global_depth}[/bold]")
        if depth.cyclic_entities:
            self.console.print(f"  Structs on Cycles: {len(depth.cyclic_entities)}")
        self.console.print()

    def print_entities(self, report: AnalysisReport) -> None:
        """Print each struct with its depth and raw field types."""
        self.console.print("[bold]Structs[/bold]")
        if not report.entities:
            self.console.print("  No structs found")
            self.console.print()
            return

        for identity, record in report.entities.items():
            depth = report.depth.entity_depths.get(identity, 0)
            cycle = " (cycle)" if identity in report.depth.cyclic_entities else ""
            self.console.print(
                f"  [cyan]{escape(identity)}[/cyan]  depth {depth}{cycle}  "
                f"[dim]{escape(record.file_path)}[/dim]"
            )
            resolutions = report.resolutions.get(identity, ())
            for position, field in enumerate(record.fields):
                self.console.print(f"    {escape(field.name)}: {escape(field.type_text)}")
                if self.verbose and position < len(resolutions):
                    self._print_targets(resolutions[position])
        self.console.print()

    def _print_targets(self, resolution: FieldResolution) -> None:
        targets = ", ".join(str(target) for target in resolution.targets)
        self.console.print(f"      [dim]-> {escape(targets)}[/dim]")

    def print_depth_table(self, title: str, column: str, depths: dict[str, int]) -> None:
        """Print a {path: depth} table sorted by descending depth."""
        self.console.print(f"[bold]{escape(title)}[/bold]")
        if not depths:
            self.console.print("  No files analyzed")
            self.console.print()
            return

        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column(column, style="cyan", overflow="fold")
        table.add_column("Depth", justify="right", width=8)
        for path, depth in sorted_depths(depths):
            table.add_row(escape(path), str(depth))

        self.console.print(table)
        self.console.print()

    def print_warnings(self, report: AnalysisReport) -> None:
        if report.is_clean:
            self.console.print("[green]✓[/green] No warnings")
            return

        self.console.print(f"[bold yellow]Warnings ({len(report.warnings)})[/bold yellow]")
        if report.parse_failures:
            self.console.print(f"  Files skipped: {report.parse_failures}")
        for warning in report.warnings:
            self.console.print(f"  [yellow]•[/yellow] {escape(str(warning))}")
