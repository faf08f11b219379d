"""Rich output helpers shared by CLI commands."""

from rich.console import Console
from rich.markup import escape

console = Console()


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {escape(message)}")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠[/yellow]  {escape(message)}")


def print_info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue]  {escape(message)}")


def print_success(message: str) -> None:
    console.print(f"[green]✓[/green] {escape(message)}")


def print_json(text: str) -> None:
    """Print pre-rendered JSON untouched (no markup, highlighting or wrapping)."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)
