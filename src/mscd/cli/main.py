"""Main CLI application for MSCD."""

import typer

from .. import __version__
from .commands import analyze
from .output import console

app = typer.Typer(
    name="mscd",
    help="📐 MSCD - maximum struct composition depth for Rust codebases",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)

app.command(name="analyze")(analyze.main)


@app.command()
def version() -> None:
    """Show the MSCD version."""
    console.print(f"mscd version {__version__}")


if __name__ == "__main__":
    app()
