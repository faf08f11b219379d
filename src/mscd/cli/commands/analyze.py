"""Analyze command for the MSCD CLI."""

import sys
from pathlib import Path

import typer
from loguru import logger

from ...analysis.models import AnalysisReport, Granularity
from ...analysis.pipeline import DepthAnalyzer
from ...analysis.reporters import ConsoleReporter, JsonReporter
from ...config.defaults import DEFAULT_CONFIG_FILENAME
from ...config.settings import AnalysisConfig
from ...core.corpus import CorpusProvider
from ...core.exceptions import MSCDError
from ..output import console, print_error, print_info, print_json, print_success


def setup_logging(debug: bool) -> None:
    """Send loguru output to stderr: warnings by default, everything with --debug."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "WARNING")


def main(
    path: Path | None = typer.Argument(
        None,
        help="Corpus root directory (defaults to the current directory)",
        show_default=False,
    ),
    repo: tuple[str, str] = typer.Option(
        (None, None),
        "--repo",
        help="Repository URL or path, and the in-repo subdirectory to analyze",
        metavar="REF SUBDIR",
        rich_help_panel="📦 Source",
    ),
    files: bool = typer.Option(
        False,
        "--files",
        help="Show a per-file depth table",
        rich_help_panel="📊 Display Options",
    ),
    dirs: bool = typer.Option(
        False,
        "--dirs",
        help="Show a per-directory depth table",
        rich_help_panel="📊 Display Options",
    ),
    target: bool = typer.Option(
        False,
        "--target",
        help="Analyze only the files directly inside the root (no recursion)",
        rich_help_panel="📊 Display Options",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show resolved targets for every field",
        rich_help_panel="📊 Display Options",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the report to this file instead of stdout",
        rich_help_panel="📊 Display Options",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output results in JSON format",
        rich_help_panel="📊 Display Options",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        help="Number of parser threads",
        min=1,
        rich_help_panel="⚡ Performance Options",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help=f"YAML configuration file (defaults to ./{DEFAULT_CONFIG_FILENAME} if present)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        rich_help_panel="🔧 Global Options",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging",
        rich_help_panel="🔧 Global Options",
    ),
) -> None:
    """📐 Measure how deeply structs nest into other structs.

    Every struct gets a composition depth: 0 when none of its fields names
    another struct of the corpus, otherwise one more than the deepest struct
    it contains. Wrappers such as Option, Box, Vec or HashMap values are
    looked through.

    [bold cyan]Examples:[/bold cyan]

    [green]Analyze a crate:[/green]
        $ mscd analyze path/to/crate/src

    [green]Per-directory table:[/green]
        $ mscd analyze path/to/crate --dirs

    [green]Analyze part of a remote repository:[/green]
        $ mscd analyze --repo https://github.com/org/project crates/core

    [green]Export to JSON:[/green]
        $ mscd analyze src --json --output depth.json
    """
    setup_logging(debug)

    selected = [flag for flag in (files, dirs, target) if flag]
    if len(selected) > 1:
        print_error("Use only one of --files, --dirs and --target")
        raise typer.Exit(1)
    repo_ref, repo_subdir = repo
    if repo_ref is not None and path is not None:
        print_error("Give either a PATH or --repo, not both")
        raise typer.Exit(1)

    if files:
        granularity = Granularity.FILES
    elif dirs:
        granularity = Granularity.DIRECTORIES
    elif target:
        granularity = Granularity.TARGET
    else:
        granularity = Granularity.SUMMARY

    try:
        config = load_config(config_file)
        if workers is not None:
            config.max_workers = workers
        report = run_analysis(
            config,
            path=path,
            repo_ref=repo_ref,
            repo_subdir=repo_subdir or "",
            recursive=not target,
            quiet=json_output,
        )
    except MSCDError as e:
        logger.debug(f"Analysis failed: {e} {e.context}")
        print_error(str(e))
        raise typer.Exit(1)

    if json_output:
        json_reporter = JsonReporter(verbose=verbose)
        if output is None:
            print_json(json_reporter.render(report, granularity))
        else:
            json_reporter.write(report, output, granularity)
            print_success(f"Report written to {output}")
        return

    reporter = ConsoleReporter(console, verbose=verbose)
    if output is None:
        reporter.render(report, granularity)
    else:
        reporter.write(report, output, granularity)
        print_success(f"Report written to {output}")


def load_config(config_file: Path | None) -> AnalysisConfig:
    """Load --config, or the default config file in the working directory."""
    if config_file is not None:
        return AnalysisConfig.load(config_file)
    return AnalysisConfig.load(Path.cwd() / DEFAULT_CONFIG_FILENAME)


def run_analysis(
    config: AnalysisConfig,
    path: Path | None = None,
    repo_ref: str | None = None,
    repo_subdir: str = "",
    recursive: bool = True,
    quiet: bool = False,
) -> AnalysisReport:
    """Run the analysis over a local directory or a repository subdirectory.

    Raises:
        NotFoundError: If the corpus root does not exist
        RetrievalError: If the repository cannot be fetched
    """
    analyzer = DepthAnalyzer(config)

    if repo_ref is not None:
        if not quiet:
            print_info(f"Using repository {repo_ref}")
        label = f"{repo_ref}:{repo_subdir}" if repo_subdir else repo_ref
        with CorpusProvider.repository(
            repo_ref, repo_subdir, config, recursive=recursive
        ) as provider:
            return analyzer.analyze(provider, label=label)

    root = path if path is not None else Path.cwd()
    with CorpusProvider.local(root, config, recursive=recursive) as provider:
        return analyzer.analyze(provider, label=str(root))
