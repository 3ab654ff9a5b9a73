"""Typer-based CLI for TypeGraph C# type-relationship extraction."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__, config, config_manager
from .analyzer import analyze_paths, scan_types
from .errors import TypeGraphError
from .graph_export import graph_to_json, render_dot
from .models import Graph
from .resolution import ResolutionMode
from .sources import load_sources

console = Console()

OUTPUT_FORMATS = ("table", "json", "dot")

app = typer.Typer(
    help="TypeGraph CLI: inheritance, implementation and usage graphs for C# code.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Show or change persisted analysis defaults.", no_args_is_help=True)
app.add_typer(config_app, name="config")


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"TypeGraph CLI v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    package_logger = logging.getLogger("typegraph_cli")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable debug logging."),
):
    """TypeGraph CLI: extract type relationship graphs from C# sources."""
    _configure_logging(verbose)


def _error_exit(exc: TypeGraphError) -> typer.Exit:
    typer.echo(f"❌ {exc}", err=True)
    return typer.Exit(1)


def _pick(value: Any, settings: Dict[str, Any], key: str) -> Any:
    return settings[key] if value is None else value


def _print_table(graph: Graph) -> None:
    table = Table(title="Types", show_lines=False)
    table.add_column("Type", style="cyan")
    table.add_column("Kind", style="magenta", width=9)
    table.add_column("Inherits")
    table.add_column("Implements")
    table.add_column("Uses")
    table.add_column("Used by", style="green")

    for node in graph.types:
        table.add_row(
            node.id,
            node.kind,
            ", ".join(node.inherits) or "-",
            ", ".join(node.implements) or "-",
            ", ".join(f"{u.target} ({u.via} {u.member})" for u in node.uses) or "-",
            ", ".join(node.used_by) or "-",
        )

    console.print(table)
    console.print(
        f"\n[dim]{len(graph.types)} types | {len(graph.edges)} edges | "
        f"{graph.external_ref_count} external references[/dim]"
    )


@app.command("analyze")
def analyze(
    paths: List[Path] = typer.Argument(..., help=".cs files, directories or .zip archives."),
    mode: Optional[ResolutionMode] = typer.Option(
        None, "--mode", "-m", case_sensitive=False, help="Identifier resolution: syntactic or semantic."
    ),
    methods: Optional[bool] = typer.Option(
        None, "--methods/--no-methods", help="Also scan method return and parameter types."
    ),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json or dot."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write json/dot output to a file."),
    focus: str = typer.Option("", "--focus", help="DOT only: keep edges touching matching types."),
    strict: Optional[bool] = typer.Option(
        None, "--strict/--no-strict", help="Fail on conflicting declarations of one type."
    ),
    lenient: Optional[bool] = typer.Option(
        None, "--lenient/--no-lenient", help="Continue past syntax errors using the recovered tree."
    ),
):
    """Build the type graph for a set of C# sources."""
    fmt = output_format.lower()
    if fmt not in OUTPUT_FORMATS:
        raise typer.BadParameter(f"Format must be one of: {', '.join(OUTPUT_FORMATS)}")
    if output is not None and fmt == "table":
        raise typer.BadParameter("--output needs --format json or --format dot")

    settings = config_manager.load_analysis_config()
    try:
        graph = analyze_paths(
            paths,
            mode=_pick(mode, settings, "mode"),
            include_method_signatures=_pick(methods, settings, "include_method_signatures"),
            strict=_pick(strict, settings, "strict"),
            lenient=_pick(lenient, settings, "lenient"),
        )
    except TypeGraphError as exc:
        raise _error_exit(exc) from exc

    if fmt == "table":
        _print_table(graph)
        return

    rendered = graph_to_json(graph) + "\n" if fmt == "json" else render_dot(graph, focus)
    if output is None:
        typer.echo(rendered, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(rendered, encoding="utf-8")
    typer.echo(f"Exported {fmt.upper()} to {output}", err=True)


@app.command("types")
def list_types(
    paths: List[Path] = typer.Argument(..., help=".cs files, directories or .zip archives."),
    strict: Optional[bool] = typer.Option(
        None, "--strict/--no-strict", help="Fail on conflicting declarations of one type."
    ),
    lenient: Optional[bool] = typer.Option(
        None, "--lenient/--no-lenient", help="Continue past syntax errors using the recovered tree."
    ),
):
    """List declared types without resolving relationships."""
    settings = config_manager.load_analysis_config()
    try:
        with load_sources(paths) as sources:
            nodes = scan_types(
                sources,
                strict=_pick(strict, settings, "strict"),
                lenient=_pick(lenient, settings, "lenient"),
            )
    except TypeGraphError as exc:
        raise _error_exit(exc) from exc

    for node in nodes:
        typer.echo(f"{node.id}\t{node.kind}\t{node.source_file}")


@config_app.command("show")
def config_show():
    """Show the effective analysis defaults."""
    settings = config_manager.load_analysis_config()
    typer.echo(f"Config file: {config.CONFIG_FILE}")
    for key, value in settings.items():
        typer.echo(f"{key} = {str(value).lower() if isinstance(value, bool) else value}")


@config_app.command("set")
def config_set(
    mode: Optional[ResolutionMode] = typer.Option(None, "--mode", "-m", case_sensitive=False),
    methods: Optional[bool] = typer.Option(None, "--methods/--no-methods"),
    strict: Optional[bool] = typer.Option(None, "--strict/--no-strict"),
    lenient: Optional[bool] = typer.Option(None, "--lenient/--no-lenient"),
):
    """Persist analysis defaults to config.toml."""
    if mode is None and methods is None and strict is None and lenient is None:
        raise typer.BadParameter("Nothing to set. Pass at least one option.")

    settings = config_manager.save_analysis_config(
        mode=mode.value if mode is not None else None,
        include_method_signatures=methods,
        strict=strict,
        lenient=lenient,
    )
    typer.echo(f"✅ Saved analysis defaults to {config.CONFIG_FILE}")
    for key, value in settings.items():
        typer.echo(f"{key} = {str(value).lower() if isinstance(value, bool) else value}")


if __name__ == "__main__":
    app()
