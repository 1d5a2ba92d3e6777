"""CLI entry point for scenario-verdict.

Provides ``replay`` and ``options`` sub-commands using Click and Rich for
output formatting.

Usage::

    scenario-verdict replay events.ndjson --strict --verbose
    scenario-verdict options --env-file .env -D cucumber.execution.strict=true
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from scenario_verdict.errors import AggregatorStateError, OptionsError, ReplayError
from scenario_verdict.options import RuntimeOptions, load_options
from scenario_verdict.replay import replay_events
from scenario_verdict.verdict import DiagnosticKind

console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _parse_defines(defines: tuple[str, ...]) -> dict[str, str]:
    properties: dict[str, str] = {}
    for define in defines:
        key, sep, value = define.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected key=value, got {define!r}", param_hint="-D")
        properties[key.strip()] = value
    return properties


def _load_options(env_file: str | None, properties: dict[str, str]) -> RuntimeOptions:
    try:
        return load_options(env_file=env_file, properties=properties)
    except OptionsError as exc:
        console.print(f"[red]Invalid options:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc


@click.group()
@click.version_option(package_name="scenario-verdict")
def main() -> None:
    """scenario-verdict: render test case verdicts from lifecycle events."""


@main.command()
@click.argument("events_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--strict/--no-strict",
    default=False,
    help="Treat pending and undefined steps as failures (default: from options).",
)
@click.option("--env-file", type=click.Path(exists=True), default=None, help="Load a .env file first.")
@click.option("--define", "-D", "defines", multiple=True, help="Set a property, key=value.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def replay(
    ctx: click.Context,
    events_file: str,
    strict: bool,
    env_file: str | None,
    defines: tuple[str, ...],
    verbose: bool,
) -> None:
    """Replay an NDJSON event stream and report a verdict per test case."""
    _setup_logging(verbose)

    if ctx.get_parameter_source("strict") is not ParameterSource.COMMANDLINE:
        strict = _load_options(env_file, _parse_defines(defines)).strict

    table = Table(title=f"Verdicts ({'strict' if strict else 'lenient'})")
    table.add_column("Test case", style="cyan")
    table.add_column("Status")
    table.add_column("Kind")
    table.add_column("Message")

    undefined_messages: list[tuple[str, str]] = []
    fatal = 0
    try:
        with Path(events_file).open(encoding="utf-8") as fh:
            for test_case, verdict in replay_events(fh, strict=strict):
                if verdict.passed:
                    table.add_row(escape(test_case.name), "[green]passed[/green]", "", "")
                    continue
                diagnostic = verdict.diagnostic
                style = "red" if verdict.is_fatal else "yellow"
                label = "failed" if verdict.is_fatal else "skipped"
                kind = diagnostic.kind.value if diagnostic else ""
                message = diagnostic.message.splitlines()[0] if diagnostic and diagnostic.message else ""
                table.add_row(
                    escape(test_case.name), f"[{style}]{label}[/{style}]", kind, escape(message)
                )
                if diagnostic and diagnostic.kind == DiagnosticKind.UNDEFINED_STEP:
                    undefined_messages.append((test_case.name, diagnostic.message))
                if verdict.is_fatal:
                    fatal += 1
    except ReplayError as exc:
        console.print(f"[red]Failed to replay events:[/red] {exc}")
        raise SystemExit(1) from exc
    except AggregatorStateError as exc:
        console.print(f"[red]Inconsistent event stream:[/red] {exc}")
        raise SystemExit(2) from exc

    console.print(table)
    for name, message in undefined_messages:
        console.print(f"\n[bold]{escape(name)}[/bold]")
        console.print(message, markup=False, highlight=False)

    if fatal:
        console.print(f"[red]{fatal} test case(s) failed.[/red]")
        raise SystemExit(1)


@main.command()
@click.option("--env-file", type=click.Path(exists=True), default=None, help="Load a .env file first.")
@click.option("--define", "-D", "defines", multiple=True, help="Set a property, key=value.")
def options(env_file: str | None, defines: tuple[str, ...]) -> None:
    """Show the runtime options resolved from the environment and properties."""
    resolved = _load_options(env_file, _parse_defines(defines))

    table = Table(title="Runtime Options")
    table.add_column("Option", style="cyan")
    table.add_column("Value")
    for key, value in resolved.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        table.add_row(key, escape("" if value is None else str(value)))

    console.print(table)


if __name__ == "__main__":
    main()
