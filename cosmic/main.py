"""
Cosmic CLI - cross-stack resource queries

Main entry point for the command-line interface.
"""

import sys
import threading
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console

from . import __version__
from .backends import open_backend
from .completion import complete_tokens
from .core.aggregator import UsageAggregator
from .core.collector import StackCollector
from .core.config import Settings
from .core.exceptions import CosmicError, QueryError
from .core.inventory import StackIdentity
from .core.logging import setup_logging
from .query.matcher import matches_stack
from .query.parser import Prop, Query, is_query_string, parse_args, parse_query
from .reporters.csv_reporter import CSVReporter
from .reporters.json_reporter import JSONReporter
from .reporters.text_reporter import TextReporter


console = Console(stderr=True)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def backend_options(func):
    """Options shared by every command that talks to a backend."""
    options = [
        click.option(
            "--backend-url",
            envvar="PULUMI_BACKEND_URL",
            default=None,
            help="Pulumi service URL or s3:// state bucket (default: current login)",
        ),
        click.option(
            "--access-token",
            envvar="PULUMI_ACCESS_TOKEN",
            default=None,
            help="Pulumi access token (default: from credentials file)",
        ),
        click.option(
            "--timeout",
            type=click.IntRange(min=1),
            default=None,
            help="Per-request timeout in seconds (default: 30)",
        ),
        click.option(
            "--profile",
            "-p",
            default=None,
            help="AWS profile for s3:// backends",
        ),
        click.option(
            "--region",
            "-r",
            default=None,
            help="AWS region for s3:// backends",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _resolve_settings(**overrides) -> Settings:
    """Environment and credentials file first, then explicit options."""
    return Settings.from_env().merge(**overrides)


def _parse_tokens(tokens: Tuple[str, ...]) -> Tuple[Query, Tuple[Prop, ...]]:
    """Parse ``get`` tokens, falling back to the empty query on errors."""
    try:
        return parse_args(tokens)
    except QueryError as e:
        click.echo(str(e))
        return Query(), ()


@click.group()
@click.version_option(version=__version__, prog_name="cosmic")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Log level for diagnostics on stderr (default: WARNING)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write logs to this file",
)
def cli(log_level: str, log_file: Optional[str]):
    """
    Cosmic: query resources across Pulumi stacks

    Lists every stack visible to a Pulumi backend, keeps the resources
    matching a stack reference and/or a resource type, and prints them
    with the requested output properties.
    """
    setup_logging(level=log_level, log_file=log_file, console=console)


@cli.command("get")
@click.argument("tokens", nargs=-1, shell_complete=complete_tokens)
@click.option(
    "--summarize",
    is_flag=True,
    help="Summarize resource counts",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["text", "json", "csv"]),
    default="text",
    help="Output format (default: text)",
)
@click.option(
    "--output",
    "-o",
    default=None,
    help="Write the report to this file instead of stdout",
)
@click.option(
    "--max-workers",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum parallel stack fetches (default: one per stack)",
)
@backend_options
def get(
    tokens: Tuple[str, ...],
    summarize: bool,
    output_format: str,
    output: Optional[str],
    max_workers: Optional[int],
    backend_url: Optional[str],
    access_token: Optional[str],
    timeout: Optional[int],
    profile: Optional[str],
    region: Optional[str],
):
    """
    Get resources across stacks.

    TOKENS are stack references (org/, org/project, org/project/stack),
    at most one resource type (aws:, aws:s3/, aws:s3/bucket:Bucket) and any
    number of output property names.

    Examples:

        # Every resource of every stack
        cosmic get

        # S3 resources of the acme organization, with their ARN
        cosmic get acme/ aws:s3/ arn

        # Counts by stack and resource type
        cosmic get aws: --summarize

        # JSON report on disk
        cosmic get acme/web/prod --format json -o resources.json
    """
    reporter = TextReporter(console)
    query, props = _parse_tokens(tokens)

    try:
        settings = _resolve_settings(
            backend_url=backend_url,
            access_token=access_token,
            timeout=timeout,
            max_workers=max_workers,
            aws_profile=profile,
            aws_region=region,
        )
        backend = open_backend(settings)

        with reporter.create_status("Listing stacks...") as status:
            lock = threading.Lock()
            finished: List[str] = []

            def progress_callback(stack: str, state: str):
                if state in ("complete", "skipped", "error"):
                    with lock:
                        finished.append(stack)
                        status.update(f"Collected {len(finished)} stacks ({stack})")

            collector = StackCollector(
                backend,
                max_workers=settings.max_workers,
                progress_callback=progress_callback,
            )
            result = collector.collect(query, props)

    except CosmicError as e:
        reporter.print_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled by user.[/yellow]")
        sys.exit(130)

    summary = None
    if summarize:
        aggregator = UsageAggregator()
        aggregator.add_all(result.rows)
        summary = aggregator.summary()

    _output_result(result.rows, props, query, summary, output_format, output, reporter)
    reporter.print_collection_errors(result.errors)


def _output_result(rows, props, query, summary, output_format, output, reporter):
    """Write the report to stdout or to ``output``."""
    if output_format == "json":
        json_reporter = JSONReporter(output_path=output)
        if output:
            output_file = json_reporter.report(rows, props, query=query, summary=summary)
            console.print(f"[green]Report written to {output_file}[/green]")
        else:
            click.echo(json_reporter.to_string(rows, props, query=query, summary=summary))
        return

    if output_format == "csv":
        csv_reporter = CSVReporter(output_path=output)
        if output:
            output_file = csv_reporter.report(rows, props)
            console.print(f"[green]Report written to {output_file}[/green]")
        else:
            click.echo(csv_reporter.to_string(rows, props), nl=False)
        if summary is not None:
            reporter.print_warning("--summarize is only rendered in text and json output")
        return

    text = reporter.render(rows, props, summary)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        console.print(f"[green]Report written to {output}[/green]")
    else:
        click.echo(text)


@cli.command("stacks")
@click.argument("reference", required=False)
@backend_options
def list_stacks(
    reference: Optional[str],
    backend_url: Optional[str],
    access_token: Optional[str],
    timeout: Optional[int],
    profile: Optional[str],
    region: Optional[str],
):
    """
    List stacks visible to the backend.

    REFERENCE optionally narrows the listing (org/, org/project,
    org/project/stack).
    """
    reporter = TextReporter(console)

    query = Query()
    if reference:
        if not is_query_string(reference) or ":" in reference:
            raise click.BadParameter(
                f"not a stack reference: {reference}", param_hint="REFERENCE"
            )
        query = parse_query(reference)

    try:
        settings = _resolve_settings(
            backend_url=backend_url,
            access_token=access_token,
            timeout=timeout,
            aws_profile=profile,
            aws_region=region,
        )
        collector = StackCollector(open_backend(settings))
        stacks = collector.list_stacks(query)
    except CosmicError as e:
        reporter.print_error(str(e))
        sys.exit(1)

    names = []
    for summary in stacks:
        try:
            identity = StackIdentity.parse(summary.name)
        except ValueError:
            continue
        if matches_stack(identity, query):
            names.append(summary.name)

    for name in sorted(names):
        click.echo(name)
    console.print(f"\n[bold]{len(names)} stack(s)[/bold]")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
