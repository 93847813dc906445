"""
Text Reporter Module
====================

Renders collected rows as a column-aligned table and usage counters as
indented hierarchical summaries, and prints status messages to the
terminal using the Rich library.

Classes
-------
TextReporter
    Renders report text and prints status output.

Functions
---------
render_table
    Column-aligned table of report rows.
render_summary
    Indented, sorted summary of both usage counters.

Example
-------
>>> from cosmic.reporters.text_reporter import render_summary, render_table
>>>
>>> print(render_table(rows, props))
>>> print(render_summary(summary))

Output
------
Table::

    stack            resourceType          name
    acme/web/prod    aws:s3/bucket:Bucket  assets
    acme/web/prod    aws:s3/bucket:Bucket  logs

Summary::

    Summary
    total - 2

    Summary[by-stack]
    group  count stack
    stack: 2 | acme/
    stack: 2 || acme/web/
    stack: 2 ||| acme/web/prod

Notes
-----
Report text is returned as plain strings so it can be written to stdout
unchanged. Only status messages go through the Rich console (stderr).
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.status import Status

from cosmic.core.aggregator import STACK_DELIMITER, UsageSummary
from cosmic.core.inventory import ReportRow
from cosmic.query.parser import Prop

# Module logger
logger = logging.getLogger(__name__)

BASE_HEADER = ("stack", "resourceType", "name")
INDENT_MARKER = "|"

# Ranks ':' ahead of '/' (and every name character) while sorting type keys
_TYPE_SORT_SUBSTITUTE = '"'


def header_row(props: Sequence[Prop]) -> ReportRow:
    """Return the header row: base columns followed by prop names."""
    return BASE_HEADER + tuple(p.name for p in props)


def render_table(rows: Iterable[ReportRow], props: Sequence[Prop] = ()) -> str:
    """
    Render rows as a column-aligned table.

    Each field is padded to the widest value of its column, header
    included, followed by one separating space, so every line ends with a
    space. Rows are sorted so the output is the same no matter in which
    order stacks finished.

    Parameters
    ----------
    rows : iterable of tuple
        Report rows.
    props : sequence of Prop
        Requested properties, used for the header.

    Returns
    -------
    str
        The table, one line per row, header first.
    """
    table: List[ReportRow] = [header_row(props)] + sorted(rows)

    widths: Dict[int, int] = {}
    for row in table:
        for i, value in enumerate(row):
            widths[i] = max(widths.get(i, 0), len(value))

    lines = []
    for row in table:
        lines.append("".join(value.ljust(widths[i]) + " " for i, value in enumerate(row)))
    return "\n".join(lines)


def stack_depth(key: str) -> int:
    """Hierarchy level of a stack key: its number of non-empty segments."""
    return sum(1 for part in key.split(STACK_DELIMITER) if part)


def resource_type_depth(key: str) -> int:
    """Hierarchy level of a type key: its colons plus module slashes."""
    return key.count(":") + key.count("/")


def resource_type_sort_key(key: str) -> str:
    return key.replace(":", _TYPE_SORT_SUBSTITUTE)


def render_counter(
    counter: Counter,
    label: str,
    depth=stack_depth,
    sort_key=None,
) -> List[str]:
    """
    Render one counter as indented lines.

    Parameters
    ----------
    counter : Counter
        Hierarchical counts.
    label : str
        Line prefix (``stack`` or ``type``).
    depth : callable
        Maps a key to its indentation level.
    sort_key : callable, optional
        Key function for ordering.

    Returns
    -------
    list of str
        One line per key, counts right-aligned to the widest count.
    """
    if not counter:
        return []
    count_width = max(len(str(c)) for c in counter.values())
    lines = []
    for key in sorted(counter, key=sort_key):
        count = str(counter[key]).rjust(count_width)
        indent = INDENT_MARKER * depth(key)
        lines.append(f"{label}: {count} {indent} {key}")
    return lines


def render_summary(summary: UsageSummary) -> str:
    """
    Render the total and both hierarchical counters.

    Parameters
    ----------
    summary : UsageSummary
        Output of :class:`~cosmic.core.aggregator.UsageAggregator`.

    Returns
    -------
    str
        The summary block.
    """
    lines = [
        "Summary",
        f"total - {summary.total}",
        "",
        "Summary[by-stack]",
        "group  count stack",
    ]
    lines += render_counter(summary.by_stack, "stack", depth=stack_depth)
    lines += [
        "",
        "Summary[by-resource-type]",
        "group  count resource-type",
    ]
    lines += render_counter(
        summary.by_resource_type,
        "type",
        depth=resource_type_depth,
        sort_key=resource_type_sort_key,
    )
    return "\n".join(lines)


class TextReporter:
    """
    Terminal reporter for collection results.

    Parameters
    ----------
    console : Console, optional
        Rich Console for status messages. Defaults to a stderr console.

    Examples
    --------
    >>> reporter = TextReporter()
    >>> click.echo(reporter.render(rows, props, summary))
    >>> reporter.print_collection_errors(result.errors)
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(stderr=True)

    def render(
        self,
        rows: Sequence[ReportRow],
        props: Sequence[Prop] = (),
        summary: Optional[UsageSummary] = None,
    ) -> str:
        """Render the table, followed by the summary when one is given."""
        text = render_table(rows, props)
        if summary is not None:
            text += "\n\n" + render_summary(summary)
        return text

    def create_status(self, message: str) -> Status:
        """
        Create a spinner for a long-running step.

        Example
        -------
        >>> with reporter.create_status("Listing stacks...") as status:
        ...     status.update("Collecting 3/10 stacks")
        """
        return self.console.status(message)

    def print_collection_errors(self, errors: Dict[str, str]) -> None:
        """Print stacks that could not be collected."""
        if not errors:
            return
        self.console.print(
            f"\n[yellow bold]{len(errors)} stack(s) could not be read:[/yellow bold]"
        )
        for stack in sorted(errors):
            self.console.print(f"  [yellow]{escape(stack)}[/yellow]: {escape(errors[stack])}")

    def print_error(self, message: str) -> None:
        self.console.print(f"\n[red bold]Error:[/red bold] {escape(message)}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"\n[yellow bold]Warning:[/yellow bold] {escape(message)}")

    def __repr__(self) -> str:
        return "TextReporter()"
