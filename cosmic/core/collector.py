"""
Stack Collector Module
======================

Fans resource collection out across every stack an inventory backend
lists, filters each stack's resources against a query, and funnels the
matching rows into a single stream.

This module handles:
- Listing stacks, with a server-side organization/project pre-filter
- Parallel fetching of stack snapshots using a thread pool
- Turning matching resources into report rows
- Isolating per-stack failures from the rest of the batch

Classes
-------
CollectionResult
    Rows and bookkeeping from one collection pass.
StackCollector
    Orchestrates the per-stack fan-out.

Example
-------
>>> from cosmic.core.collector import StackCollector
>>> from cosmic.query.parser import parse_args
>>>
>>> query, props = parse_args(["aws:s3/", "arn"])
>>> collector = StackCollector(backend)
>>> for row in collector.iter_rows(query, props):
...     print(row)

Notes
-----
By default one worker thread is started per listed stack, so the fan-out
is unbounded. Pass ``max_workers`` to cap it.

There is no overall cancellation or timeout: a stack whose fetch never
returns keeps the stream open. Transport level timeouts are a backend
setting.

Rows arrive in completion order, which differs from run to run. Sort them
before display when the order matters.

See Also
--------
InventoryService : Backend interface consumed here.
UsageAggregator : Consumer of the row stream.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Union

from cosmic.core.exceptions import InventoryError
from cosmic.core.inventory import (
    InventoryService,
    ReportRow,
    ResourceRecord,
    StackSummary,
    require_identity,
)
from cosmic.query.matcher import matches_resource, matches_stack
from cosmic.query.parser import Prop, Query

# Module logger
logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]

# Marks the end of the merged stream once every stack task has finished
_END_OF_STREAM = object()

_MISSING = object()


@dataclass(frozen=True)
class _StackFailure:
    stack: str
    message: str


@dataclass(frozen=True)
class _StackSkipped:
    stack: str


_Event = Union[ReportRow, _StackFailure, _StackSkipped]


@dataclass
class CollectionResult:
    """
    Results of one collection pass.

    Parameters
    ----------
    rows : list of tuple
        Report rows in arrival order.
    stacks_listed : list of str
        Names of every stack returned by the listing.
    errors : dict
        Mapping of stack name to the error that stopped it.
    skipped : list of str
        Stacks rejected by the stack-reference filter.
    collected_at : datetime
        When the pass started.
    """

    rows: List[ReportRow] = field(default_factory=list)
    stacks_listed: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    collected_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    @property
    def failed_stacks(self) -> List[str]:
        return list(self.errors.keys())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": [list(r) for r in self.rows],
            "stacks_listed": self.stacks_listed,
            "errors": self.errors,
            "skipped": self.skipped,
            "collected_at": self.collected_at.isoformat(),
        }

    def __repr__(self) -> str:
        return (
            f"CollectionResult(rows={len(self.rows)}, "
            f"stacks={len(self.stacks_listed)}, "
            f"errors={len(self.errors)})"
        )


def format_value(value: Any) -> str:
    """Render an output value for a report cell."""
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def lookup_output(outputs: Dict[str, Any], name: str) -> Any:
    """
    Find ``name`` in a resource's outputs.

    An exact top-level key wins. Otherwise ``name`` is treated as a dotted
    path into nested mappings (``tags.Name``). Returns ``_MISSING`` when
    nothing resolves.
    """
    if name in outputs:
        return outputs[name]
    if "." not in name:
        return _MISSING

    current: Any = outputs
    for part in name.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def build_row(record: ResourceRecord, props: Sequence[Prop]) -> Optional[ReportRow]:
    """
    Build the report row for ``record``.

    Returns ``None`` when any requested property is missing from the
    resource's outputs; such resources are left out of the report.
    """
    values = []
    for prop in props:
        value = lookup_output(record.outputs, prop.name)
        if value is _MISSING:
            return None
        values.append(format_value(value))
    return (record.stack.qualified_name, record.type_string, record.name, *values)


class StackCollector:
    """
    Collects matching resources from every stack of a backend.

    Parameters
    ----------
    inventory : InventoryService
        Backend to read stacks from. Must tolerate concurrent calls.
    max_workers : int, optional
        Maximum concurrent stack fetches. ``None`` starts one worker per
        listed stack.
    progress_callback : callable, optional
        Called from worker threads with ``(stack_name, status)``, status
        being one of ``'fetching'``, ``'complete'``, ``'skipped'``,
        ``'error'``.

    Examples
    --------
    Streaming rows:

    >>> collector = StackCollector(backend)
    >>> for row in collector.iter_rows(query, props):
    ...     print(" ".join(row))

    Draining into a result:

    >>> result = StackCollector(backend, max_workers=8).collect(query, props)
    >>> print(f"{len(result.rows)} rows from {len(result.stacks_listed)} stacks")
    >>> for stack, error in result.errors.items():
    ...     print(f"{stack}: {error}")
    """

    def __init__(
        self,
        inventory: InventoryService,
        max_workers: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> None:
        if max_workers is not None and max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {max_workers}")
        self.inventory = inventory
        self.max_workers = max_workers
        self.progress_callback = progress_callback

        logger.debug(f"Initialized StackCollector with max_workers={max_workers}")

    def list_stacks(self, query: Query) -> List[StackSummary]:
        """
        List candidate stacks for ``query``.

        The organization and project of the query are passed to the
        backend as a pre-filter. The full stack filter is applied again
        per stack, so backends may ignore it.

        Raises
        ------
        InventoryError
            If the backend cannot list stacks.
        """
        sr = query.stack_reference
        try:
            stacks = self.inventory.list_stacks(
                organization=sr.org or None,
                project=sr.project or None,
            )
        except InventoryError:
            logger.exception("Failed to list stacks")
            raise
        except Exception as e:
            logger.exception("Failed to list stacks")
            raise InventoryError(f"Failed to list stacks: {e}") from e

        logger.info(f"Listed {len(stacks)} stacks")
        return stacks

    def _notify(self, stack_name: str, status: str) -> None:
        if self.progress_callback:
            self.progress_callback(stack_name, status)

    def _handle_stack(
        self,
        summary: StackSummary,
        query: Query,
        props: Sequence[Prop],
        out: queue.Queue,
    ) -> None:
        """
        Process one stack (worker thread).

        Never raises: failures are logged and sent down ``out`` so the
        consumer can record them.
        """
        try:
            self._notify(summary.name, "fetching")

            handle = self.inventory.get_stack(summary.name)
            identity = require_identity(handle)
            if not matches_stack(identity, query):
                logger.debug(f"Stack {identity} rejected by stack filter")
                out.put(_StackSkipped(summary.name))
                self._notify(summary.name, "skipped")
                return

            snapshot = handle.snapshot()
            emitted = 0
            for state in snapshot.resources:
                if state is None:
                    continue
                record = ResourceRecord.from_state(identity, state)
                if not matches_resource(record, query):
                    continue
                row = build_row(record, props)
                if row is None:
                    continue
                out.put(row)
                emitted += 1

            logger.debug(
                f"Stack {identity}: {emitted} of {len(snapshot)} resources matched"
            )
            self._notify(summary.name, "complete")

        except Exception as e:
            logger.warning(f"Error collecting stack {summary.name}: {e}")
            out.put(_StackFailure(summary.name, str(e)))
            self._notify(summary.name, "error")

    @staticmethod
    def _close_when_done(futures: List[Future], out: queue.Queue) -> None:
        wait(futures)
        out.put(_END_OF_STREAM)

    def _events(
        self,
        stacks: Sequence[StackSummary],
        query: Query,
        props: Sequence[Prop],
    ) -> Iterator[_Event]:
        if not stacks:
            return

        workers = self.max_workers or len(stacks)
        out: queue.Queue = queue.Queue()

        logger.info(f"Collecting from {len(stacks)} stacks with {workers} workers")

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="cosmic-stack"
        ) as executor:
            futures = [
                executor.submit(self._handle_stack, summary, query, props, out)
                for summary in stacks
            ]
            closer = threading.Thread(
                target=self._close_when_done,
                args=(futures, out),
                name="cosmic-stack-join",
                daemon=True,
            )
            closer.start()

            while True:
                event = out.get()
                if event is _END_OF_STREAM:
                    break
                yield event

    def iter_rows(self, query: Query, props: Sequence[Prop] = ()) -> Iterator[ReportRow]:
        """
        Stream the report rows of every stack matching ``query``.

        The generator finishes only after every stack task has finished.

        Parameters
        ----------
        query : Query
            Stack and resource-type filters.
        props : sequence of Prop
            Output properties to include in each row.

        Yields
        ------
        tuple of str
            ``(stack, resource_type, name, *prop_values)``.

        Raises
        ------
        InventoryError
            If listing stacks fails.
        """
        stacks = self.list_stacks(query)
        for event in self._events(stacks, query, props):
            if isinstance(event, tuple):
                yield event

    def collect(self, query: Query, props: Sequence[Prop] = ()) -> CollectionResult:
        """
        Drain the stream into a :class:`CollectionResult`.

        Raises
        ------
        InventoryError
            If listing stacks fails.

        Example
        -------
        >>> result = collector.collect(query, props)
        >>> if result.has_errors:
        ...     print(result.failed_stacks)
        """
        result = CollectionResult()
        stacks = self.list_stacks(query)
        result.stacks_listed = [s.name for s in stacks]

        for event in self._events(stacks, query, props):
            if isinstance(event, _StackFailure):
                result.errors[event.stack] = event.message
            elif isinstance(event, _StackSkipped):
                result.skipped.append(event.stack)
            else:
                result.rows.append(event)

        logger.info(
            f"Collection complete: {len(result.rows)} rows from "
            f"{len(result.stacks_listed)} stacks ({len(result.errors)} failed)"
        )
        return result

    def __repr__(self) -> str:
        return (
            f"StackCollector(inventory={self.inventory!r}, "
            f"max_workers={self.max_workers})"
        )
