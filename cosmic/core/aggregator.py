"""
Usage Aggregation Module
========================

Builds hierarchical counters from report rows.

Two counters are kept:

- by stack: ``org/``, ``org/project/``, ``org/project/stack``
- by resource type: ``provider:``, ``provider:<module prefix>:`` for every
  ``/`` prefix of the module path, and the full ``provider:module:Name``

A parent key's count is the sum of its children's counts plus any rows
that end exactly at that level. Each row only ever increments counters,
so the result does not depend on the order rows arrive in.

Example
-------
>>> aggregator = UsageAggregator()
>>> aggregator.add(("acme/web/prod", "aws:s3/bucket:Bucket", "logs"))
>>> aggregator.summary().by_resource_type["aws:s3:"]
1
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from cosmic.core.inventory import ReportRow

# Module logger
logger = logging.getLogger(__name__)

STACK_DELIMITER = "/"
TYPE_DELIMITER = ":"
MODULE_DELIMITER = "/"


def stack_keys(stack_name: str) -> List[str]:
    """
    Return every hierarchy key for a stack name.

    >>> stack_keys("acme/web/prod")
    ['acme/', 'acme/web/', 'acme/web/prod']
    """
    parts = stack_name.split(STACK_DELIMITER)
    keys = [STACK_DELIMITER.join(parts[: i + 1]) + STACK_DELIMITER for i in range(len(parts) - 1)]
    keys.append(stack_name)
    return keys


def resource_type_keys(type_string: str) -> List[str]:
    """
    Return every hierarchy key for a ``provider:module:Name`` type.

    >>> resource_type_keys("aws:s3/bucket:Bucket")
    ['aws:', 'aws:s3:', 'aws:s3/bucket:', 'aws:s3/bucket:Bucket']

    Raises
    ------
    ValueError
        If the type does not have exactly three colon separated parts.
    """
    provider, module, name = type_string.split(TYPE_DELIMITER)

    keys = [provider + TYPE_DELIMITER]
    module_parts = module.split(MODULE_DELIMITER)
    for i in range(len(module_parts)):
        module_key = MODULE_DELIMITER.join(module_parts[: i + 1])
        keys.append(provider + TYPE_DELIMITER + module_key + TYPE_DELIMITER)
    keys.append(TYPE_DELIMITER.join((provider, module, name)))
    return keys


@dataclass
class UsageSummary:
    """
    Hierarchical resource counts for one collection pass.

    Parameters
    ----------
    total : int
        Number of rows aggregated.
    by_stack : Counter
        Counts keyed by stack hierarchy.
    by_resource_type : Counter
        Counts keyed by resource-type hierarchy.
    """

    total: int = 0
    by_stack: Counter = field(default_factory=Counter)
    by_resource_type: Counter = field(default_factory=Counter)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "by_stack": dict(sorted(self.by_stack.items())),
            "by_resource_type": dict(sorted(self.by_resource_type.items())),
        }


class UsageAggregator:
    """
    Incrementally counts report rows into a :class:`UsageSummary`.

    Meant to be fed by the single loop that drains the collector's
    stream; it does no locking of its own.
    """

    def __init__(self) -> None:
        self._summary = UsageSummary()

    def add(self, row: ReportRow) -> None:
        """Count one row at every level of both hierarchies."""
        self._summary.by_stack.update(stack_keys(row[0]))
        self._summary.by_resource_type.update(resource_type_keys(row[1]))
        self._summary.total += 1

    def add_all(self, rows: Iterable[ReportRow]) -> None:
        for row in rows:
            self.add(row)

    def summary(self) -> UsageSummary:
        return self._summary

    def __repr__(self) -> str:
        return f"UsageAggregator(total={self._summary.total})"


def aggregate(rows: Iterable[ReportRow]) -> Tuple[Counter, Counter]:
    """
    Count ``rows`` into ``(stack_counter, resource_type_counter)``.

    Example
    -------
    >>> by_stack, by_type = aggregate(rows)
    >>> by_stack["acme/"]
    3
    """
    aggregator = UsageAggregator()
    aggregator.add_all(rows)
    summary = aggregator.summary()
    logger.debug(
        f"Aggregated {summary.total} rows into {len(summary.by_stack)} stack keys "
        f"and {len(summary.by_resource_type)} type keys"
    )
    return summary.by_stack, summary.by_resource_type
