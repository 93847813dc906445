"""
JSON Reporter Module
====================

Exports collected rows, and optionally the usage summary, as JSON for
programmatic consumption.

Classes
-------
JSONReporter
    Reporter for JSON export.

Example
-------
>>> from cosmic.reporters.json_reporter import JSONReporter
>>>
>>> reporter = JSONReporter(output_path="resources.json")
>>> filepath = reporter.report(rows, props, query=query, summary=summary)
>>>
>>> json_str = JSONReporter().to_string(rows, props)

Output Format
-------------
::

    {
      "metadata": {
        "generated_at": "2024-01-15T10:30:00",
        "query": {...},
        "props": ["arn"],
        "row_count": 3
      },
      "resources": [
        {
          "stack": "acme/web/prod",
          "resource_type": "aws:s3/bucket:Bucket",
          "name": "logs",
          "properties": [["arn", "arn:aws:s3:::logs"]]
        }
      ],
      "summary": {"total": 3, "by_stack": {...}, "by_resource_type": {...}}
    }

See Also
--------
TextReporter : For terminal display.
CSVReporter : For spreadsheet export.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from cosmic.core.aggregator import UsageSummary
from cosmic.core.inventory import ReportRow
from cosmic.query.parser import Prop, Query

# Module logger
logger = logging.getLogger(__name__)


def row_to_dict(row: ReportRow, props: Sequence[Prop]) -> Dict[str, Any]:
    """
    Convert a report row to a JSON-ready mapping.

    Properties are ``[name, value]`` pairs in request order so repeated
    props each keep their column.
    """
    return {
        "stack": row[0],
        "resource_type": row[1],
        "name": row[2],
        "properties": [[p.name, row[3 + i]] for i, p in enumerate(props)],
    }


class JSONReporter:
    """
    Reporter for exporting collection results to JSON.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    indent : int, default=2
        JSON indentation level. ``None`` for compact output.

    Examples
    --------
    >>> reporter = JSONReporter(output_path="results.json")
    >>> filepath = reporter.report(rows, props)

    >>> JSONReporter(indent=None).to_string(rows, props)
    """

    def __init__(
        self,
        output_path: Optional[str] = None,
        indent: Optional[int] = 2,
    ) -> None:
        self.output_path = output_path
        self.indent = indent
        logger.debug(f"Initialized JSONReporter (output_path={output_path})")

    def _get_output_path(self) -> Path:
        if self.output_path:
            return Path(self.output_path)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"cosmic_resources_{timestamp}.json")

    def build_report(
        self,
        rows: Sequence[ReportRow],
        props: Sequence[Prop] = (),
        query: Optional[Query] = None,
        summary: Optional[UsageSummary] = None,
    ) -> Dict[str, Any]:
        """
        Build the report document.

        Rows are sorted so the document is stable across runs.
        """
        report: Dict[str, Any] = {
            "metadata": {
                "generated_at": datetime.utcnow().isoformat(),
                "query": query.to_dict() if query else None,
                "props": [p.name for p in props],
                "row_count": len(rows),
            },
            "resources": [row_to_dict(row, props) for row in sorted(rows)],
        }
        if summary is not None:
            report["summary"] = summary.to_dict()
        return report

    def to_string(
        self,
        rows: Sequence[ReportRow],
        props: Sequence[Prop] = (),
        query: Optional[Query] = None,
        summary: Optional[UsageSummary] = None,
    ) -> str:
        """Return the report as a JSON string."""
        return json.dumps(
            self.build_report(rows, props, query=query, summary=summary),
            indent=self.indent,
            default=str,
        )

    def report(
        self,
        rows: Sequence[ReportRow],
        props: Sequence[Prop] = (),
        query: Optional[Query] = None,
        summary: Optional[UsageSummary] = None,
    ) -> str:
        """
        Write the report to a file.

        Returns
        -------
        str
            Path of the written file.
        """
        output_path = self._get_output_path()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.to_string(rows, props, query=query, summary=summary))
            f.write("\n")

        logger.info(f"Exported {len(rows)} resources to {output_path}")
        return str(output_path)

    def __repr__(self) -> str:
        return f"JSONReporter(output_path={self.output_path!r})"
