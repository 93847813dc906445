"""
CSV export of collected rows.

One line per resource: ``stack,resourceType,name`` followed by one column
per requested property.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from cosmic.core.inventory import ReportRow
from cosmic.query.parser import Prop
from cosmic.reporters.text_reporter import header_row

# Module logger
logger = logging.getLogger(__name__)


class CSVReporter:
    """
    Reporter for exporting rows to CSV.

    Parameters
    ----------
    output_path : str, optional
        Path for the output file. If not provided, generates a
        timestamped filename in the current directory.
    """

    def __init__(self, output_path: Optional[str] = None) -> None:
        self.output_path = output_path
        logger.debug(f"Initialized CSVReporter (output_path={output_path})")

    def _get_output_path(self) -> Path:
        if self.output_path:
            return Path(self.output_path)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return Path(f"cosmic_resources_{timestamp}.csv")

    def _write(self, handle, rows: Sequence[ReportRow], props: Sequence[Prop]) -> None:
        writer = csv.writer(handle)
        writer.writerow(header_row(props))
        for row in sorted(rows):
            writer.writerow(row)

    def to_string(self, rows: Sequence[ReportRow], props: Sequence[Prop] = ()) -> str:
        buffer = io.StringIO()
        self._write(buffer, rows, props)
        return buffer.getvalue()

    def report(self, rows: Sequence[ReportRow], props: Sequence[Prop] = ()) -> str:
        """Write rows to the CSV file and return its path."""
        output_path = self._get_output_path()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            self._write(f, rows, props)

        logger.info(f"Exported {len(rows)} resources to {output_path}")
        return str(output_path)

    def __repr__(self) -> str:
        return f"CSVReporter(output_path={self.output_path!r})"
