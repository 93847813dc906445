"""
Reporters Module
================

Output formats for collected rows and usage summaries.

Available Reporters
-------------------
- TextReporter: aligned table and hierarchical summary
- JSONReporter: JSON document
- CSVReporter: CSV rows
"""

from cosmic.reporters.csv_reporter import CSVReporter
from cosmic.reporters.json_reporter import JSONReporter
from cosmic.reporters.text_reporter import TextReporter, render_summary, render_table

__all__ = [
    "CSVReporter",
    "JSONReporter",
    "TextReporter",
    "render_summary",
    "render_table",
]
