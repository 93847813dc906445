"""
Tests for the Reporter modules.
"""

import csv
import io
import json
import os

import pytest
from rich.console import Console

from cosmic.core.aggregator import UsageAggregator
from cosmic.query.parser import Prop, parse_args
from cosmic.reporters.csv_reporter import CSVReporter
from cosmic.reporters.json_reporter import JSONReporter
from cosmic.reporters.text_reporter import (
    TextReporter,
    render_summary,
    render_table,
    resource_type_depth,
    stack_depth,
)


@pytest.fixture
def sample_rows():
    """Rows in completion (unsorted) order."""
    return [
        ("acme/web/staging", "aws:s3/bucket:Bucket", "assets-stg", "arn:aws:s3:::assets-stg"),
        ("acme/web/prod", "aws:s3/bucket:Bucket", "logs", "arn:aws:s3:::logs"),
        ("acme/web/prod", "aws:s3/bucket:Bucket", "assets", "arn:aws:s3:::assets"),
    ]


@pytest.fixture
def sample_props():
    return (Prop("arn"),)


@pytest.fixture
def sample_summary(sample_rows):
    aggregator = UsageAggregator()
    aggregator.add_all(sample_rows)
    return aggregator.summary()


class TestRenderTable:
    """Tests for render_table."""

    def test_header_and_sorting(self, sample_rows, sample_props):
        """Test that the header comes first and rows are sorted."""
        lines = render_table(sample_rows, sample_props).splitlines()

        assert lines[0].split() == ["stack", "resourceType", "name", "arn"]
        assert [line.split()[2] for line in lines[1:]] == ["assets", "logs", "assets-stg"]

    def test_columns_aligned(self, sample_rows, sample_props):
        """Test that each column starts at the same offset on every line."""
        lines = render_table(sample_rows, sample_props).splitlines()
        offset = lines[0].index("resourceType")
        for line in lines[1:]:
            assert line[offset:].startswith("aws:")
            assert line[offset - 1] == " "

    def test_header_only(self):
        """Test rendering without rows."""
        assert render_table([]) == "stack resourceType name "

    def test_trailing_separator_kept(self, sample_rows, sample_props):
        """Test that the last column keeps its padding and separator."""
        lines = render_table(sample_rows, sample_props).splitlines()

        assert all(line.endswith(" ") for line in lines)
        assert len({len(line) for line in lines}) == 1
        assert lines[0].endswith("arn" + " " * (len("arn:aws:s3:::assets-stg") - len("arn") + 1))


class TestRenderSummary:
    """Tests for render_summary."""

    def test_depths(self):
        """Test indentation levels of hierarchy keys."""
        assert stack_depth("acme/") == 1
        assert stack_depth("acme/web/") == 2
        assert stack_depth("acme/web/prod") == 3
        assert resource_type_depth("aws:") == 1
        assert resource_type_depth("aws:s3:") == 2
        assert resource_type_depth("aws:s3/bucket:") == 3
        assert resource_type_depth("aws:s3/bucket:Bucket") == 3

    def test_layout(self, sample_summary):
        """Test the section headers and stack lines."""
        lines = render_summary(sample_summary).splitlines()

        assert lines[:5] == [
            "Summary",
            "total - 3",
            "",
            "Summary[by-stack]",
            "group  count stack",
        ]
        assert "stack: 3 | acme/" in lines
        assert "stack: 3 || acme/web/" in lines
        assert "stack: 2 ||| acme/web/prod" in lines
        assert "stack: 1 ||| acme/web/staging" in lines
        assert "Summary[by-resource-type]" in lines

    def test_type_order_colon_first(self):
        """Test that 'aws:s3:' sorts before 'aws:s3/...' keys."""
        aggregator = UsageAggregator()
        aggregator.add_all(
            [
                ("a/b/c", "aws:s3/bucket:Bucket", "x"),
                ("a/b/c", "aws:s3:Thing", "y"),
            ]
        )
        lines = render_summary(aggregator.summary()).splitlines()
        type_keys = [line.split()[-1] for line in lines if line.startswith("type:")]

        assert type_keys.index("aws:s3:") < type_keys.index("aws:s3:Thing")
        assert type_keys.index("aws:s3:Thing") < type_keys.index("aws:s3/bucket:")

    def test_counts_right_aligned(self):
        """Test that counts share one width per counter."""
        rows = [("a/b/c", "aws:s3/bucket:Bucket", f"r{i}") for i in range(10)]
        rows.append(("a/b/d", "aws:s3/bucket:Bucket", "z"))
        aggregator = UsageAggregator()
        aggregator.add_all(rows)
        lines = render_summary(aggregator.summary()).splitlines()

        assert "stack:  1 ||| a/b/d" in lines
        assert "stack: 11 | a/" in lines


class TestTextReporter:
    """Tests for TextReporter class."""

    def test_render_with_summary(self, sample_rows, sample_props, sample_summary):
        """Test that the summary follows the table."""
        text = TextReporter(Console(file=io.StringIO())).render(
            sample_rows, sample_props, sample_summary
        )
        assert text.startswith("stack")
        assert "\n\nSummary\ntotal - 3" in text

    def test_collection_errors_escaped(self):
        """Test that error text is printed verbatim."""
        buffer = io.StringIO()
        reporter = TextReporter(Console(file=buffer, width=200))
        reporter.print_collection_errors({"acme/web/prod": "bad [token]"})

        output = buffer.getvalue()
        assert "1 stack(s) could not be read" in output
        assert "bad [token]" in output


class TestCSVReporter:
    """Tests for CSVReporter class."""

    def test_to_string(self, sample_rows, sample_props):
        """Test CSV output with a header row."""
        content = CSVReporter().to_string(sample_rows, sample_props)
        records = list(csv.reader(io.StringIO(content)))

        assert records[0] == ["stack", "resourceType", "name", "arn"]
        assert records[1][2] == "assets"
        assert len(records) == 4

    def test_export(self, sample_rows, sample_props, tmp_path):
        """Test writing rows to a file."""
        output_path = str(tmp_path / "resources.csv")
        result_path = CSVReporter(output_path=output_path).report(sample_rows, sample_props)

        assert result_path == output_path
        with open(output_path, "r") as f:
            content = f.read()
        assert "arn:aws:s3:::logs" in content

    def test_auto_generated_filename(self, sample_rows, tmp_path, monkeypatch):
        """Test that filename is auto-generated when not specified."""
        monkeypatch.chdir(tmp_path)
        result_path = CSVReporter().report(sample_rows)

        assert result_path.startswith("cosmic_resources_")
        assert result_path.endswith(".csv")
        assert os.path.exists(result_path)


class TestJSONReporter:
    """Tests for JSONReporter class."""

    def test_to_string(self, sample_rows, sample_props, sample_summary):
        """Test the JSON document layout."""
        query, _ = parse_args(["aws:s3/"])
        data = json.loads(
            JSONReporter().to_string(sample_rows, sample_props, query=query, summary=sample_summary)
        )

        assert data["metadata"]["row_count"] == 3
        assert data["metadata"]["props"] == ["arn"]
        assert data["metadata"]["query"]["resource_type"]["module_prefix"] == "s3/"
        assert data["resources"][0] == {
            "stack": "acme/web/prod",
            "resource_type": "aws:s3/bucket:Bucket",
            "name": "assets",
            "properties": [["arn", "arn:aws:s3:::assets"]],
        }
        assert data["summary"]["by_stack"]["acme/"] == 3

    def test_no_summary(self, sample_rows):
        """Test that the summary key is omitted when not requested."""
        data = JSONReporter().build_report([r[:3] for r in sample_rows])
        assert "summary" not in data
        assert data["metadata"]["query"] is None

    def test_repeated_props_kept(self):
        """Test that a prop requested twice yields two property entries."""
        row = ("acme/web/prod", "aws:s3/bucket:Bucket", "logs", "arn:1", "arn:1")
        data = JSONReporter().build_report([row], (Prop("arn"), Prop("arn")))

        assert data["resources"][0]["properties"] == [["arn", "arn:1"], ["arn", "arn:1"]]
        assert data["metadata"]["props"] == ["arn", "arn"]

    def test_export(self, sample_rows, sample_props, tmp_path):
        """Test writing the document to a file."""
        output_path = str(tmp_path / "out" / "resources.json")
        result_path = JSONReporter(output_path=output_path).report(sample_rows, sample_props)

        with open(result_path, "r") as f:
            data = json.load(f)
        assert len(data["resources"]) == 3
