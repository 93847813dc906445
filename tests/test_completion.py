"""
Tests for shell completion of get tokens.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from cosmic.completion import (
    complete_tokens,
    schema_url,
    suggest_resource_properties,
    suggest_resource_types,
    suggest_tokens,
)

SCHEMA = {
    "resources": {
        "aws:s3/bucket:Bucket": {"properties": {"arn": {}, "bucket": {}, "tags": {}}},
        "aws:s3/bucketPolicy:BucketPolicy": {"properties": {"policy": {}}},
        "aws:ec2/instance:Instance": {"properties": {"arn": {}}},
    }
}


@pytest.fixture
def fake_schema():
    with patch("cosmic.completion.fetch_schema", return_value=SCHEMA) as fetch:
        yield fetch


class TestCompletion:
    """Tests for schema based suggestions."""

    def test_schema_url(self):
        """Test the provider schema location."""
        assert schema_url("aws") == (
            "https://raw.githubusercontent.com/pulumi/pulumi-aws/master/"
            "provider/cmd/pulumi-resource-aws/schema.json"
        )

    def test_resource_types(self, fake_schema):
        """Test prefix filtering of resource types."""
        assert suggest_resource_types("aws:s3/") == [
            "aws:s3/bucket:Bucket",
            "aws:s3/bucketPolicy:BucketPolicy",
        ]
        fake_schema.assert_called_with("aws")

    def test_resource_properties(self, fake_schema):
        """Test property suggestions for a typed resource type."""
        assert suggest_resource_properties("aws:s3/bucket:Bucket", "b") == ["bucket"]
        assert suggest_resource_properties("aws:s3/unknown:Thing") == []

    def test_download_failure(self):
        """Test that a failed download suggests nothing."""
        with patch("cosmic.completion.requests.get", side_effect=requests.ConnectionError()):
            assert suggest_resource_types("aws:") == []

    def test_token_dispatch(self, fake_schema):
        """Test which kind of suggestion is made for the next token."""
        assert suggest_tokens([], "acme/") == []
        assert "aws:ec2/instance:Instance" in suggest_tokens([], "aws:")
        assert suggest_tokens(["acme/", "aws:s3/bucket:Bucket"], "t") == ["tags"]

    def test_click_callback(self, fake_schema):
        """Test the click shell_complete adapter."""
        ctx = MagicMock()
        ctx.params = {"tokens": ("aws:s3/bucket:Bucket",)}
        param = MagicMock()
        param.name = "tokens"

        items = complete_tokens(ctx, param, "a")
        assert [item.value for item in items] == ["arn"]
