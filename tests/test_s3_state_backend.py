"""
Tests for the self-managed S3 state backend.
"""

import gzip
import json
from unittest.mock import patch

import pytest

from cosmic.backends.s3_state import (
    S3StateBackend,
    parse_s3_url,
    split_checkpoint_key,
)
from cosmic.core.aws_client import AWSClient
from cosmic.core.collector import StackCollector
from cosmic.core.exceptions import BackendError, StackFetchError
from cosmic.query.parser import parse_args


def checkpoint(*resources):
    return json.dumps(
        {
            "version": 3,
            "checkpoint": {
                "stack": "organization/web/prod",
                "latest": {"resources": list(resources)},
            },
        }
    )


BUCKET = {
    "urn": "urn:pulumi:prod::web::aws:s3/bucket:Bucket::logs",
    "type": "aws:s3/bucket:Bucket",
    "outputs": {"arn": "arn:aws:s3:::logs"},
}
INSTANCE = {
    "urn": "urn:pulumi:dev::api::aws:ec2/instance:Instance::worker",
    "type": "aws:ec2/instance:Instance",
    "outputs": {},
}


@pytest.fixture
def populated_bucket(s3_client, state_bucket):
    """State bucket with two projects under the 'infra' prefix."""
    s3_client.put_object(
        Bucket=state_bucket,
        Key="infra/.pulumi/stacks/web/prod.json",
        Body=checkpoint(BUCKET),
    )
    s3_client.put_object(
        Bucket=state_bucket,
        Key="infra/.pulumi/stacks/web/prod.json.bak",
        Body=checkpoint(),
    )
    s3_client.put_object(
        Bucket=state_bucket,
        Key="infra/.pulumi/stacks/api/dev.json.gz",
        Body=gzip.compress(checkpoint(INSTANCE).encode("utf-8")),
    )
    s3_client.put_object(
        Bucket=state_bucket,
        Key="infra/.pulumi/history/web/prod/prod-1.history.json",
        Body="{}",
    )
    return state_bucket


@pytest.fixture
def backend(populated_bucket):
    return S3StateBackend(
        f"s3://{populated_bucket}/infra",
        client=AWSClient(region="us-east-1"),
    )


class TestHelpers:
    """Tests for URL and key parsing."""

    def test_parse_s3_url(self):
        """Test bucket and prefix extraction."""
        assert parse_s3_url("s3://state") == ("state", "")
        assert parse_s3_url("s3://state/infra/") == ("state", "infra/")

    def test_parse_bad_url(self):
        """Test that non-s3 URLs are rejected."""
        with pytest.raises(BackendError):
            parse_s3_url("https://api.pulumi.com")

    def test_split_checkpoint_key(self):
        """Test that only checkpoints are recognised."""
        prefix = ".pulumi/stacks/"
        assert split_checkpoint_key(".pulumi/stacks/web/prod.json", prefix) == ("web", "prod")
        assert split_checkpoint_key(".pulumi/stacks/web/prod.json.gz", prefix) == ("web", "prod")
        assert split_checkpoint_key(".pulumi/stacks/web/prod.json.bak", prefix) is None
        assert split_checkpoint_key(".pulumi/stacks/prod.json", prefix) is None


class TestS3StateBackend:
    """Tests for S3StateBackend class."""

    def test_list_stacks(self, backend):
        """Test that every checkpoint is listed once."""
        names = sorted(s.name for s in backend.list_stacks())
        assert names == ["organization/api/dev", "organization/web/prod"]

    def test_list_stacks_by_project(self, backend):
        """Test the project pre-filter."""
        names = [s.name for s in backend.list_stacks(project="web")]
        assert names == ["organization/web/prod"]

    def test_list_stacks_other_organization(self, backend):
        """Test that self-managed state has a single owner."""
        assert backend.list_stacks(organization="acme") == []

    def test_snapshot(self, backend):
        """Test reading a plain checkpoint."""
        stack = backend.get_stack("organization/web/prod")
        snapshot = stack.snapshot()

        assert stack.identity().qualified_name == "organization/web/prod"
        assert [r.name for r in snapshot.resources] == ["logs"]

    def test_gzip_snapshot(self, backend):
        """Test reading a compressed checkpoint."""
        snapshot = backend.get_stack("api/dev").snapshot()
        assert snapshot.resources[0].type == "aws:ec2/instance:Instance"

    def test_missing_stack(self, backend):
        """Test that an unknown stack is a fetch error."""
        with pytest.raises(StackFetchError):
            backend.get_stack("organization/web/gone")

    def test_listed_stacks_skip_relisting(self, backend):
        """Test that stacks found by a listing are fetched without listing again."""
        backend.list_stacks()
        with patch.object(backend, "_checkpoint_keys", side_effect=AssertionError("relisted")):
            stack = backend.get_stack("organization/api/dev")
            assert stack.key == "infra/.pulumi/stacks/api/dev.json.gz"
            assert len(stack.snapshot()) == 1

    def test_unlisted_stack_found_directly(self, backend):
        """Test that an unlisted stack is located without a bucket listing."""
        with patch.object(backend, "_checkpoint_keys", side_effect=AssertionError("relisted")):
            stack = backend.get_stack("web/prod")
        assert stack.key == "infra/.pulumi/stacks/web/prod.json"

    def test_compressed_checkpoint_preferred(self, backend, s3_client, populated_bucket):
        """Test that a compressed checkpoint wins over a plain one."""
        s3_client.put_object(
            Bucket=populated_bucket,
            Key="infra/.pulumi/stacks/web/prod.json.gz",
            Body=gzip.compress(checkpoint().encode("utf-8")),
        )
        assert backend.get_stack("web/prod").key.endswith(".json.gz")
        backend.list_stacks(project="web")
        assert backend.get_stack("web/prod").key.endswith(".json.gz")

    def test_collect(self, backend):
        """Test a full collection pass over the bucket."""
        query, props = parse_args(["organization/web/", "arn"])
        result = StackCollector(backend).collect(query, props)

        assert result.rows == [
            ("organization/web/prod", "aws:s3/bucket:Bucket", "logs", "arn:aws:s3:::logs")
        ]
        assert not result.has_errors

    def test_missing_bucket(self, mock_aws_environment):
        """Test that listing a missing bucket raises BackendError."""
        backend = S3StateBackend("s3://no-such-bucket", client=AWSClient(region="us-east-1"))
        with pytest.raises(BackendError):
            backend.list_stacks()
