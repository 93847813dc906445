"""
Pytest configuration and shared fixtures for testing.
"""

import os

import boto3
import pytest
from moto import mock_aws

from cosmic.core.exceptions import StackFetchError
from cosmic.core.inventory import (
    HasIdentity,
    InventoryService,
    ResourceState,
    StackHandle,
    StackIdentity,
    StackSnapshot,
    StackSummary,
)


def make_resource(type_string, name, **outputs):
    """Build a ResourceState with a realistic URN."""
    return ResourceState(
        type=type_string,
        urn=f"urn:pulumi:prod::web::{type_string}::{name}",
        outputs=outputs,
    )


class FakeStack(StackHandle, HasIdentity):
    """In-memory stack that knows its identity."""

    def __init__(self, name, resources, error=None):
        self.name = name
        self.resources = resources
        self.error = error

    def identity(self):
        return StackIdentity.parse(self.name)

    def snapshot(self):
        if self.error:
            raise self.error
        return StackSnapshot(resources=list(self.resources))


class AnonymousStack(StackHandle):
    """Stack handle without the identity capability."""

    def snapshot(self):
        return StackSnapshot()


class FakeInventory(InventoryService):
    """
    In-memory inventory.

    ``stacks`` maps stack names to resource lists. The listing ignores the
    organization/project pre-filter, as a backend is allowed to.
    """

    def __init__(self, stacks=None, broken=(), anonymous=(), failing_snapshots=(), list_error=None):
        self.stacks = dict(stacks or {})
        self.broken = set(broken)
        self.anonymous = set(anonymous)
        self.failing_snapshots = set(failing_snapshots)
        self.list_error = list_error
        self.list_calls = []

    def list_stacks(self, organization=None, project=None):
        self.list_calls.append((organization, project))
        if self.list_error:
            raise self.list_error
        return [StackSummary(name) for name in self.stacks]

    def get_stack(self, name):
        if name in self.broken:
            raise StackFetchError("error retrieving stack", stack=name)
        if name in self.anonymous:
            return AnonymousStack()
        error = None
        if name in self.failing_snapshots:
            error = StackFetchError("error exporting stack", stack=name)
        return FakeStack(name, self.stacks[name], error=error)


@pytest.fixture
def resource():
    """Factory for ResourceState objects."""
    return make_resource


@pytest.fixture
def inventory_factory():
    """The FakeInventory class, for tests that need custom setups."""
    return FakeInventory


@pytest.fixture
def acme_inventory():
    """
    Two stacks of the acme/web project.

    prod holds two buckets; staging holds one bucket and one instance.
    """
    return FakeInventory(
        {
            "acme/web/prod": [
                make_resource("aws:s3/bucket:Bucket", "assets", arn="arn:aws:s3:::assets"),
                make_resource("aws:s3/bucket:Bucket", "logs", arn="arn:aws:s3:::logs"),
            ],
            "acme/web/staging": [
                make_resource("aws:s3/bucket:Bucket", "assets-stg", arn="arn:aws:s3:::assets-stg"),
                make_resource("aws:ec2/instance:Instance", "web", instanceType="t3.micro"),
            ],
        }
    )


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def mock_aws_environment(aws_credentials):
    """Create a mocked AWS environment."""
    with mock_aws():
        yield


@pytest.fixture
def s3_client(mock_aws_environment):
    """Create a boto3 S3 client for setting up test state buckets."""
    return boto3.client("s3", region_name="us-east-1")


@pytest.fixture
def state_bucket(s3_client):
    """Create an empty Pulumi state bucket."""
    s3_client.create_bucket(Bucket="acme-pulumi-state")
    return "acme-pulumi-state"
