"""
Tests for exceptions, logging and inventory types.
"""

import logging

import pytest

from cosmic.core.exceptions import (
    CapabilityError,
    CosmicError,
    InventoryError,
    StackFetchError,
    TooManyQueryStringsError,
)
from cosmic.core.inventory import (
    ResourceState,
    StackIdentity,
    StackSnapshot,
    require_identity,
)
from cosmic.core.logging import setup_logging


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_details_in_message(self):
        """Test that details are rendered after the message."""
        error = CosmicError("boom", details={"code": 500})
        assert str(error) == "boom (Details: {'code': 500})"
        assert error.to_dict()["error_type"] == "CosmicError"

    def test_inventory_context(self):
        """Test that backend and stack land in the details."""
        error = StackFetchError("error retrieving stack", backend="s3://x", stack="a/b/c")
        assert isinstance(error, InventoryError)
        assert error.details == {"backend": "s3://x", "stack": "a/b/c"}

    def test_too_many_query_strings_message(self):
        """Test the grammar error wording."""
        error = TooManyQueryStringsError(["aws:", "a/", "gcp:"])
        assert str(error) == "too many query strings provided: ['aws:', 'a/', 'gcp:']"


class TestInventoryTypes:
    """Tests for inventory data types."""

    def test_identity_parse(self):
        """Test two and three part stack names."""
        assert StackIdentity.parse("acme/web/prod") == StackIdentity("acme", "web", "prod")
        assert StackIdentity.parse("web/prod", default_owner="organization").owner == "organization"
        with pytest.raises(ValueError):
            StackIdentity.parse("prod")

    def test_resource_name_from_urn(self):
        """Test that the name is the last URN segment."""
        state = ResourceState.from_dict(
            {"urn": "urn:pulumi:prod::web::aws:s3/bucket:Bucket::logs", "type": "aws:s3/bucket:Bucket"}
        )
        assert state.name == "logs"
        assert state.outputs == {}

    def test_snapshot_keeps_null_entries(self):
        """Test that null resources survive decoding for callers to skip."""
        snapshot = StackSnapshot.from_deployment({"resources": [None, {"urn": "u::x", "type": "a:b:C"}]})
        assert snapshot.resources[0] is None
        assert len(snapshot) == 2

    def test_require_identity(self):
        """Test the capability check."""
        with pytest.raises(CapabilityError) as exc_info:
            require_identity(object())
        assert exc_info.value.capability == "HasIdentity"


class TestLogging:
    """Tests for logging setup."""

    def test_setup_replaces_handlers(self, tmp_path):
        """Test that repeated setup does not stack handlers."""
        log_file = tmp_path / "cosmic.log"
        setup_logging(level="INFO", log_file=str(log_file))
        setup_logging(level="INFO", log_file=str(log_file))

        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert root.level == logging.INFO
        assert logging.getLogger("botocore").level == logging.WARNING

        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
