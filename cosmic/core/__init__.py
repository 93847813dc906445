"""
Core Module
===========

Exceptions, settings, logging and the inventory interface shared by the
rest of Cosmic.
"""

from cosmic.core.config import Settings
from cosmic.core.exceptions import (
    BackendError,
    CapabilityError,
    CosmicError,
    CredentialsError,
    InventoryError,
    QueryError,
    StackFetchError,
    TooManyQueryStringsError,
)
from cosmic.core.inventory import (
    HasIdentity,
    InventoryService,
    ResourceRecord,
    ResourceState,
    StackHandle,
    StackIdentity,
    StackSnapshot,
    StackSummary,
)
from cosmic.core.logging import setup_logging

__all__ = [
    "BackendError",
    "CapabilityError",
    "CosmicError",
    "CredentialsError",
    "InventoryError",
    "QueryError",
    "StackFetchError",
    "TooManyQueryStringsError",
    "HasIdentity",
    "InventoryService",
    "ResourceRecord",
    "ResourceState",
    "StackHandle",
    "StackIdentity",
    "StackSnapshot",
    "StackSummary",
    "Settings",
    "setup_logging",
]
