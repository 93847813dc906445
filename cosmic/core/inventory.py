"""
Inventory Module
================

Defines the narrow interface Cosmic consumes from a stack inventory
backend, together with the plain data types that flow through it.

A backend only has to answer two questions: which stacks exist, and
what does a given stack's latest snapshot contain. Everything else
(authentication, transport, storage layout) stays inside the backend.

Classes
-------
StackIdentity
    ``owner/project/stack`` identity of a stack.
StackSummary
    Entry returned by a stack listing.
ResourceState
    One resource of a snapshot as stored by the backend.
StackSnapshot
    The resources of a stack's latest deployment.
ResourceRecord
    A resource flattened together with the stack it belongs to.
InventoryService
    Abstract base class for backends.
StackHandle
    Abstract base class for a fetched stack.
HasIdentity
    Capability mixin for handles that can report their identity.

Example
-------
>>> class MyBackend(InventoryService):
...     def list_stacks(self, organization=None, project=None):
...         return [StackSummary("acme/web/prod")]
...
...     def get_stack(self, name):
...         return MyStack(name)

See Also
--------
cosmic.backends : Concrete backend implementations.
cosmic.core.collector : Consumer of this interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from cosmic.core.exceptions import CapabilityError

# Module logger
logger = logging.getLogger(__name__)

# [stack, resourceType, name, prop1, prop2, ...]
ReportRow = Tuple[str, ...]

URN_NAME_DELIMITER = "::"


@dataclass(frozen=True)
class StackIdentity:
    """
    Fully qualified identity of a stack.

    Parameters
    ----------
    owner : str
        Organization (or user) that owns the stack.
    project : str
        Project name.
    stack : str
        Stack name within the project.
    """

    owner: str
    project: str
    stack: str

    @property
    def qualified_name(self) -> str:
        return f"{self.owner}/{self.project}/{self.stack}"

    @classmethod
    def parse(cls, name: str, default_owner: str = "") -> StackIdentity:
        """
        Build an identity from ``owner/project/stack`` or ``project/stack``.

        Raises
        ------
        ValueError
            If ``name`` does not have two or three ``/`` separated parts.
        """
        parts = name.split("/")
        if len(parts) == 3:
            return cls(*parts)
        if len(parts) == 2:
            return cls(default_owner, parts[0], parts[1])
        raise ValueError(f"not a stack reference: {name!r}")

    def __str__(self) -> str:
        return self.qualified_name


@dataclass(frozen=True)
class StackSummary:
    """A stack as returned by :meth:`InventoryService.list_stacks`."""

    name: str
    last_update: Optional[int] = None
    resource_count: Optional[int] = None


@dataclass(frozen=True)
class ResourceState:
    """
    A single resource from a stack snapshot.

    Parameters
    ----------
    type : str
        Resource type token, usually ``provider:module:Name``.
    urn : str
        Resource URN. The resource name is its last ``::`` segment.
    outputs : dict
        Output properties of the resource.
    """

    type: str
    urn: str
    outputs: Dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.urn.rsplit(URN_NAME_DELIMITER, 1)[-1]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ResourceState:
        """Create from a checkpoint/export resource entry."""
        return cls(
            type=data.get("type", ""),
            urn=data.get("urn", ""),
            outputs=data.get("outputs") or {},
        )


@dataclass
class StackSnapshot:
    """
    The resources recorded in a stack's latest deployment.

    ``resources`` may contain ``None`` entries; consumers skip them.
    """

    resources: List[Optional[ResourceState]] = field(default_factory=list)

    @classmethod
    def from_deployment(cls, deployment: Optional[Dict[str, Any]]) -> StackSnapshot:
        """
        Create from a deployment document (``{"resources": [...]}``).

        Parameters
        ----------
        deployment : dict or None
            The ``deployment`` of a stack export or the ``latest`` of a
            checkpoint. ``None`` means the stack was never deployed.
        """
        if not deployment:
            return cls()
        return cls(
            resources=[
                ResourceState.from_dict(r) if r is not None else None
                for r in deployment.get("resources") or []
            ]
        )

    def __len__(self) -> int:
        return len(self.resources)


@dataclass(frozen=True)
class ResourceRecord:
    """A resource flattened together with the identity of its stack."""

    stack: StackIdentity
    type_string: str
    name: str
    outputs: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_state(cls, stack: StackIdentity, state: ResourceState) -> ResourceRecord:
        return cls(stack=stack, type_string=state.type, name=state.name, outputs=state.outputs)


class HasIdentity(ABC):
    """
    Capability of a stack handle that knows its own identity.

    Not every backend's stack handle can answer this cheaply. Handles
    that can mix this class in; the collector refuses the rest with a
    :class:`~cosmic.core.exceptions.CapabilityError`.
    """

    @abstractmethod
    def identity(self) -> StackIdentity:
        """Return the ``owner/project/stack`` identity of the stack."""


class StackHandle(ABC):
    """A stack fetched from a backend."""

    @abstractmethod
    def snapshot(self) -> StackSnapshot:
        """
        Fetch the stack's latest snapshot.

        Raises
        ------
        StackFetchError
            If the snapshot cannot be read.
        """


def require_identity(handle: StackHandle) -> StackIdentity:
    """
    Return the identity of ``handle``.

    Raises
    ------
    CapabilityError
        If the handle does not implement :class:`HasIdentity`.
    """
    if not isinstance(handle, HasIdentity):
        raise CapabilityError("HasIdentity", handle)
    return handle.identity()


class InventoryService(ABC):
    """
    Abstract base class for stack inventory backends.

    Implementations must be safe to call from several threads at once:
    the collector fetches stacks in parallel.

    Methods
    -------
    list_stacks(organization=None, project=None)
        List visible stacks, optionally filtered server-side.
    get_stack(name)
        Fetch a single stack handle by its listed name.
    """

    @abstractmethod
    def list_stacks(
        self,
        organization: Optional[str] = None,
        project: Optional[str] = None,
    ) -> List[StackSummary]:
        """
        List the stacks visible to the caller.

        Parameters
        ----------
        organization : str, optional
            Only return stacks owned by this organization.
        project : str, optional
            Only return stacks of this project.

        Returns
        -------
        list of StackSummary
            The visible stacks, in no particular order.

        Raises
        ------
        InventoryError
            If the listing fails.
        """

    @abstractmethod
    def get_stack(self, name: str) -> StackHandle:
        """
        Fetch a stack by the name reported in its :class:`StackSummary`.

        Raises
        ------
        StackFetchError
            If the stack cannot be fetched.
        """

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
