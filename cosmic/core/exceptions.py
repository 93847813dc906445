"""
Custom Exceptions for Cosmic
============================

This module defines a hierarchy of custom exceptions used throughout
the application for consistent error handling and reporting.

Exception Hierarchy
-------------------
::

    CosmicError (base)
    ├── QueryError
    │   └── TooManyQueryStringsError
    ├── InventoryError
    │   ├── BackendError
    │   ├── CredentialsError
    │   └── StackFetchError
    └── CapabilityError

Example
-------
>>> from cosmic.core.exceptions import InventoryError, TooManyQueryStringsError
>>>
>>> try:
...     query, props = parse_args(tokens)
... except TooManyQueryStringsError as e:
...     print(e)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class CosmicError(Exception):
    """
    Base exception for all Cosmic errors.

    All custom exceptions in the application inherit from this class,
    allowing for broad exception catching when needed.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise CosmicError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Query Grammar Exceptions
# =============================================================================


class QueryError(CosmicError):
    """
    Base exception for query grammar errors.

    Raised while turning command line tokens into a query. These errors
    are reported to the user directly.
    """

    pass


class TooManyQueryStringsError(QueryError):
    """
    Raised when more than two query strings are supplied.

    Parameters
    ----------
    query_strings : sequence of str
        Every token that was recognised as a query string.

    Example
    -------
    >>> raise TooManyQueryStringsError(["aws:", "org/", "gcp:"])
    """

    def __init__(self, query_strings: Sequence[str]) -> None:
        self.query_strings: List[str] = list(query_strings)
        super().__init__(
            f"too many query strings provided: {self.query_strings}",
        )


# =============================================================================
# Inventory Exceptions
# =============================================================================


class InventoryError(CosmicError):
    """
    Base exception for inventory backend errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    backend : str, optional
        The backend URL or name that caused the error.
    stack : str, optional
        The stack being read when the error occurred.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        stack: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.backend = backend
        self.stack = stack
        full_details = details or {}
        if backend:
            full_details["backend"] = backend
        if stack:
            full_details["stack"] = stack
        super().__init__(message, full_details)


class BackendError(InventoryError):
    """
    Raised when the backend cannot be reached or answers with an error.

    Example
    -------
    >>> raise BackendError(
    ...     "Failed to list stacks",
    ...     backend="https://api.pulumi.com",
    ...     details={"status_code": 503}
    ... )
    """

    pass


class CredentialsError(InventoryError):
    """
    Raised when backend credentials are missing or rejected.

    Example
    -------
    >>> raise CredentialsError(
    ...     "No access token configured",
    ...     details={"hint": "Set PULUMI_ACCESS_TOKEN"}
    ... )
    """

    pass


class StackFetchError(InventoryError):
    """
    Raised when a single stack or its snapshot cannot be read.

    Example
    -------
    >>> raise StackFetchError(
    ...     "error retrieving stack",
    ...     stack="acme/web/prod"
    ... )
    """

    pass


# =============================================================================
# Capability Exceptions
# =============================================================================


class CapabilityError(CosmicError):
    """
    Raised when a stack handle lacks a capability the pipeline needs.

    Parameters
    ----------
    capability : str
        Name of the missing capability (e.g. ``"HasIdentity"``).
    handle : object
        The handle that was inspected.
    """

    def __init__(self, capability: str, handle: Any) -> None:
        self.capability = capability
        super().__init__(
            f"{type(handle).__name__} does not implement {capability}",
            details={"capability": capability},
        )
