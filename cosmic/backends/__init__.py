"""
Inventory Backends
==================

Concrete :class:`~cosmic.core.inventory.InventoryService` implementations.

Modules
-------
service
    Pulumi service REST API (``https://``).
s3_state
    Self-managed state in an S3 bucket (``s3://``).
"""

import logging

from cosmic.backends.s3_state import S3StateBackend
from cosmic.backends.service import ServiceBackend
from cosmic.core.aws_client import AWSClient
from cosmic.core.config import Settings
from cosmic.core.exceptions import BackendError
from cosmic.core.inventory import InventoryService

# Module logger
logger = logging.getLogger(__name__)


def open_backend(settings: Settings) -> InventoryService:
    """
    Create the backend matching ``settings.backend_url``.

    Raises
    ------
    BackendError
        If the URL scheme is not supported.
    CredentialsError
        If the service backend has no access token.
    """
    url = settings.backend_url
    if url.startswith(("https://", "http://")):
        logger.info(f"Using Pulumi service backend {url}")
        return ServiceBackend(url, settings.access_token, timeout=settings.timeout)

    if url.startswith("s3://"):
        logger.info(f"Using S3 state backend {url}")
        client = AWSClient(
            region=settings.aws_region,
            profile=settings.aws_profile,
            max_retries=settings.max_retries,
            timeout=settings.timeout,
        )
        return S3StateBackend(url, client=client)

    raise BackendError(
        f"Unsupported backend URL: {url}",
        backend=url,
        details={"hint": "Use an https:// service URL or an s3:// state bucket"},
    )


__all__ = ["S3StateBackend", "ServiceBackend", "open_backend"]
