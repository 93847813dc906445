"""
AWS Client Module
=================

Thin boto3 wrapper used by the self-managed S3 state backend.

It owns the boto3 session and S3 client for one backend instance, applies
the retry and timeout settings, and turns botocore failures into Cosmic
inventory errors.

Classes
-------
AWSClient
    Lazily created boto3 session and S3 client.

Example
-------
>>> from cosmic.core.aws_client import AWSClient
>>>
>>> client = AWSClient(region="eu-west-1", profile="infra")
>>> s3 = client.get_s3_client()
>>> s3.list_objects_v2(Bucket="state-bucket", Prefix=".pulumi/stacks/")

Notes
-----
boto3 clients are thread-safe once created, but session creation is not.
The client is therefore created under a lock on first use and shared by
every worker thread afterwards.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    PartialCredentialsError,
    ProfileNotFound,
)

from cosmic.core.exceptions import BackendError, CredentialsError, InventoryError

# Module logger
logger = logging.getLogger(__name__)

# S3 error codes that mean the caller's credentials were refused
ACCESS_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "InvalidAccessKeyId",
        "SignatureDoesNotMatch",
        "ExpiredToken",
        "InvalidToken",
    }
)


def translate_error(
    error: Exception,
    message: str,
    backend: Optional[str] = None,
    stack: Optional[str] = None,
    error_cls: type = BackendError,
) -> InventoryError:
    """
    Map a boto3/botocore exception to a Cosmic inventory error.

    Parameters
    ----------
    error : Exception
        The exception raised by boto3.
    message : str
        Context for the error message (``"Failed to list stacks"``).
    backend : str, optional
        Backend URL for the error details.
    stack : str, optional
        Stack being read, if any.
    error_cls : type, default=BackendError
        Class used for errors that are not credential problems.

    Returns
    -------
    InventoryError
        A :class:`CredentialsError` for credential problems, otherwise an
        instance of ``error_cls``.
    """
    if isinstance(error, (NoCredentialsError, PartialCredentialsError, ProfileNotFound)):
        return CredentialsError(
            f"{message}: {error}",
            backend=backend,
            stack=stack,
            details={"hint": "Configure AWS credentials or pass --profile"},
        )

    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "Unknown")
        if code in ACCESS_ERROR_CODES:
            return CredentialsError(
                f"{message}: {code}",
                backend=backend,
                stack=stack,
                details={"error_code": code},
            )
        return error_cls(
            f"{message}: {code}",
            backend=backend,
            stack=stack,
            details={"error_code": code},
        )

    return error_cls(f"{message}: {error}", backend=backend, stack=stack)


class AWSClient:
    """
    Lazily initialised boto3 session and S3 client.

    Parameters
    ----------
    region : str, optional
        AWS region. ``None`` lets boto3 resolve it from the environment
        or profile.
    profile : str, optional
        AWS profile name from ``~/.aws/credentials``.
    max_retries : int, default=3
        botocore retry attempts (adaptive mode).
    timeout : int, default=30
        Connect and read timeout in seconds.

    Examples
    --------
    >>> with AWSClient(profile="infra") as client:
    ...     s3 = client.get_s3_client()
    """

    def __init__(
        self,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        max_retries: int = 3,
        timeout: int = 30,
    ) -> None:
        self.region = region
        self.profile = profile
        self.max_retries = max_retries
        self.timeout = timeout

        self._lock = threading.Lock()
        self._session: Optional[boto3.Session] = None
        self._s3: Any = None
        self._config = self._create_config()

        logger.debug(f"Initialized AWSClient (region={region}, profile={profile})")

    def _create_config(self) -> Config:
        return Config(
            retries={
                "max_attempts": self.max_retries,
                "mode": "adaptive",
            },
            connect_timeout=self.timeout,
            read_timeout=self.timeout,
        )

    def _create_session(self) -> boto3.Session:
        session_kwargs = {}
        if self.region:
            session_kwargs["region_name"] = self.region
        if self.profile:
            session_kwargs["profile_name"] = self.profile

        try:
            session = boto3.Session(**session_kwargs)
        except ProfileNotFound as e:
            raise CredentialsError(
                f"AWS profile '{self.profile}' not found",
                details={"hint": "Check ~/.aws/credentials for available profiles"},
            ) from e

        logger.debug(f"Created boto3 session (profile={self.profile})")
        return session

    @property
    def session(self) -> boto3.Session:
        with self._lock:
            if self._session is None:
                self._session = self._create_session()
            return self._session

    def get_s3_client(self) -> Any:
        """
        Return the shared S3 client, creating it on first use.

        Raises
        ------
        CredentialsError
            If the configured profile does not exist.
        BackendError
            If the client cannot be created.
        """
        session = self.session
        with self._lock:
            if self._s3 is None:
                try:
                    self._s3 = session.client("s3", config=self._config)
                except BotoCoreError as e:
                    raise translate_error(e, "Failed to create S3 client") from e
                logger.debug("Created s3 client")
            return self._s3

    def __enter__(self) -> AWSClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        with self._lock:
            self._s3 = None
            self._session = None

    def __repr__(self) -> str:
        return (
            f"AWSClient(region={self.region!r}, "
            f"profile={self.profile!r}, "
            f"max_retries={self.max_retries})"
        )
