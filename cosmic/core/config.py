"""
Configuration Module
====================

Runtime settings for Cosmic and the rules for filling them in from the
environment and the Pulumi credentials file.

Resolution order (first hit wins):

1. Explicit CLI options.
2. Environment variables (``PULUMI_BACKEND_URL``, ``PULUMI_ACCESS_TOKEN``,
   ``COSMIC_MAX_WORKERS``, ``COSMIC_TIMEOUT``, ``AWS_PROFILE``,
   ``AWS_REGION``).
3. ``~/.pulumi/credentials.json`` (current backend and its token).
4. Defaults below.

Example
-------
>>> from cosmic.core.config import Settings
>>>
>>> settings = Settings.from_env()
>>> settings = settings.merge(max_workers=8)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

# Module logger
logger = logging.getLogger(__name__)

DEFAULT_BACKEND_URL = "https://api.pulumi.com"
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_RETRIES = 3

ENV_BACKEND_URL = "PULUMI_BACKEND_URL"
ENV_ACCESS_TOKEN = "PULUMI_ACCESS_TOKEN"
ENV_PULUMI_HOME = "PULUMI_HOME"
ENV_MAX_WORKERS = "COSMIC_MAX_WORKERS"
ENV_TIMEOUT = "COSMIC_TIMEOUT"


def default_credentials_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return the path of the Pulumi credentials file."""
    environ = os.environ if environ is None else environ
    home = environ.get(ENV_PULUMI_HOME)
    if home:
        return Path(home) / "credentials.json"
    return Path.home() / ".pulumi" / "credentials.json"


def load_credentials(path: Path) -> Dict[str, Any]:
    """
    Read a Pulumi ``credentials.json`` file.

    A missing or unreadable file yields an empty mapping; the caller
    decides whether a token is required.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable credentials file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _int_or_none(value: Optional[str], name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        number = int(value)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, value)
        return None
    if number < 1:
        logger.warning("Ignoring non-positive %s=%r", name, value)
        return None
    return number


@dataclass(frozen=True)
class Settings:
    """
    Settings shared by the CLI, the collector and the backends.

    Parameters
    ----------
    backend_url : str
        ``https://`` URL of a Pulumi service, or ``s3://bucket/prefix`` of a
        self-managed state bucket.
    access_token : str, optional
        Token for the Pulumi service backend.
    max_workers : int, optional
        Bound on concurrent stack fetches. ``None`` runs one worker per
        stack.
    timeout : int
        Per-request timeout in seconds used by the backend transports.
    max_retries : int
        botocore retry attempts for the S3 backend.
    aws_profile : str, optional
        AWS profile for the S3 backend.
    aws_region : str, optional
        AWS region for the S3 backend.
    """

    backend_url: str = DEFAULT_BACKEND_URL
    access_token: Optional[str] = field(default=None, repr=False)
    max_workers: Optional[int] = None
    timeout: int = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    aws_profile: Optional[str] = None
    aws_region: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
        if self.timeout < 1:
            raise ValueError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        credentials_path: Optional[Path] = None,
    ) -> Settings:
        """
        Build settings from environment variables and the credentials file.

        Parameters
        ----------
        environ : mapping, optional
            Environment to read. Defaults to ``os.environ``.
        credentials_path : Path, optional
            Credentials file to read. Defaults to
            :func:`default_credentials_path`.

        Returns
        -------
        Settings
            Resolved settings.
        """
        environ = os.environ if environ is None else environ
        credentials = load_credentials(credentials_path or default_credentials_path(environ))

        backend_url = (
            environ.get(ENV_BACKEND_URL)
            or credentials.get("current")
            or DEFAULT_BACKEND_URL
        ).rstrip("/")

        access_token = environ.get(ENV_ACCESS_TOKEN)
        if not access_token:
            tokens = credentials.get("accessTokens") or {}
            access_token = tokens.get(backend_url) or tokens.get(backend_url + "/")

        timeout = _int_or_none(environ.get(ENV_TIMEOUT), ENV_TIMEOUT)

        return cls(
            backend_url=backend_url,
            access_token=access_token or None,
            max_workers=_int_or_none(environ.get(ENV_MAX_WORKERS), ENV_MAX_WORKERS),
            timeout=timeout or DEFAULT_TIMEOUT,
            aws_profile=environ.get("AWS_PROFILE") or None,
            aws_region=environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or None,
        )

    def merge(self, **overrides: Any) -> Settings:
        """Return a copy with every non-``None`` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
