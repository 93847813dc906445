"""
S3 State Backend
================

Inventory backend for self-managed Pulumi state kept in an S3 bucket
(``pulumi login s3://bucket/prefix``).

Checkpoints are stored under::

    <prefix>/.pulumi/stacks/<project>/<stack>.json[.gz]

Self-managed state has no organizations; every stack is owned by the
fixed owner ``organization``, as the Pulumi CLI reports it.

Example
-------
>>> from cosmic.backends.s3_state import S3StateBackend
>>>
>>> backend = S3StateBackend("s3://acme-pulumi-state/infra")
>>> for summary in backend.list_stacks(project="web"):
...     print(summary.name)
organization/web/prod
"""

from __future__ import annotations

import gzip
import json
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from botocore.exceptions import BotoCoreError, ClientError

from cosmic.core.aws_client import AWSClient, translate_error
from cosmic.core.exceptions import BackendError, StackFetchError
from cosmic.core.inventory import (
    HasIdentity,
    InventoryService,
    StackHandle,
    StackIdentity,
    StackSnapshot,
    StackSummary,
)

# Module logger
logger = logging.getLogger(__name__)

STATE_OWNER = "organization"
STACKS_DIR = ".pulumi/stacks/"
CHECKPOINT_SUFFIXES = (".json.gz", ".json")
MISSING_KEY_CODES = ("404", "NoSuchKey", "NotFound")


def parse_s3_url(url: str) -> Tuple[str, str]:
    """
    Split ``s3://bucket/prefix`` into ``(bucket, key_prefix)``.

    The key prefix is empty or ends with ``/``.

    >>> parse_s3_url("s3://acme-state/infra")
    ('acme-state', 'infra/')
    """
    parsed = urlparse(url)
    if parsed.scheme != "s3" or not parsed.netloc:
        raise BackendError(f"not an s3 backend URL: {url!r}", backend=url)
    prefix = parsed.path.strip("/")
    return parsed.netloc, f"{prefix}/" if prefix else ""


def split_checkpoint_key(key: str, stacks_prefix: str) -> Optional[Tuple[str, str]]:
    """
    Return ``(project, stack)`` for a checkpoint object key.

    Backups, history files and keys outside the project layout yield
    ``None``.
    """
    if not key.startswith(stacks_prefix):
        return None
    relative = key[len(stacks_prefix):]
    parts = relative.split("/")
    if len(parts) != 2:
        return None
    project, filename = parts
    for suffix in CHECKPOINT_SUFFIXES:
        if filename.endswith(suffix):
            return project, filename[: -len(suffix)]
    return None


class S3Stack(StackHandle, HasIdentity):
    """A stack stored as a checkpoint object in S3."""

    def __init__(self, backend: S3StateBackend, identity: StackIdentity, key: str) -> None:
        self._backend = backend
        self._identity = identity
        self.key = key

    def identity(self) -> StackIdentity:
        return self._identity

    def snapshot(self) -> StackSnapshot:
        document = self._backend._read_checkpoint(self.key, self._identity.qualified_name)
        checkpoint = document.get("checkpoint") or {}
        return StackSnapshot.from_deployment(checkpoint.get("latest"))

    def __repr__(self) -> str:
        return f"S3Stack({self._identity.qualified_name!r})"


class S3StateBackend(InventoryService):
    """
    Inventory backend over a Pulumi state bucket.

    Parameters
    ----------
    url : str
        ``s3://bucket[/prefix]`` backend URL.
    client : AWSClient, optional
        AWS client wrapper. Created with defaults when omitted.

    Raises
    ------
    BackendError
        If ``url`` is not an ``s3://`` URL.
    """

    def __init__(self, url: str, client: Optional[AWSClient] = None) -> None:
        self.url = url
        self.bucket, self.prefix = parse_s3_url(url)
        self.stacks_prefix = f"{self.prefix}{STACKS_DIR}"
        self.client = client or AWSClient()
        self._keys: Dict[str, str] = {}
        self._lock = threading.Lock()
        logger.debug(f"Initialized S3StateBackend for bucket {self.bucket}")

    def _checkpoint_keys(self, project: Optional[str]) -> List[str]:
        prefix = self.stacks_prefix
        if project:
            prefix += f"{project}/"

        s3 = self.client.get_s3_client()
        paginator = s3.get_paginator("list_objects_v2")
        keys = []
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (BotoCoreError, ClientError) as e:
            raise translate_error(e, "error listing stacks", backend=self.url) from e
        return keys

    def list_stacks(
        self,
        organization: Optional[str] = None,
        project: Optional[str] = None,
    ) -> List[StackSummary]:
        if organization and organization != STATE_OWNER:
            logger.debug(f"No stacks owned by {organization} in self-managed state")
            return []

        found: Dict[str, str] = {}
        for key in self._checkpoint_keys(project):
            split = split_checkpoint_key(key, self.stacks_prefix)
            if split is None:
                continue
            name = "/".join((STATE_OWNER,) + split)
            # compressed checkpoints win over plain ones
            if name not in found or key.endswith(".gz"):
                found[name] = key

        with self._lock:
            self._keys.update(found)

        stacks = [StackSummary(name=name) for name in found]

        logger.debug(f"Found {len(stacks)} checkpoints in s3://{self.bucket}/{self.stacks_prefix}")
        return stacks

    def _read_checkpoint(self, key: str, stack: str) -> Dict[str, Any]:
        s3 = self.client.get_s3_client()
        try:
            body = s3.get_object(Bucket=self.bucket, Key=key)["Body"].read()
        except (BotoCoreError, ClientError) as e:
            raise translate_error(
                e, "error reading checkpoint", backend=self.url, stack=stack,
                error_cls=StackFetchError,
            ) from e

        if key.endswith(".gz"):
            body = gzip.decompress(body)
        try:
            return json.loads(body)
        except ValueError as e:
            raise StackFetchError(
                f"invalid checkpoint {key}: {e}", backend=self.url, stack=stack
            ) from e

    def _find_key(self, identity: StackIdentity) -> str:
        with self._lock:
            key = self._keys.get(identity.qualified_name)
        if key is not None:
            return key

        base = f"{self.stacks_prefix}{identity.project}/{identity.stack}"
        s3 = self.client.get_s3_client()
        for suffix in CHECKPOINT_SUFFIXES:
            try:
                s3.head_object(Bucket=self.bucket, Key=base + suffix)
            except (BotoCoreError, ClientError) as e:
                code = e.response.get("Error", {}).get("Code") if isinstance(e, ClientError) else None
                if code in MISSING_KEY_CODES:
                    continue
                raise translate_error(
                    e, "error retrieving stack", backend=self.url,
                    stack=identity.qualified_name, error_cls=StackFetchError,
                ) from e
            return base + suffix
        raise StackFetchError(
            "error retrieving stack: no checkpoint found",
            backend=self.url,
            stack=identity.qualified_name,
        )

    def get_stack(self, name: str) -> S3Stack:
        try:
            identity = StackIdentity.parse(name, default_owner=STATE_OWNER)
        except ValueError as e:
            raise StackFetchError(str(e), backend=self.url, stack=name) from e
        if identity.owner != STATE_OWNER:
            raise StackFetchError(
                f"error retrieving stack: unknown owner {identity.owner!r}",
                backend=self.url,
                stack=name,
            )
        return S3Stack(self, identity, self._find_key(identity))

    def __repr__(self) -> str:
        return f"S3StateBackend(url={self.url!r})"
