"""
Pulumi Service Backend
======================

Inventory backend that reads stacks from the Pulumi service REST API
(``https://api.pulumi.com`` or a self-hosted service).

Endpoints used
--------------
- ``GET /api/user/stacks?organization=&project=``: stack listing
- ``GET /api/stacks/{org}/{project}/{stack}``: stack metadata
- ``GET /api/stacks/{org}/{project}/{stack}/export``: latest deployment

Example
-------
>>> from cosmic.backends.service import ServiceBackend
>>>
>>> backend = ServiceBackend("https://api.pulumi.com", access_token="pul-...")
>>> stacks = backend.list_stacks(organization="acme")
>>> snapshot = backend.get_stack(stacks[0].name).snapshot()

Notes
-----
The listing endpoint is paginated with a ``continuationToken``. Only the
first page is read; when more pages exist a warning is logged.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from cosmic.core.exceptions import BackendError, CredentialsError, StackFetchError
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

ACCEPT_HEADER = "application/vnd.pulumi+8"
USER_AGENT = "cosmic"


class ServiceStack(StackHandle, HasIdentity):
    """
    A stack fetched from the Pulumi service.

    The snapshot is downloaded lazily on :meth:`snapshot`.
    """

    def __init__(self, backend: ServiceBackend, identity: StackIdentity) -> None:
        self._backend = backend
        self._identity = identity

    def identity(self) -> StackIdentity:
        return self._identity

    def snapshot(self) -> StackSnapshot:
        name = self._identity.qualified_name
        export = self._backend._get_json(
            f"/api/stacks/{name}/export",
            error_cls=StackFetchError,
            message="error exporting stack",
            stack=name,
        )
        return StackSnapshot.from_deployment(export.get("deployment"))

    def __repr__(self) -> str:
        return f"ServiceStack({self._identity.qualified_name!r})"


class ServiceBackend(InventoryService):
    """
    Inventory backend for the Pulumi service.

    Parameters
    ----------
    url : str
        Base URL of the service API.
    access_token : str
        Pulumi access token.
    timeout : int, default=30
        Per-request timeout in seconds.
    session : requests.Session, optional
        Session to use. A new one is created when omitted.

    Raises
    ------
    CredentialsError
        If no access token is given.
    """

    def __init__(
        self,
        url: str,
        access_token: Optional[str],
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not access_token:
            raise CredentialsError(
                "No Pulumi access token configured",
                backend=url,
                details={"hint": "Set PULUMI_ACCESS_TOKEN or run 'pulumi login'"},
            )
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"token {access_token}",
                "Accept": ACCEPT_HEADER,
                "User-Agent": USER_AGENT,
            }
        )
        logger.debug(f"Initialized ServiceBackend for {self.url}")

    def _get_json(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
        error_cls: type = BackendError,
        message: str = "request failed",
        stack: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        GET ``path`` and decode the JSON body.

        401 and 403 answers raise :class:`CredentialsError`; every other
        failure raises ``error_cls``.
        """
        url = f"{self.url}{path}"
        logger.debug(f"GET {url} params={params}")
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise error_cls(f"{message}: {e}", backend=self.url, stack=stack) from e

        if response.status_code in (401, 403):
            raise CredentialsError(
                f"{message}: access denied ({response.status_code})",
                backend=self.url,
                stack=stack,
                details={"status_code": response.status_code},
            )
        if not response.ok:
            raise error_cls(
                f"{message}: HTTP {response.status_code}",
                backend=self.url,
                stack=stack,
                details={"status_code": response.status_code},
            )

        try:
            return response.json()
        except ValueError as e:
            raise error_cls(
                f"{message}: invalid JSON response", backend=self.url, stack=stack
            ) from e

    def list_stacks(
        self,
        organization: Optional[str] = None,
        project: Optional[str] = None,
    ) -> List[StackSummary]:
        params = {}
        if organization:
            params["organization"] = organization
        if project:
            params["project"] = project

        body = self._get_json("/api/user/stacks", params=params, message="error listing stacks")
        if body.get("continuationToken"):
            logger.warning("Stack listing is paginated; only the first page was read")

        stacks = []
        for entry in body.get("stacks") or []:
            name = "/".join((entry["orgName"], entry["projectName"], entry["stackName"]))
            stacks.append(
                StackSummary(
                    name=name,
                    last_update=entry.get("lastUpdate"),
                    resource_count=entry.get("resourceCount"),
                )
            )
        return stacks

    def get_stack(self, name: str) -> ServiceStack:
        try:
            requested = StackIdentity.parse(name)
        except ValueError as e:
            raise StackFetchError(str(e), backend=self.url, stack=name) from e

        body = self._get_json(
            f"/api/stacks/{requested.qualified_name}",
            error_cls=StackFetchError,
            message="error retrieving stack",
            stack=name,
        )
        identity = StackIdentity(
            owner=body.get("orgName", requested.owner),
            project=body.get("projectName", requested.project),
            stack=body.get("stackName", requested.stack),
        )
        return ServiceStack(self, identity)

    def __repr__(self) -> str:
        return f"ServiceBackend(url={self.url!r})"
