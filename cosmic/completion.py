"""
Shell completion for ``cosmic get`` tokens.

Resource types and their output properties are suggested from the
provider's published Pulumi schema, downloaded on every completion
request.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

import requests
from click.shell_completion import CompletionItem

from cosmic.query.parser import RESOURCE_TYPE_DELIMITER

# Module logger
logger = logging.getLogger(__name__)

SCHEMA_URL = (
    "https://raw.githubusercontent.com/pulumi/pulumi-{provider}/master/"
    "provider/cmd/pulumi-resource-{provider}/schema.json"
)
SCHEMA_TIMEOUT = 10


def schema_url(provider: str) -> str:
    return SCHEMA_URL.format(provider=provider)


def fetch_schema(provider: str, timeout: int = SCHEMA_TIMEOUT) -> Dict[str, Any]:
    """
    Download the schema of ``provider``.

    Raises
    ------
    requests.RequestException
        If the download fails or the answer is not a success.
    ValueError
        If the body is not JSON.
    """
    response = requests.get(schema_url(provider), timeout=timeout)
    response.raise_for_status()
    return response.json()


def suggest_resource_types(incomplete: str) -> List[str]:
    """Resource types of the provider named in ``incomplete`` that start with it."""
    provider = incomplete.split(RESOURCE_TYPE_DELIMITER)[0]
    try:
        schema = fetch_schema(provider)
    except (requests.RequestException, ValueError) as e:
        logger.debug(f"No schema for provider {provider}: {e}")
        return []
    resources = schema.get("resources") or {}
    return sorted(t for t in resources if t.startswith(incomplete))


def suggest_resource_properties(resource_type: str, incomplete: str = "") -> List[str]:
    """Properties of ``resource_type`` that start with ``incomplete``."""
    provider = resource_type.split(RESOURCE_TYPE_DELIMITER)[0]
    try:
        schema = fetch_schema(provider)
    except (requests.RequestException, ValueError) as e:
        logger.debug(f"No schema for provider {provider}: {e}")
        return []
    resource = (schema.get("resources") or {}).get(resource_type) or {}
    properties = resource.get("properties") or {}
    return sorted(p for p in properties if p.startswith(incomplete))


def suggest_tokens(previous: Sequence[str], incomplete: str) -> List[str]:
    """
    Suggestions for the next ``cosmic get`` token.

    Once a resource type has been typed, its properties are offered.
    Before that, a token containing ``:`` is completed as a resource type.
    """
    resource_type = next((t for t in previous if RESOURCE_TYPE_DELIMITER in t), "")
    if resource_type:
        return suggest_resource_properties(resource_type, incomplete)
    if RESOURCE_TYPE_DELIMITER in incomplete:
        return suggest_resource_types(incomplete)
    return []


def complete_tokens(ctx, param, incomplete: str) -> List[CompletionItem]:
    """click ``shell_complete`` callback for the ``TOKENS`` argument."""
    previous = ctx.params.get(param.name) or ()
    return [CompletionItem(s) for s in suggest_tokens(previous, incomplete)]
