"""
Query Matching
==============

Pure predicates deciding whether a stack or a resource satisfies a
:class:`~cosmic.query.parser.Query`. No I/O happens here.
"""

from __future__ import annotations

from typing import Optional, Tuple

from cosmic.core.inventory import ResourceRecord, StackIdentity
from cosmic.query.parser import RESOURCE_TYPE_DELIMITER, Query


def split_resource_type(type_string: str) -> Optional[Tuple[str, str, str]]:
    """
    Split ``provider:module:name`` into its three parts.

    Returns ``None`` for any type string that does not have exactly three
    colon separated parts (provider resources such as
    ``pulumi:providers:aws`` still qualify, stack roots like
    ``pulumi:pulumi:Stack`` too).
    """
    parts = type_string.split(RESOURCE_TYPE_DELIMITER)
    if len(parts) != 3:
        return None
    return parts[0], parts[1], parts[2]


def matches_resource(record: ResourceRecord, query: Query) -> bool:
    """Return True if ``record`` passes the query's resource-type filter."""
    parts = split_resource_type(record.type_string)
    if parts is None:
        return False
    provider, module, name = parts

    rt = query.resource_type
    if rt.provider and provider != rt.provider:
        return False
    if rt.module_prefix and not module.startswith(rt.module_prefix):
        return False
    if rt.module and module != rt.module:
        return False
    if rt.resource and name != rt.resource:
        return False
    return True


def matches_stack(identity: StackIdentity, query: Query) -> bool:
    """Return True if ``identity`` passes the query's stack-reference filter."""
    sr = query.stack_reference
    if sr.org and identity.owner != sr.org:
        return False
    if sr.project and identity.project != sr.project:
        return False
    if sr.stack and identity.stack != sr.stack:
        return False
    return True
