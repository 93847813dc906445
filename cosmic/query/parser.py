"""
Query Parser Module
===================

Turns raw ``cosmic get`` tokens into a structured :class:`Query` and the
list of :class:`Prop` output columns.

The grammar is deliberately terse. A token is told apart only by how many
colons and slashes it contains:

- ``provider:``, ``provider:module``, ``provider:module/prefix/``,
  ``provider:module:Resource`` are resource-type queries (1-2 colons).
- ``org/``, ``org/project``, ``org/project/stack`` are stack-reference
  queries (no colon, 1-2 slashes).
- Anything else, including tokens containing ``,`` or ``=``, names an
  output property.

Example
-------
>>> from cosmic.query.parser import parse_args
>>>
>>> query, props = parse_args(["aws:s3/", "acme/web/", "arn"])
>>> query.resource_type.module_prefix
's3/'
>>> query.stack_reference.project
'web'
>>> [p.name for p in props]
['arn']

Notes
-----
The heuristic is lossy: ``a/b:c/d:d/f`` is accepted as a resource-type
query with provider ``a/b``. That behaviour is kept on purpose so that
existing command lines keep meaning the same thing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from cosmic.core.exceptions import TooManyQueryStringsError

# Characters that can never appear in a query string
QUERY_STRING_BLACKLIST = (",", "=")

RESOURCE_TYPE_DELIMITER = ":"
STACK_REFERENCE_DELIMITER = "/"

MAX_QUERY_STRINGS = 2


@dataclass(frozen=True)
class StackReferenceFilter:
    """
    Filter on a stack's ``org/project/stack`` identity.

    Empty fields impose no constraint.
    """

    org: str = ""
    project: str = ""
    stack: str = ""

    @property
    def is_active(self) -> bool:
        return bool(self.org or self.project or self.stack)


@dataclass(frozen=True)
class ResourceTypeFilter:
    """
    Filter on a resource's ``provider:module:name`` type.

    ``module`` is an exact match on the module path, ``module_prefix`` a
    prefix match. Only one of the two is ever set by the parser.
    """

    provider: str = ""
    module: str = ""
    module_prefix: str = ""
    resource: str = ""

    @property
    def is_active(self) -> bool:
        return bool(self.provider or self.module or self.module_prefix or self.resource)


@dataclass(frozen=True)
class Query:
    """Stack-reference and resource-type filters for one invocation."""

    stack_reference: StackReferenceFilter = field(default_factory=StackReferenceFilter)
    resource_type: ResourceTypeFilter = field(default_factory=ResourceTypeFilter)

    def to_dict(self) -> dict:
        return {
            "stack_reference": {
                "org": self.stack_reference.org,
                "project": self.stack_reference.project,
                "stack": self.stack_reference.stack,
            },
            "resource_type": {
                "provider": self.resource_type.provider,
                "module": self.resource_type.module,
                "module_prefix": self.resource_type.module_prefix,
                "resource": self.resource_type.resource,
            },
        }


@dataclass(frozen=True)
class Cond:
    """
    Comparison attached to a property.

    Reserved for predicate-based property filtering. The pipeline does
    not evaluate it yet.
    """

    operator: str = ""
    args: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Prop:
    """An output column: the name of a resource output to display."""

    name: str
    cond: Cond = field(default_factory=Cond)


def is_resource_type(token: str) -> bool:
    """Return True if ``token`` should be parsed as a resource type."""
    return token.count(RESOURCE_TYPE_DELIMITER) > 0


def is_query_string(token: str) -> bool:
    """
    Classify a token as a query string or a property name.

    Parameters
    ----------
    token : str
        A single command line token.

    Returns
    -------
    bool
        True for resource-type and stack-reference queries.

    Examples
    --------
    >>> is_query_string("aws:")
    True
    >>> is_query_string("org/project/stack")
    True
    >>> is_query_string("aws")
    False
    >>> is_query_string("aws,org/project/stack")
    False
    """
    if any(c in token for c in QUERY_STRING_BLACKLIST):
        return False

    num_colons = token.count(RESOURCE_TYPE_DELIMITER)
    if 0 < num_colons <= 2:
        # provider:, provider:path/to/module, provider:path/prefix/,
        # provider:path/to/module:Name
        return True
    if num_colons > 0:
        return False

    # org/, org/project, org/project/stack
    num_slashes = token.count(STACK_REFERENCE_DELIMITER)
    return 0 < num_slashes <= 2


def parse_query(token: str) -> Query:
    """
    Parse a single query string into a :class:`Query`.

    Only one of the two filters of the returned query is populated,
    depending on whether the token looks like a resource type.

    Parameters
    ----------
    token : str
        A token for which :func:`is_query_string` is true.

    Returns
    -------
    Query
        Query with either the resource-type or stack-reference filter set.

    Examples
    --------
    >>> parse_query("aws:s3/bucket:Bucket").resource_type
    ResourceTypeFilter(provider='aws', module='s3/bucket', module_prefix='', resource='Bucket')
    >>> parse_query("aws:ec2/").resource_type.module_prefix
    'ec2/'
    >>> parse_query("acme/web").stack_reference
    StackReferenceFilter(org='acme', project='web', stack='')
    """
    if is_resource_type(token):
        parts = token.split(RESOURCE_TYPE_DELIMITER)
        if len(parts) > 3:
            return Query()

        provider = parts[0]
        module = module_prefix = resource = ""
        if len(parts) >= 2:
            if parts[1].endswith(STACK_REFERENCE_DELIMITER):
                module_prefix = parts[1]
            else:
                module = parts[1]
        if len(parts) == 3:
            resource = parts[2]

        return Query(
            resource_type=ResourceTypeFilter(
                provider=provider,
                module=module,
                module_prefix=module_prefix,
                resource=resource,
            )
        )

    parts = token.split(STACK_REFERENCE_DELIMITER)
    if len(parts) > 3:
        return Query()
    parts += [""] * (3 - len(parts))
    return Query(
        stack_reference=StackReferenceFilter(org=parts[0], project=parts[1], stack=parts[2])
    )


def parse_prop(token: str) -> Prop:
    """Parse a property token. Only the bare name is supported today."""
    return Prop(name=token)


def parse_args(tokens: Iterable[str]) -> Tuple[Query, Tuple[Prop, ...]]:
    """
    Split command line tokens into a query and output properties.

    The last resource-type token and the last stack-reference token win.
    Tokens that are not query strings become properties, even when they
    look malformed.

    Parameters
    ----------
    tokens : iterable of str
        Positional arguments of ``cosmic get``.

    Returns
    -------
    tuple of (Query, tuple of Prop)
        The combined query and the requested properties, in order.

    Raises
    ------
    TooManyQueryStringsError
        If more than two query strings were given. Callers that want to
        keep going fall back to an empty ``Query()`` and no properties.

    Example
    -------
    >>> query, props = parse_args(["acme/", "aws:s3/bucket:Bucket", "bucket"])
    >>> query.stack_reference.org, query.resource_type.resource
    ('acme', 'Bucket')
    """
    stack_reference = StackReferenceFilter()
    resource_type = ResourceTypeFilter()
    props: List[Prop] = []
    query_strings: List[str] = []

    for token in tokens:
        if not is_query_string(token):
            props.append(parse_prop(token))
            continue

        current = parse_query(token)
        if current.resource_type.is_active:
            resource_type = current.resource_type
            query_strings.append(token)
        if current.stack_reference.is_active:
            stack_reference = current.stack_reference
            query_strings.append(token)

    if len(query_strings) > MAX_QUERY_STRINGS:
        raise TooManyQueryStringsError(query_strings)

    return Query(stack_reference=stack_reference, resource_type=resource_type), tuple(props)
