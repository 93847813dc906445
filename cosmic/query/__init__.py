"""
Query Grammar
=============

Parsing of ``cosmic get`` tokens and the predicates applied to stacks and
resources.

Modules
-------
parser
    Token classification and :class:`Query` / :class:`Prop` construction.
matcher
    Pure stack and resource predicates.
"""

from cosmic.query.matcher import matches_resource, matches_stack, split_resource_type
from cosmic.query.parser import (
    Cond,
    Prop,
    Query,
    ResourceTypeFilter,
    StackReferenceFilter,
    is_query_string,
    parse_args,
    parse_prop,
    parse_query,
)

__all__ = [
    "Cond",
    "Prop",
    "Query",
    "ResourceTypeFilter",
    "StackReferenceFilter",
    "is_query_string",
    "parse_args",
    "parse_prop",
    "parse_query",
    "matches_resource",
    "matches_stack",
    "split_resource_type",
]
