"""
Cosmic - cross-stack resource queries for Pulumi

Lists the resources of every stack a Pulumi backend knows about, filters
them by stack and resource type, and summarizes the counts.
"""

__version__ = "0.1.0"
__author__ = "Cosmic Contributors"

from cosmic.core.aggregator import UsageAggregator, UsageSummary, aggregate
from cosmic.core.collector import CollectionResult, StackCollector
from cosmic.query.parser import Prop, Query, parse_args

__all__ = [
    "CollectionResult",
    "Prop",
    "Query",
    "StackCollector",
    "UsageAggregator",
    "UsageSummary",
    "aggregate",
    "parse_args",
]
