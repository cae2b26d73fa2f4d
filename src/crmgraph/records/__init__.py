"""Canonical record models, normalization and flat-input mapping."""

from crmgraph.records.models import (
    ActivityFilter,
    ActivityItem,
    ActivityType,
    Company,
    Money,
    Opportunity,
    Person,
    RecordType,
    Timeline,
    micros_to_value,
    value_to_micros,
)
from crmgraph.records.normalize import normalize_record, to_activity_item

__all__ = [
    "ActivityFilter",
    "ActivityItem",
    "ActivityType",
    "Company",
    "Money",
    "Opportunity",
    "Person",
    "RecordType",
    "Timeline",
    "micros_to_value",
    "value_to_micros",
    "normalize_record",
    "to_activity_item",
]
