"""Road aggregation and SLA deadline engine."""

from rae.engine.aggregation import (
    BatchResult,
    InvalidTransitionError,
    RoadAggregationEngine,
    UnknownItemError,
    aggregate_roads,
)
from rae.engine.deadlines import DeadlineCache, add_business_days, sla_days
from rae.engine.enrichment import EnrichmentCache, LookupQueue
from rae.engine.history import VerifiedHistory, group_by_road
from rae.engine.severity import label_from_count, label_from_score, score_from_label

__all__ = [
    "BatchResult",
    "InvalidTransitionError",
    "RoadAggregationEngine",
    "UnknownItemError",
    "aggregate_roads",
    "DeadlineCache",
    "add_business_days",
    "sla_days",
    "EnrichmentCache",
    "LookupQueue",
    "VerifiedHistory",
    "group_by_road",
    "label_from_count",
    "label_from_score",
    "score_from_label",
]
