"""
Operation composer.

Feature operations are interleaved with the generic relational operations produced upstream (alembic
autogenerate) by a single stable sort on priority. Baseline operations count as priority 0, so
everything that tears down TimescaleDB objects runs before the generic changes and everything that
builds on tables runs after them. Ties keep their input order: baseline operations first in the
order alembic emitted them, then feature operations in differ order.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence

from Planner.differs import (
    diff_continuous_aggregate_policies,
    diff_continuous_aggregates,
    diff_hypertables,
    diff_reorder_policies,
)
from Planner.models.snapshot import SchemaSnapshot
from Planner.operations import BASELINE_PRIORITY, Operation

logger = logging.getLogger(__name__)

# Hypertables first so the reorder and aggregate differs see tables that are already converted
FEATURE_DIFFERS = (
    diff_hypertables,
    diff_reorder_policies,
    diff_continuous_aggregates,
    diff_continuous_aggregate_policies,
)


def operation_priority(op: Any) -> int:
    return getattr(op, "priority", BASELINE_PRIORITY)


def diff_features(old: Optional[SchemaSnapshot], new: Optional[SchemaSnapshot]) -> List[Operation]:
    operations: List[Operation] = []
    for differ in FEATURE_DIFFERS:
        operations.extend(differ(old, new))
    return operations


def plan(baseline_ops: Iterable[Any], feature_ops: Sequence[Operation]) -> List[Any]:
    baseline = list(baseline_ops)
    # sorted() is stable; equal priorities never swap
    ordered = sorted(baseline + list(feature_ops), key=operation_priority)
    logger.info("plan.compose: baseline=%d feature=%d total=%d", len(baseline), len(feature_ops), len(ordered))
    return ordered


# Full pipeline for callers that already hold the baseline list and both snapshots
def plan_migration(
    baseline_ops: Iterable[Any], old: Optional[SchemaSnapshot], new: Optional[SchemaSnapshot]
) -> List[Any]:
    return plan(baseline_ops, diff_features(old, new))
