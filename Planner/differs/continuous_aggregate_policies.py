from __future__ import annotations

import logging
from typing import List, Optional

from Planner.differs.continuous_aggregates import requires_recreate
from Planner.models.snapshot import SchemaSnapshot
from Planner.models.specs import ContinuousAggregatePolicySpec
from Planner.operations import (
    AddContinuousAggregatePolicyOp,
    Operation,
    RemoveContinuousAggregatePolicyOp,
)

logger = logging.getLogger(__name__)


# if_not_exists only changes how the Add is emitted, so it is left out
def policies_equal(old: ContinuousAggregatePolicySpec, new: ContinuousAggregatePolicySpec) -> bool:
    return (
        old.start_offset == new.start_offset
        and old.end_offset == new.end_offset
        and old.schedule_interval == new.schedule_interval
        and old.initial_start == new.initial_start
        and old.timezone == new.timezone
        and old.include_tiered_data == new.include_tiered_data
        and old.buckets_per_batch == new.buckets_per_batch
        and old.max_batches_per_execution == new.max_batches_per_execution
        and old.refresh_newest_first == new.refresh_newest_first
    )


def diff_continuous_aggregate_policies(
    old: Optional[SchemaSnapshot], new: Optional[SchemaSnapshot]
) -> List[Operation]:
    """
    Refresh-policy registrations needed to move from ``old`` to ``new``.

    TimescaleDB keys these jobs by view only and has no partial update, so any change is emitted
    as Remove followed by Add. A view that gets re-created loses its jobs, so its policy is
    re-registered even when the policy itself is unchanged.
    """
    old_policies = old.continuous_aggregate_policies() if old is not None else {}
    new_policies = new.continuous_aggregate_policies() if new is not None else {}
    old_views = old.continuous_aggregates() if old is not None else {}
    new_views = new.continuous_aggregates() if new is not None else {}
    operations: List[Operation] = []

    for (schema, view), policy in new_policies.items():
        previous = old_policies.get((schema, view))
        if previous is None:
            logger.debug("diff.cagg_policy.add: view=%s.%s", schema, view)
            operations.append(AddContinuousAggregatePolicyOp.from_spec(schema, view, policy))
            continue

        # coupled to the view diff on purpose: dropping a continuous aggregate also drops its refresh job
        view_recreated = (schema, view) in old_views and requires_recreate(old_views[(schema, view)], new_views[(schema, view)])
        if policies_equal(previous, policy) and not view_recreated:
            continue

        logger.debug("diff.cagg_policy.replace: view=%s.%s view_recreated=%s", schema, view, view_recreated)
        operations.append(RemoveContinuousAggregatePolicyOp(view_name=view, schema=schema, if_exists=True))
        operations.append(AddContinuousAggregatePolicyOp.from_spec(schema, view, policy))

    for (schema, view) in old_policies:
        if (schema, view) not in new_policies:
            logger.debug("diff.cagg_policy.remove: view=%s.%s", schema, view)
            operations.append(RemoveContinuousAggregatePolicyOp(view_name=view, schema=schema, if_exists=True))

    return operations
