from __future__ import annotations

import logging
from typing import List, Optional

from Planner.models.snapshot import SchemaSnapshot
from Planner.models.specs import ContinuousAggregateSpec
from Planner.operations import (
    AlterContinuousAggregateOp,
    CreateContinuousAggregateOp,
    DropContinuousAggregateOp,
    Operation,
)

logger = logging.getLogger(__name__)


# True when the view's physical shape differs, which TimescaleDB can only change by re-creating it
def requires_recreate(old: ContinuousAggregateSpec, new: ContinuousAggregateSpec) -> bool:
    return (
        old.source_hypertable != new.source_hypertable
        or old.time_bucket_width != new.time_bucket_width
        or old.time_bucket_source_column != new.time_bucket_source_column
        or old.time_bucket_group_by != new.time_bucket_group_by
        or old.with_no_data != new.with_no_data
        or tuple(old.aggregate_functions) != tuple(new.aggregate_functions)
        or tuple(old.group_by_columns) != tuple(new.group_by_columns)
        or old.where_clause != new.where_clause
    )


# True when only settings that ALTER MATERIALIZED VIEW can change in place differ
def requires_alter(old: ContinuousAggregateSpec, new: ContinuousAggregateSpec) -> bool:
    return (
        old.chunk_interval != new.chunk_interval
        or old.materialized_only != new.materialized_only
        or old.create_group_indexes != new.create_group_indexes
    )


def diff_continuous_aggregates(old: Optional[SchemaSnapshot], new: Optional[SchemaSnapshot]) -> List[Operation]:
    old_specs = old.continuous_aggregates() if old is not None else {}
    new_specs = new.continuous_aggregates() if new is not None else {}
    operations: List[Operation] = []

    for (schema, view), spec in new_specs.items():
        previous = old_specs.get((schema, view))
        if previous is None:
            logger.debug("diff.cagg.create: view=%s.%s source=%s", schema, view, spec.source_hypertable)
            operations.append(CreateContinuousAggregateOp.from_spec(schema, view, spec))
        elif requires_recreate(previous, spec):
            # the re-create carries every new value, so no alter is needed alongside it
            logger.debug("diff.cagg.recreate: view=%s.%s", schema, view)
            operations.append(DropContinuousAggregateOp(view_name=view, schema=schema, if_exists=True))
            operations.append(CreateContinuousAggregateOp.from_spec(schema, view, spec))
        elif requires_alter(previous, spec):
            logger.debug("diff.cagg.alter: view=%s.%s", schema, view)
            operations.append(
                AlterContinuousAggregateOp(
                    view_name=view,
                    schema=schema,
                    chunk_interval=spec.chunk_interval,
                    old_chunk_interval=previous.chunk_interval,
                    materialized_only=spec.materialized_only,
                    old_materialized_only=previous.materialized_only,
                    create_group_indexes=spec.create_group_indexes,
                    old_create_group_indexes=previous.create_group_indexes,
                )
            )

    for (schema, view) in old_specs:
        if (schema, view) not in new_specs:
            logger.debug("diff.cagg.drop: view=%s.%s", schema, view)
            operations.append(DropContinuousAggregateOp(view_name=view, schema=schema, if_exists=True))

    return operations
