"""
Bridge to alembic autogenerate.

alembic produces the generic relational operations (tables, columns, indexes, foreign keys); the
TimescaleDB side is read from annotations that models attach to SQLAlchemy metadata:

    Table("metrics", metadata, ..., info={HYPERTABLE_KEY: HypertableSpec("ts")})
    metadata.info[CONTINUOUS_AGGREGATES_KEY] = [ViewModel("metrics_hourly", continuous_aggregate=...)]
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from alembic.autogenerate import produce_migrations
from alembic.migration import MigrationContext
from sqlalchemy import MetaData

from Planner.composer import plan_migration
from Planner.defaults import DEFAULT_SCHEMA
from Planner.models.snapshot import SchemaSnapshot, TableModel, ViewModel

logger = logging.getLogger(__name__)

HYPERTABLE_KEY = "timescaledb_hypertable"
REORDER_POLICY_KEY = "timescaledb_reorder_policy"
CONTINUOUS_AGGREGATES_KEY = "timescaledb_continuous_aggregates"


# Same compare flags as the migration env, so the baseline matches a regular autogenerate run
def baseline_operations(connection: Any, target_metadata: MetaData) -> List[Any]:
    context = MigrationContext.configure(
        connection=connection,
        opts={"compare_type": True, "compare_server_default": True},
    )
    script = produce_migrations(context, target_metadata)
    ops = list(script.upgrade_ops.ops)
    logger.debug("autogen.baseline: ops=%d", len(ops))
    return ops


def snapshot_from_metadata(metadata: MetaData) -> SchemaSnapshot:
    tables = []
    for table in metadata.tables.values():
        tables.append(
            TableModel(
                name=table.name,
                schema=table.schema or DEFAULT_SCHEMA,
                hypertable=table.info.get(HYPERTABLE_KEY),
                reorder_policy=table.info.get(REORDER_POLICY_KEY),
            )
        )
    views = []
    for view in metadata.info.get(CONTINUOUS_AGGREGATES_KEY, ()):
        if not isinstance(view, ViewModel):
            raise TypeError(f"{CONTINUOUS_AGGREGATES_KEY} entries must be ViewModel, got {type(view).__name__}")
        views.append(view)
    return SchemaSnapshot(tables=tables, views=views)


def plan_from_metadata(
    connection: Any, old_snapshot: Optional[SchemaSnapshot], target_metadata: MetaData
) -> List[Any]:
    baseline = baseline_operations(connection, target_metadata)
    return plan_migration(baseline, old_snapshot, snapshot_from_metadata(target_metadata))
