"""
TimescaleDB schema-evolution planner.

Diffs two schema snapshots feature by feature (hypertables, reorder policies, continuous aggregates
and their refresh policies) and merges the result with alembic's generic operations into one
dependency-safe list.

Process-level setup lives in `Planner.config`: `configure_logging()` installs a root handler
(level from PLANNER_LOG_LEVEL) and `get_engine()` builds the engine `read_catalog()` falls back to
when it is called without a bind.
"""

from .composer import diff_features, operation_priority, plan, plan_migration  # noqa: F401
from .models import (  # noqa: F401
    AggregateFunction,
    AggregateFunctionType,
    ContinuousAggregatePolicySpec,
    ContinuousAggregateSpec,
    Dimension,
    DimensionType,
    HypertableSpec,
    ReorderPolicySpec,
    SchemaSnapshot,
    TableModel,
    ViewModel,
)
