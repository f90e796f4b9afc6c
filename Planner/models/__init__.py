# Snapshot value objects shared by the differs, the catalog extractors and the alembic adapter.

from .specs import (  # noqa: F401
    AggregateFunction,
    AggregateFunctionType,
    ContinuousAggregatePolicySpec,
    ContinuousAggregateSpec,
    Dimension,
    DimensionType,
    HypertableSpec,
    ReorderPolicySpec,
)
from .snapshot import SchemaSnapshot, TableModel, ViewModel  # noqa: F401
