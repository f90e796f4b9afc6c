from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from Planner.defaults import DEFAULT_SCHEMA
from Planner.models.specs import (
    ContinuousAggregatePolicySpec,
    ContinuousAggregateSpec,
    HypertableSpec,
    ReorderPolicySpec,
)

TableKey = Tuple[str, str]
ReorderPolicyKey = Tuple[str, str, str]


# A table in the model, with whatever TimescaleDB features are attached to it
@dataclass(frozen=True)
class TableModel:
    name: str
    schema: str = DEFAULT_SCHEMA
    hypertable: Optional[HypertableSpec] = None
    reorder_policy: Optional[ReorderPolicySpec] = None

    @property
    def key(self) -> TableKey:
        return (self.schema, self.name)


# A materialized view in the model; continuous aggregates are attached here
@dataclass(frozen=True)
class ViewModel:
    name: str
    schema: str = DEFAULT_SCHEMA
    continuous_aggregate: Optional[ContinuousAggregateSpec] = None

    @property
    def key(self) -> TableKey:
        return (self.schema, self.name)


@dataclass(frozen=True)
class SchemaSnapshot:
    """
    Whole-schema state that the feature differs read.

    One snapshot describes either side of a migration. The index accessors return fresh dicts in
    declaration order, so differs emit operations in the order the model declares its objects.
    """

    tables: Tuple[TableModel, ...] = ()
    views: Tuple[ViewModel, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", tuple(self.tables))
        object.__setattr__(self, "views", tuple(self.views))

    def hypertables(self) -> Dict[TableKey, HypertableSpec]:
        return {t.key: t.hypertable for t in self.tables if t.hypertable is not None}

    def reorder_policies(self) -> Dict[ReorderPolicyKey, ReorderPolicySpec]:
        return {
            (t.schema, t.name, t.reorder_policy.index_name): t.reorder_policy
            for t in self.tables
            if t.reorder_policy is not None
        }

    def continuous_aggregates(self) -> Dict[TableKey, ContinuousAggregateSpec]:
        return {v.key: v.continuous_aggregate for v in self.views if v.continuous_aggregate is not None}

    def continuous_aggregate_policies(self) -> Dict[TableKey, ContinuousAggregatePolicySpec]:
        return {
            key: spec.refresh_policy
            for key, spec in self.continuous_aggregates().items()
            if spec.refresh_policy is not None
        }
