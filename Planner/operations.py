"""
TimescaleDB migration operations.

Each operation is a frozen dataclass tagged with a ``kind`` and a plain integer ``priority``.
Generic relational operations (alembic's ``MigrateOperation`` objects) carry no priority and sort
as 0. Alter operations hold the full Old/New pair for every field they cover so the SQL generator
can decide exactly what to emit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from Planner import defaults
from Planner.models.specs import (
    AggregateFunction,
    ContinuousAggregatePolicySpec,
    ContinuousAggregateSpec,
    Dimension,
    HypertableSpec,
    ReorderPolicySpec,
)


class OperationKind(str, Enum):
    CREATE_HYPERTABLE = "create_hypertable"
    ALTER_HYPERTABLE = "alter_hypertable"
    CREATE_CONTINUOUS_AGGREGATE = "create_continuous_aggregate"
    ALTER_CONTINUOUS_AGGREGATE = "alter_continuous_aggregate"
    DROP_CONTINUOUS_AGGREGATE = "drop_continuous_aggregate"
    ADD_CONTINUOUS_AGGREGATE_POLICY = "add_continuous_aggregate_policy"
    REMOVE_CONTINUOUS_AGGREGATE_POLICY = "remove_continuous_aggregate_policy"
    ADD_REORDER_POLICY = "add_reorder_policy"
    ALTER_REORDER_POLICY = "alter_reorder_policy"
    REMOVE_REORDER_POLICY = "remove_reorder_policy"


BASELINE_PRIORITY = 0

# Lower runs first. Teardown sorts ahead of the generic list, set-up after it.
PRIORITIES: Dict[OperationKind, int] = {
    OperationKind.REMOVE_CONTINUOUS_AGGREGATE_POLICY: -30,
    OperationKind.DROP_CONTINUOUS_AGGREGATE: -20,
    OperationKind.REMOVE_REORDER_POLICY: -10,
    OperationKind.CREATE_HYPERTABLE: 10,
    OperationKind.ALTER_HYPERTABLE: 10,
    OperationKind.ADD_REORDER_POLICY: 20,
    OperationKind.ALTER_REORDER_POLICY: 20,
    OperationKind.CREATE_CONTINUOUS_AGGREGATE: 30,
    OperationKind.ALTER_CONTINUOUS_AGGREGATE: 30,
    OperationKind.ADD_CONTINUOUS_AGGREGATE_POLICY: 40,
}


def _tag(kind: OperationKind):
    return field(default=kind, init=False)


def _priority(kind: OperationKind):
    return field(default=PRIORITIES[kind], init=False)


# ---------------------------
# Hypertables
# ---------------------------
@dataclass(frozen=True)
class CreateHypertableOp:
    table_name: str
    schema: str
    time_column_name: str
    chunk_time_interval: str = defaults.CHUNK_TIME_INTERVAL
    enable_compression: bool = False
    migrate_data: bool = False
    chunk_skip_columns: Optional[Tuple[str, ...]] = None
    additional_dimensions: Optional[Tuple[Dimension, ...]] = None
    compression_segment_by: Optional[Tuple[str, ...]] = None
    compression_order_by: Optional[Tuple[str, ...]] = None

    kind: OperationKind = _tag(OperationKind.CREATE_HYPERTABLE)
    priority: int = _priority(OperationKind.CREATE_HYPERTABLE)

    @classmethod
    def from_spec(cls, schema: str, table_name: str, spec: HypertableSpec) -> "CreateHypertableOp":
        return cls(
            table_name=table_name,
            schema=schema,
            time_column_name=spec.time_column_name,
            chunk_time_interval=spec.chunk_time_interval or defaults.CHUNK_TIME_INTERVAL,
            enable_compression=spec.enable_compression,
            migrate_data=spec.migrate_data,
            chunk_skip_columns=spec.chunk_skip_columns,
            additional_dimensions=spec.additional_dimensions,
            compression_segment_by=spec.compression_segment_by,
            compression_order_by=spec.compression_order_by,
        )


@dataclass(frozen=True)
class AlterHypertableOp:
    table_name: str
    schema: str

    chunk_time_interval: str
    old_chunk_time_interval: str
    enable_compression: bool
    old_enable_compression: bool
    chunk_skip_columns: Optional[Tuple[str, ...]] = None
    old_chunk_skip_columns: Optional[Tuple[str, ...]] = None
    additional_dimensions: Optional[Tuple[Dimension, ...]] = None
    old_additional_dimensions: Optional[Tuple[Dimension, ...]] = None
    compression_segment_by: Optional[Tuple[str, ...]] = None
    old_compression_segment_by: Optional[Tuple[str, ...]] = None
    compression_order_by: Optional[Tuple[str, ...]] = None
    old_compression_order_by: Optional[Tuple[str, ...]] = None

    kind: OperationKind = _tag(OperationKind.ALTER_HYPERTABLE)
    priority: int = _priority(OperationKind.ALTER_HYPERTABLE)


# ---------------------------
# Continuous aggregates
# ---------------------------
@dataclass(frozen=True)
class CreateContinuousAggregateOp:
    view_name: str
    schema: str
    source_hypertable: str
    time_bucket_width: str
    time_bucket_source_column: str
    time_bucket_group_by: bool = True
    chunk_interval: Optional[str] = None
    materialized_only: bool = False
    with_no_data: bool = False
    create_group_indexes: bool = False
    aggregate_functions: Tuple[AggregateFunction, ...] = ()
    group_by_columns: Tuple[str, ...] = ()
    where_clause: Optional[str] = None

    kind: OperationKind = _tag(OperationKind.CREATE_CONTINUOUS_AGGREGATE)
    priority: int = _priority(OperationKind.CREATE_CONTINUOUS_AGGREGATE)

    @classmethod
    def from_spec(cls, schema: str, view_name: str, spec: ContinuousAggregateSpec) -> "CreateContinuousAggregateOp":
        return cls(
            view_name=view_name,
            schema=schema,
            source_hypertable=spec.source_hypertable,
            time_bucket_width=spec.time_bucket_width,
            time_bucket_source_column=spec.time_bucket_source_column,
            time_bucket_group_by=spec.time_bucket_group_by,
            chunk_interval=spec.chunk_interval,
            materialized_only=spec.materialized_only,
            with_no_data=spec.with_no_data,
            create_group_indexes=spec.create_group_indexes,
            aggregate_functions=spec.aggregate_functions,
            group_by_columns=spec.group_by_columns,
            where_clause=spec.where_clause,
        )


@dataclass(frozen=True)
class AlterContinuousAggregateOp:
    view_name: str
    schema: str
    chunk_interval: Optional[str]
    old_chunk_interval: Optional[str]
    materialized_only: bool
    old_materialized_only: bool
    create_group_indexes: bool
    old_create_group_indexes: bool

    kind: OperationKind = _tag(OperationKind.ALTER_CONTINUOUS_AGGREGATE)
    priority: int = _priority(OperationKind.ALTER_CONTINUOUS_AGGREGATE)


@dataclass(frozen=True)
class DropContinuousAggregateOp:
    view_name: str
    schema: str
    if_exists: bool = True

    kind: OperationKind = _tag(OperationKind.DROP_CONTINUOUS_AGGREGATE)
    priority: int = _priority(OperationKind.DROP_CONTINUOUS_AGGREGATE)


# ---------------------------
# Continuous aggregate refresh policies
# ---------------------------
@dataclass(frozen=True)
class AddContinuousAggregatePolicyOp:
    view_name: str
    schema: str
    start_offset: Optional[str] = None
    end_offset: Optional[str] = None
    schedule_interval: Optional[str] = None
    initial_start: Optional[datetime] = None
    timezone: Optional[str] = None
    include_tiered_data: Optional[bool] = None
    buckets_per_batch: int = defaults.REFRESH_POLICY_BUCKETS_PER_BATCH
    max_batches_per_execution: int = defaults.REFRESH_POLICY_MAX_BATCHES_PER_EXECUTION
    refresh_newest_first: bool = defaults.REFRESH_POLICY_REFRESH_NEWEST_FIRST
    if_not_exists: bool = False

    kind: OperationKind = _tag(OperationKind.ADD_CONTINUOUS_AGGREGATE_POLICY)
    priority: int = _priority(OperationKind.ADD_CONTINUOUS_AGGREGATE_POLICY)

    @classmethod
    def from_spec(
        cls, schema: str, view_name: str, spec: ContinuousAggregatePolicySpec
    ) -> "AddContinuousAggregatePolicyOp":
        return cls(
            view_name=view_name,
            schema=schema,
            start_offset=spec.start_offset,
            end_offset=spec.end_offset,
            schedule_interval=spec.schedule_interval,
            initial_start=spec.initial_start,
            timezone=spec.timezone,
            include_tiered_data=spec.include_tiered_data,
            buckets_per_batch=spec.buckets_per_batch,
            max_batches_per_execution=spec.max_batches_per_execution,
            refresh_newest_first=spec.refresh_newest_first,
            if_not_exists=spec.if_not_exists,
        )


@dataclass(frozen=True)
class RemoveContinuousAggregatePolicyOp:
    view_name: str
    schema: str
    if_exists: bool = True

    kind: OperationKind = _tag(OperationKind.REMOVE_CONTINUOUS_AGGREGATE_POLICY)
    priority: int = _priority(OperationKind.REMOVE_CONTINUOUS_AGGREGATE_POLICY)


# ---------------------------
# Reorder policies
# ---------------------------
@dataclass(frozen=True)
class AddReorderPolicyOp:
    table_name: str
    schema: str
    index_name: str
    initial_start: Optional[datetime] = None
    schedule_interval: Optional[str] = defaults.REORDER_POLICY_SCHEDULE_INTERVAL
    max_runtime: Optional[str] = None
    max_retries: Optional[int] = defaults.REORDER_POLICY_MAX_RETRIES
    retry_period: Optional[str] = defaults.REORDER_POLICY_RETRY_PERIOD

    kind: OperationKind = _tag(OperationKind.ADD_REORDER_POLICY)
    priority: int = _priority(OperationKind.ADD_REORDER_POLICY)

    @classmethod
    def from_spec(cls, schema: str, table_name: str, spec: ReorderPolicySpec) -> "AddReorderPolicyOp":
        return cls(
            table_name=table_name,
            schema=schema,
            index_name=spec.index_name,
            initial_start=spec.initial_start,
            schedule_interval=spec.schedule_interval,
            max_runtime=spec.max_runtime,
            max_retries=spec.max_retries,
            retry_period=spec.retry_period,
        )


@dataclass(frozen=True)
class AlterReorderPolicyOp:
    table_name: str
    schema: str
    index_name: str
    schedule_interval: Optional[str]
    old_schedule_interval: Optional[str]
    max_runtime: Optional[str]
    old_max_runtime: Optional[str]
    max_retries: Optional[int]
    old_max_retries: Optional[int]
    retry_period: Optional[str]
    old_retry_period: Optional[str]

    kind: OperationKind = _tag(OperationKind.ALTER_REORDER_POLICY)
    priority: int = _priority(OperationKind.ALTER_REORDER_POLICY)


@dataclass(frozen=True)
class RemoveReorderPolicyOp:
    table_name: str
    schema: str
    index_name: str
    if_exists: bool = True

    kind: OperationKind = _tag(OperationKind.REMOVE_REORDER_POLICY)
    priority: int = _priority(OperationKind.REMOVE_REORDER_POLICY)


Operation = Union[
    CreateHypertableOp,
    AlterHypertableOp,
    CreateContinuousAggregateOp,
    AlterContinuousAggregateOp,
    DropContinuousAggregateOp,
    AddContinuousAggregatePolicyOp,
    RemoveContinuousAggregatePolicyOp,
    AddReorderPolicyOp,
    AlterReorderPolicyOp,
    RemoveReorderPolicyOp,
]
