from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from Planner import defaults

# NOTE:
# Specs are the already-resolved form of a model's TimescaleDB annotations: plain column names,
# interval strings and flags. Differs only ever compare these values; nothing here is validated
# beyond what a malformed dimension would make meaningless.


def _freeze(values: Optional[Iterable[Any]]) -> Optional[Tuple[Any, ...]]:
    if values is None:
        return None
    return tuple(values)


def _set_tuple(obj: Any, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, _freeze(getattr(obj, name)))


class DimensionType(str, Enum):
    HASH = "hash"
    RANGE = "range"


@dataclass(frozen=True)
class Dimension:
    """Secondary partitioning axis; identity is the column, payload is type plus its parameter."""

    column_name: str
    type: DimensionType = DimensionType.RANGE
    number_of_partitions: Optional[int] = None
    interval: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.column_name or not self.column_name.strip():
            raise ValueError("Dimension column name must be provided.")

    @classmethod
    def by_hash(cls, column_name: str, number_of_partitions: int) -> "Dimension":
        if number_of_partitions <= 0:
            raise ValueError("Number of partitions must be greater than zero.")
        return cls(column_name, DimensionType.HASH, number_of_partitions=number_of_partitions)

    @classmethod
    def by_range(cls, column_name: str, interval: str) -> "Dimension":
        if not interval or not str(interval).strip():
            raise ValueError("Interval must be provided for a range dimension.")
        return cls(column_name, DimensionType.RANGE, interval=str(interval))


@dataclass(frozen=True)
class HypertableSpec:
    time_column_name: str
    chunk_time_interval: str = defaults.CHUNK_TIME_INTERVAL
    enable_compression: bool = False
    migrate_data: bool = False

    # unordered; only membership matters
    chunk_skip_columns: Optional[Tuple[str, ...]] = None
    # ordered; position encodes partition precedence
    additional_dimensions: Optional[Tuple[Dimension, ...]] = None

    compression_segment_by: Optional[Tuple[str, ...]] = None
    # entries look like "col DESC NULLS LAST"
    compression_order_by: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        _set_tuple(
            self,
            "chunk_skip_columns",
            "additional_dimensions",
            "compression_segment_by",
            "compression_order_by",
        )


class AggregateFunctionType(str, Enum):
    AVG = "avg"
    SUM = "sum"
    MIN = "min"
    MAX = "max"
    COUNT = "count"
    FIRST = "first"
    LAST = "last"


@dataclass(frozen=True)
class AggregateFunction:
    target_column: str
    function: AggregateFunctionType
    source_column: str


@dataclass(frozen=True)
class ContinuousAggregatePolicySpec:
    start_offset: Optional[str] = None
    end_offset: Optional[str] = None
    schedule_interval: Optional[str] = None
    initial_start: Optional[datetime] = None
    timezone: Optional[str] = None
    include_tiered_data: Optional[bool] = None
    buckets_per_batch: int = defaults.REFRESH_POLICY_BUCKETS_PER_BATCH
    max_batches_per_execution: int = defaults.REFRESH_POLICY_MAX_BATCHES_PER_EXECUTION
    refresh_newest_first: bool = defaults.REFRESH_POLICY_REFRESH_NEWEST_FIRST

    # emit-time behaviour only, never part of equality between two policies
    if_not_exists: bool = False


@dataclass(frozen=True)
class ContinuousAggregateSpec:
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

    refresh_policy: Optional[ContinuousAggregatePolicySpec] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "aggregate_functions", tuple(self.aggregate_functions or ()))
        object.__setattr__(self, "group_by_columns", tuple(self.group_by_columns or ()))


@dataclass(frozen=True)
class ReorderPolicySpec:
    index_name: str
    initial_start: Optional[datetime] = None
    schedule_interval: Optional[str] = defaults.REORDER_POLICY_SCHEDULE_INTERVAL
    max_runtime: Optional[str] = None
    max_retries: Optional[int] = defaults.REORDER_POLICY_MAX_RETRIES
    retry_period: Optional[str] = defaults.REORDER_POLICY_RETRY_PERIOD
