import json
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine

from Planner.catalog import (
    CatalogExtractionError,
    ContinuousAggregateInfo,
    extract_continuous_aggregate_policies,
    extract_continuous_aggregates,
    extract_hypertables,
    extract_reorder_policies,
    read_catalog,
)
from Planner.models import ContinuousAggregatePolicySpec, Dimension, HypertableSpec, ReorderPolicySpec

HYPERTABLE_ROWS = {
    "timescaledb_information.hypertables": [
        {"hypertable_schema": "public", "hypertable_name": "metrics", "compression_enabled": True},
        {"hypertable_schema": "public", "hypertable_name": "ticks", "compression_enabled": False},
    ],
    "timescaledb_information.dimensions": [
        {
            "hypertable_schema": "public",
            "hypertable_name": "metrics",
            "column_name": "ts",
            "dimension_number": 1,
            "num_partitions": None,
            "time_interval": "1 day",
            "integer_interval": None,
        },
        {
            "hypertable_schema": "public",
            "hypertable_name": "metrics",
            "column_name": "device_id",
            "dimension_number": 2,
            "num_partitions": 4,
            "time_interval": None,
            "integer_interval": None,
        },
        {
            "hypertable_schema": "public",
            "hypertable_name": "metrics",
            "column_name": "recorded_at",
            "dimension_number": 3,
            "num_partitions": None,
            "time_interval": "01:00:00",
            "integer_interval": None,
        },
        {
            "hypertable_schema": "public",
            "hypertable_name": "ticks",
            "column_name": "seq",
            "dimension_number": 1,
            "num_partitions": None,
            "time_interval": None,
            "integer_interval": 100000,
        },
        {
            "hypertable_schema": "public",
            "hypertable_name": "ticks",
            "column_name": "venue_id",
            "dimension_number": 2,
            "num_partitions": None,
            "time_interval": None,
            "integer_interval": 50,
        },
    ],
    "chunk_column_stats": [
        {"schema_name": "public", "table_name": "metrics", "column_name": "device_id"},
        {"schema_name": "public", "table_name": "metrics", "column_name": "device_id"},
        {"schema_name": "public", "table_name": "unknown", "column_name": "x"},
    ],
    "compression_settings": [
        {
            "hypertable_schema": "public",
            "hypertable_name": "metrics",
            "attname": "device_id",
            "segmentby_column_index": 1,
            "orderby_column_index": None,
            "orderby_asc": None,
            "orderby_nullsfirst": None,
        },
        {
            "hypertable_schema": "public",
            "hypertable_name": "metrics",
            "attname": "ts",
            "segmentby_column_index": None,
            "orderby_column_index": 1,
            "orderby_asc": False,
            "orderby_nullsfirst": False,
        },
        {
            "hypertable_schema": "public",
            "hypertable_name": "metrics",
            "attname": "value",
            "segmentby_column_index": None,
            "orderby_column_index": 2,
            "orderby_asc": True,
            "orderby_nullsfirst": True,
        },
    ],
}

CONTINUOUS_AGGREGATE_ROWS = {
    "timescaledb_information.continuous_aggregates": [
        {
            "view_schema": "public",
            "view_name": "metrics_hourly",
            "view_definition": " SELECT time_bucket('01:00:00'::interval, metrics.ts) AS bucket ...",
            "hypertable_schema": "public",
            "hypertable_name": "metrics",
            "materialized_only": True,
            "chunk_interval": "10 days",
        },
        {
            "view_schema": "reporting",
            "view_name": "ticks_daily",
            "view_definition": " SELECT ...",
            "hypertable_schema": "public",
            "hypertable_name": "ticks",
            "materialized_only": False,
            "chunk_interval": None,
        },
    ]
}

POLICY_START = datetime(2025, 1, 1, tzinfo=timezone.utc)

REFRESH_POLICY_ROWS = {
    "policy_refresh_continuous_aggregate": [
        {
            "user_view_schema": "public",
            "user_view_name": "metrics_hourly",
            "config": {
                "start_offset": "1 mon",
                "end_offset": "01:00:00",
                "mat_hypertable_id": 3,
                "buckets_per_batch": 5,
                "refresh_newest_first": False,
            },
            "schedule_interval": "01:00:00",
            "initial_start": POLICY_START,
        },
        {
            "user_view_schema": "reporting",
            "user_view_name": "ticks_daily",
            "config": json.dumps(
                {"start_offset": 1000, "end_offset": None, "mat_hypertable_id": 4, "include_tiered_data": True}
            ),
            "schedule_interval": "1 day",
            "initial_start": None,
        },
    ]
}

REORDER_POLICY_ROWS = {
    "policy_reorder": [
        {
            "hypertable_schema": "public",
            "hypertable_name": "metrics",
            "index_name": "metrics_device_id_ts_idx",
            "initial_start": None,
            "schedule_interval": "1 day",
            "max_runtime": "00:00:00",
            "max_retries": -1,
            "retry_period": "00:05:00",
        },
        {
            "hypertable_schema": "public",
            "hypertable_name": "ticks",
            "index_name": None,
            "initial_start": None,
            "schedule_interval": "1 day",
            "max_runtime": None,
            "max_retries": -1,
            "retry_period": None,
        },
    ]
}


def test_extract_hypertables(fake_connection):
    conn = fake_connection(HYPERTABLE_ROWS)

    hypertables = extract_hypertables(conn)

    assert list(hypertables) == [("public", "metrics"), ("public", "ticks")]
    metrics = hypertables[("public", "metrics")]
    assert metrics.time_column_name == "ts"
    assert metrics.chunk_time_interval == "1 day"
    assert metrics.compression_enabled is True
    assert metrics.additional_dimensions == [
        Dimension.by_hash("device_id", 4),
        Dimension.by_range("recorded_at", "1 hour"),
    ]
    assert metrics.chunk_skip_columns == ["device_id"]
    assert metrics.compression_segment_by == ["device_id"]
    assert metrics.compression_order_by == ["ts DESC NULLS LAST", "value ASC NULLS FIRST"]

    ticks = hypertables[("public", "ticks")]
    assert ticks.chunk_time_interval == "100000"
    assert ticks.additional_dimensions == [Dimension.by_range("venue_id", "50")]
    assert conn.closed is False


def test_hypertable_info_round_trips_into_a_spec(fake_connection):
    metrics = extract_hypertables(fake_connection(HYPERTABLE_ROWS))[("public", "metrics")]

    assert metrics.to_spec() == HypertableSpec(
        "ts",
        chunk_time_interval="1 day",
        enable_compression=True,
        chunk_skip_columns=["device_id"],
        additional_dimensions=[Dimension.by_hash("device_id", 4), Dimension.by_range("recorded_at", "1 hour")],
        compression_segment_by=["device_id"],
        compression_order_by=["ts DESC NULLS LAST", "value ASC NULLS FIRST"],
    )


def test_extract_continuous_aggregates(fake_connection):
    aggregates = extract_continuous_aggregates(fake_connection(CONTINUOUS_AGGREGATE_ROWS))

    assert aggregates[("public", "metrics_hourly")] == ContinuousAggregateInfo(
        view_name="metrics_hourly",
        schema="public",
        view_definition=" SELECT time_bucket('01:00:00'::interval, metrics.ts) AS bucket ...",
        source_hypertable="metrics",
        source_schema="public",
        materialized_only=True,
        chunk_interval="10 days",
    )
    assert aggregates[("reporting", "ticks_daily")].chunk_interval is None


def test_extract_continuous_aggregate_policies(fake_connection):
    policies = extract_continuous_aggregate_policies(fake_connection(REFRESH_POLICY_ROWS))

    hourly = policies[("public", "metrics_hourly")]
    assert hourly.start_offset == "1 month"
    assert hourly.end_offset == "1 hour"
    assert hourly.schedule_interval == "1 hour"
    assert hourly.initial_start == POLICY_START
    assert hourly.buckets_per_batch == 5
    assert hourly.max_batches_per_execution is None
    assert hourly.refresh_newest_first is False

    daily = policies[("reporting", "ticks_daily")]
    assert daily.start_offset == "1000"
    assert daily.end_offset is None
    assert daily.include_tiered_data is True


def test_policy_info_applies_defaults_in_spec(fake_connection):
    daily = extract_continuous_aggregate_policies(fake_connection(REFRESH_POLICY_ROWS))[("reporting", "ticks_daily")]

    assert daily.to_spec() == ContinuousAggregatePolicySpec(
        start_offset="1000",
        end_offset=None,
        schedule_interval="1 day",
        include_tiered_data=True,
        buckets_per_batch=1,
        max_batches_per_execution=0,
        refresh_newest_first=True,
    )


def test_malformed_policy_config_fails_the_extractor(fake_connection):
    rows = {
        "policy_refresh_continuous_aggregate": [
            {
                "user_view_schema": "public",
                "user_view_name": "broken",
                "config": "{not json",
                "schedule_interval": None,
                "initial_start": None,
            }
        ]
    }
    with pytest.raises(CatalogExtractionError):
        extract_continuous_aggregate_policies(fake_connection(rows))


def test_extract_reorder_policies_skips_rows_without_index(fake_connection):
    policies = extract_reorder_policies(fake_connection(REORDER_POLICY_ROWS))

    assert list(policies) == [("public", "metrics")]
    info = policies[("public", "metrics")]
    assert info.index_name == "metrics_device_id_ts_idx"
    assert info.max_runtime is None
    assert info.retry_period == "5 minutes"
    assert info.to_spec() == ReorderPolicySpec("metrics_device_id_ts_idx")


def test_read_catalog_uses_one_connection(fake_connection):
    responses = {}
    for rows in (HYPERTABLE_ROWS, CONTINUOUS_AGGREGATE_ROWS, REFRESH_POLICY_ROWS, REORDER_POLICY_ROWS):
        responses.update(rows)
    conn = fake_connection(responses)

    state = read_catalog(conn)

    assert set(state.hypertables) == {("public", "metrics"), ("public", "ticks")}
    assert set(state.continuous_aggregates) == {("public", "metrics_hourly"), ("reporting", "ticks_daily")}
    assert set(state.continuous_aggregate_policies) == {("public", "metrics_hourly"), ("reporting", "ticks_daily")}
    assert set(state.reorder_policies) == {("public", "metrics")}
    assert len(conn.executed) == 7
    assert conn.closed is False
    assert conn.in_transaction() is False


@pytest.fixture
def sqlite_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    yield engine
    engine.dispose()


EXTRACTORS = [
    extract_hypertables,
    extract_continuous_aggregates,
    extract_continuous_aggregate_policies,
    extract_reorder_policies,
]


@pytest.mark.parametrize("extractor", EXTRACTORS)
def test_failed_query_on_engine_raises_and_releases_connection(sqlite_engine, extractor):
    with pytest.raises(CatalogExtractionError) as excinfo:
        extractor(sqlite_engine)

    assert excinfo.value.__cause__ is not None
    assert sqlite_engine.pool.checkedout() == 0


@pytest.mark.parametrize("extractor", EXTRACTORS)
def test_failed_query_leaves_borrowed_connection_as_found(sqlite_engine, extractor):
    with sqlite_engine.connect() as conn:
        assert conn.in_transaction() is False

        with pytest.raises(CatalogExtractionError):
            extractor(conn)

        assert not conn.closed
        assert conn.in_transaction() is False


@pytest.mark.parametrize("extractor", EXTRACTORS)
def test_successful_read_rolls_back_its_own_transaction(fake_connection, extractor):
    responses = {}
    for rows in (HYPERTABLE_ROWS, CONTINUOUS_AGGREGATE_ROWS, REFRESH_POLICY_ROWS, REORDER_POLICY_ROWS):
        responses.update(rows)
    conn = fake_connection(responses)

    extractor(conn)

    assert conn.in_transaction() is False
    assert conn.rollbacks == 1


def test_read_catalog_on_engine_fails_whole(sqlite_engine):
    with pytest.raises(CatalogExtractionError) as excinfo:
        read_catalog(sqlite_engine)

    assert excinfo.value.extractor == "hypertables"
    assert sqlite_engine.pool.checkedout() == 0


def test_read_catalog_without_bind_uses_configured_database(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'configured.db'}")

    with pytest.raises(CatalogExtractionError) as excinfo:
        read_catalog()

    assert excinfo.value.extractor == "hypertables"
