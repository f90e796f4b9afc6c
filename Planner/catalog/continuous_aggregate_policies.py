from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from Planner import defaults
from Planner.catalog.base import CatalogExtractionError, borrow_connection, fetch_rows
from Planner.catalog.intervals import normalize_interval, parse_interval_or_integer
from Planner.models.specs import ContinuousAggregatePolicySpec

logger = logging.getLogger(__name__)

REFRESH_POLICIES_SQL = """
    SELECT
      ca.user_view_schema,
      ca.user_view_name,
      j.config,
      j.schedule_interval::text AS schedule_interval,
      j.initial_start
    FROM timescaledb_information.jobs j
    JOIN _timescaledb_catalog.continuous_agg ca
      ON (j.config->>'mat_hypertable_id')::integer = ca.mat_hypertable_id
    WHERE j.proc_name = 'policy_refresh_continuous_aggregate'
    ORDER BY ca.user_view_schema, ca.user_view_name
"""


@dataclass(frozen=True)
class ContinuousAggregatePolicyInfo:
    start_offset: Optional[str] = None
    end_offset: Optional[str] = None
    schedule_interval: Optional[str] = None
    initial_start: Optional[datetime] = None
    include_tiered_data: Optional[bool] = None
    buckets_per_batch: Optional[int] = None
    max_batches_per_execution: Optional[int] = None
    refresh_newest_first: Optional[bool] = None

    def to_spec(self) -> ContinuousAggregatePolicySpec:
        return ContinuousAggregatePolicySpec(
            start_offset=self.start_offset,
            end_offset=self.end_offset,
            schedule_interval=self.schedule_interval,
            initial_start=self.initial_start,
            include_tiered_data=self.include_tiered_data,
            buckets_per_batch=(
                self.buckets_per_batch
                if self.buckets_per_batch is not None
                else defaults.REFRESH_POLICY_BUCKETS_PER_BATCH
            ),
            max_batches_per_execution=(
                self.max_batches_per_execution
                if self.max_batches_per_execution is not None
                else defaults.REFRESH_POLICY_MAX_BATCHES_PER_EXECUTION
            ),
            refresh_newest_first=(
                self.refresh_newest_first
                if self.refresh_newest_first is not None
                else defaults.REFRESH_POLICY_REFRESH_NEWEST_FIRST
            ),
        )


# psycopg2 decodes jsonb into a dict; other drivers hand back the JSON text
def _load_config(raw: Any) -> Dict[str, Any]:
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str) and raw.strip():
        loaded = json.loads(raw)
        return loaded if isinstance(loaded, dict) else {}
    return {}


def _bool_or_none(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def _policy_from_row(row: Dict[str, Any]) -> ContinuousAggregatePolicyInfo:
    config = _load_config(row.get("config"))
    schedule_interval = row.get("schedule_interval")
    return ContinuousAggregatePolicyInfo(
        start_offset=parse_interval_or_integer(config.get("start_offset")),
        end_offset=parse_interval_or_integer(config.get("end_offset")),
        schedule_interval=normalize_interval(str(schedule_interval)) if schedule_interval is not None else None,
        initial_start=row.get("initial_start"),
        include_tiered_data=_bool_or_none(config.get("include_tiered_data")),
        buckets_per_batch=_int_or_none(config.get("buckets_per_batch")),
        max_batches_per_execution=_int_or_none(config.get("max_batches_per_execution")),
        refresh_newest_first=_bool_or_none(config.get("refresh_newest_first")),
    )


def _read_policies(conn: Any) -> Dict[Tuple[str, str], ContinuousAggregatePolicyInfo]:
    return {
        (row["user_view_schema"], row["user_view_name"]): _policy_from_row(row)
        for row in fetch_rows(conn, REFRESH_POLICIES_SQL)
    }


def extract_continuous_aggregate_policies(bind: Any) -> Dict[Tuple[str, str], ContinuousAggregatePolicyInfo]:
    try:
        with borrow_connection(bind) as conn:
            policies = _read_policies(conn)
    except SQLAlchemyError as exc:
        logger.exception("catalog.continuous_aggregate_policies.failed")
        raise CatalogExtractionError("continuous_aggregate_policies", str(exc)) from exc
    except ValueError as exc:
        # malformed job config JSON
        logger.exception("catalog.continuous_aggregate_policies.bad_config")
        raise CatalogExtractionError("continuous_aggregate_policies", str(exc)) from exc
    logger.debug("catalog.continuous_aggregate_policies: count=%d", len(policies))
    return policies
