from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from Planner import defaults
from Planner.catalog.base import CatalogExtractionError, borrow_connection, fetch_rows
from Planner.catalog.intervals import normalize_interval
from Planner.models.specs import ReorderPolicySpec

logger = logging.getLogger(__name__)

REORDER_POLICIES_SQL = """
    SELECT
      j.hypertable_schema,
      j.hypertable_name,
      j.config ->> 'index_name' AS index_name,
      j.initial_start,
      j.schedule_interval::text AS schedule_interval,
      j.max_runtime::text AS max_runtime,
      j.max_retries,
      j.retry_period::text AS retry_period
    FROM timescaledb_information.jobs AS j
    WHERE j.proc_name = 'policy_reorder'
    ORDER BY j.hypertable_schema, j.hypertable_name
"""


@dataclass(frozen=True)
class ReorderPolicyInfo:
    index_name: str
    initial_start: Optional[datetime] = None
    schedule_interval: Optional[str] = None
    max_runtime: Optional[str] = None
    max_retries: Optional[int] = None
    retry_period: Optional[str] = None

    def to_spec(self) -> ReorderPolicySpec:
        return ReorderPolicySpec(
            index_name=self.index_name,
            initial_start=self.initial_start,
            schedule_interval=self.schedule_interval or defaults.REORDER_POLICY_SCHEDULE_INTERVAL,
            max_runtime=self.max_runtime,
            max_retries=self.max_retries if self.max_retries is not None else defaults.REORDER_POLICY_MAX_RETRIES,
            retry_period=self.retry_period or defaults.REORDER_POLICY_RETRY_PERIOD,
        )


def _interval(value: Any) -> Optional[str]:
    return normalize_interval(str(value)) if value is not None else None


def _read_policies(conn: Any) -> Dict[Tuple[str, str], ReorderPolicyInfo]:
    policies: Dict[Tuple[str, str], ReorderPolicyInfo] = {}
    for row in fetch_rows(conn, REORDER_POLICIES_SQL):
        if not row.get("index_name"):
            continue
        # a zero max_runtime means "no limit" and is what add_reorder_policy registers by default
        max_runtime = _interval(row.get("max_runtime"))
        if max_runtime == "00:00:00":
            max_runtime = None
        policies[(row["hypertable_schema"], row["hypertable_name"])] = ReorderPolicyInfo(
            index_name=row["index_name"],
            initial_start=row.get("initial_start"),
            schedule_interval=_interval(row.get("schedule_interval")),
            max_runtime=max_runtime,
            max_retries=int(row["max_retries"]) if row.get("max_retries") is not None else None,
            retry_period=_interval(row.get("retry_period")),
        )
    return policies


def extract_reorder_policies(bind: Any) -> Dict[Tuple[str, str], ReorderPolicyInfo]:
    try:
        with borrow_connection(bind) as conn:
            policies = _read_policies(conn)
    except SQLAlchemyError as exc:
        logger.exception("catalog.reorder_policies.failed")
        raise CatalogExtractionError("reorder_policies", str(exc)) from exc
    logger.debug("catalog.reorder_policies: count=%d", len(policies))
    return policies
