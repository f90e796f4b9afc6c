from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from Planner.catalog.base import CatalogExtractionError, borrow_connection, fetch_rows
from Planner.catalog.intervals import normalize_interval

logger = logging.getLogger(__name__)

# Chunk interval of the materialization hypertable lives on its first dimension, in microseconds
CONTINUOUS_AGGREGATES_SQL = """
    SELECT
      ca.view_schema,
      ca.view_name,
      ca.view_definition,
      ca.hypertable_schema,
      ca.hypertable_name,
      ca.materialized_only,
      CASE
        WHEN d.interval_length IS NOT NULL THEN (INTERVAL '1 microsecond' * d.interval_length)::text
        ELSE NULL
      END AS chunk_interval
    FROM timescaledb_information.continuous_aggregates ca
    LEFT JOIN _timescaledb_catalog.continuous_agg cagg
      ON ca.view_schema = cagg.user_view_schema
     AND ca.view_name = cagg.user_view_name
    LEFT JOIN _timescaledb_catalog.dimension d
      ON cagg.mat_hypertable_id = d.hypertable_id
     AND d.id = (
       SELECT MIN(d2.id)
       FROM _timescaledb_catalog.dimension d2
       WHERE d2.hypertable_id = cagg.mat_hypertable_id
     )
    ORDER BY ca.view_schema, ca.view_name
"""


# The view definition is kept verbatim; it is not decomposed back into aggregate functions
@dataclass(frozen=True)
class ContinuousAggregateInfo:
    view_name: str
    schema: str
    view_definition: str
    source_hypertable: str
    source_schema: str
    materialized_only: bool
    chunk_interval: Optional[str] = None


def _read_continuous_aggregates(conn: Any) -> Dict[Tuple[str, str], ContinuousAggregateInfo]:
    aggregates: Dict[Tuple[str, str], ContinuousAggregateInfo] = {}
    for row in fetch_rows(conn, CONTINUOUS_AGGREGATES_SQL):
        chunk_interval = row.get("chunk_interval")
        aggregates[(row["view_schema"], row["view_name"])] = ContinuousAggregateInfo(
            view_name=row["view_name"],
            schema=row["view_schema"],
            view_definition=row["view_definition"],
            source_hypertable=row["hypertable_name"],
            source_schema=row["hypertable_schema"],
            materialized_only=bool(row["materialized_only"]),
            chunk_interval=normalize_interval(str(chunk_interval)) if chunk_interval is not None else None,
        )
    return aggregates


def extract_continuous_aggregates(bind: Any) -> Dict[Tuple[str, str], ContinuousAggregateInfo]:
    try:
        with borrow_connection(bind) as conn:
            aggregates = _read_continuous_aggregates(conn)
    except SQLAlchemyError as exc:
        logger.exception("catalog.continuous_aggregates.failed")
        raise CatalogExtractionError("continuous_aggregates", str(exc)) from exc
    logger.debug("catalog.continuous_aggregates: count=%d", len(aggregates))
    return aggregates
