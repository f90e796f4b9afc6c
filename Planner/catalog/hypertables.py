from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import SQLAlchemyError

from Planner import defaults
from Planner.catalog.base import CatalogExtractionError, borrow_connection, fetch_rows
from Planner.catalog.intervals import normalize_interval
from Planner.models.specs import Dimension, HypertableSpec

logger = logging.getLogger(__name__)

COMPRESSION_SQL = """
    SELECT hypertable_schema, hypertable_name, compression_enabled
    FROM timescaledb_information.hypertables
"""

DIMENSIONS_SQL = """
    SELECT
      hypertable_schema,
      hypertable_name,
      column_name,
      dimension_number,
      num_partitions,
      time_interval::text AS time_interval,
      integer_interval
    FROM timescaledb_information.dimensions
    ORDER BY hypertable_schema, hypertable_name, dimension_number
"""

CHUNK_SKIP_SQL = """
    SELECT DISTINCT h.schema_name, h.table_name, ccs.column_name
    FROM _timescaledb_catalog.chunk_column_stats AS ccs
    JOIN _timescaledb_catalog.hypertable AS h ON ccs.hypertable_id = h.id
    ORDER BY h.schema_name, h.table_name, ccs.column_name
"""

COMPRESSION_SETTINGS_SQL = """
    SELECT
      hypertable_schema,
      hypertable_name,
      attname,
      segmentby_column_index,
      orderby_column_index,
      orderby_asc,
      orderby_nullsfirst
    FROM timescaledb_information.compression_settings
    ORDER BY hypertable_schema, hypertable_name, segmentby_column_index, orderby_column_index
"""


@dataclass
class HypertableInfo:
    time_column_name: str
    chunk_time_interval: str
    compression_enabled: bool = False
    compression_segment_by: List[str] = field(default_factory=list)
    compression_order_by: List[str] = field(default_factory=list)
    chunk_skip_columns: List[str] = field(default_factory=list)
    additional_dimensions: List[Dimension] = field(default_factory=list)

    def to_spec(self) -> HypertableSpec:
        return HypertableSpec(
            time_column_name=self.time_column_name,
            chunk_time_interval=self.chunk_time_interval,
            enable_compression=self.compression_enabled,
            chunk_skip_columns=self.chunk_skip_columns or None,
            additional_dimensions=self.additional_dimensions or None,
            compression_segment_by=self.compression_segment_by or None,
            compression_order_by=self.compression_order_by or None,
        )


# Range interval for a dimension row; timestamp dimensions carry time_interval, integer ones integer_interval
def _range_interval(row: Dict[str, Any]):
    if row.get("time_interval") is not None:
        return normalize_interval(str(row["time_interval"]))
    if row.get("integer_interval") is not None:
        return str(int(row["integer_interval"]))
    return None


def _secondary_dimension(row: Dict[str, Any]):
    partitions = row.get("num_partitions")
    if partitions is not None and int(partitions) > 0:
        return Dimension.by_hash(row["column_name"], int(partitions))
    interval = _range_interval(row)
    if interval is None:
        return None
    return Dimension.by_range(row["column_name"], interval)


def _read_hypertables(conn: Any) -> Dict[Tuple[str, str], HypertableInfo]:
    compression = {
        (r["hypertable_schema"], r["hypertable_name"]): bool(r["compression_enabled"])
        for r in fetch_rows(conn, COMPRESSION_SQL)
    }

    hypertables: Dict[Tuple[str, str], HypertableInfo] = {}
    for row in fetch_rows(conn, DIMENSIONS_SQL):
        key = (row["hypertable_schema"], row["hypertable_name"])
        if int(row["dimension_number"]) == 1:
            hypertables[key] = HypertableInfo(
                time_column_name=row["column_name"],
                chunk_time_interval=_range_interval(row) or defaults.CHUNK_TIME_INTERVAL,
                compression_enabled=compression.get(key, False),
            )
            continue
        info = hypertables.get(key)
        if info is None:
            continue
        dimension = _secondary_dimension(row)
        if dimension is not None:
            info.additional_dimensions.append(dimension)

    for row in fetch_rows(conn, CHUNK_SKIP_SQL):
        info = hypertables.get((row["schema_name"], row["table_name"]))
        if info is not None and row["column_name"] not in info.chunk_skip_columns:
            info.chunk_skip_columns.append(row["column_name"])

    for row in fetch_rows(conn, COMPRESSION_SETTINGS_SQL):
        info = hypertables.get((row["hypertable_schema"], row["hypertable_name"]))
        if info is None:
            continue
        if row.get("segmentby_column_index") is not None:
            info.compression_segment_by.append(row["attname"])
        if row.get("orderby_column_index") is not None:
            direction = "ASC" if row.get("orderby_asc") else "DESC"
            nulls = "NULLS FIRST" if row.get("orderby_nullsfirst") else "NULLS LAST"
            info.compression_order_by.append(f"{row['attname']} {direction} {nulls}")

    return hypertables


def extract_hypertables(bind: Any) -> Dict[Tuple[str, str], HypertableInfo]:
    try:
        with borrow_connection(bind) as conn:
            hypertables = _read_hypertables(conn)
    except SQLAlchemyError as exc:
        logger.exception("catalog.hypertables.failed")
        raise CatalogExtractionError("hypertables", str(exc)) from exc
    logger.debug("catalog.hypertables: count=%d", len(hypertables))
    return hypertables
