from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence

from Planner.models.snapshot import SchemaSnapshot
from Planner.models.specs import HypertableSpec
from Planner.operations import AlterHypertableOp, CreateHypertableOp, Operation

logger = logging.getLogger(__name__)


# Order-sensitive comparison; a missing list and an empty list mean the same thing
def _same_sequence(a: Optional[Sequence[Any]], b: Optional[Sequence[Any]]) -> bool:
    return tuple(a or ()) == tuple(b or ())


# Membership-only comparison for chunk-skip columns
def _same_set(a: Optional[Sequence[str]], b: Optional[Sequence[str]]) -> bool:
    return set(a or ()) == set(b or ())


def hypertable_changed(old: HypertableSpec, new: HypertableSpec) -> bool:
    return (
        old.chunk_time_interval != new.chunk_time_interval
        or old.enable_compression != new.enable_compression
        or not _same_set(old.chunk_skip_columns, new.chunk_skip_columns)
        or not _same_sequence(old.additional_dimensions, new.additional_dimensions)
        or not _same_sequence(old.compression_segment_by, new.compression_segment_by)
        or not _same_sequence(old.compression_order_by, new.compression_order_by)
    )


def diff_hypertables(old: Optional[SchemaSnapshot], new: Optional[SchemaSnapshot]) -> List[Operation]:
    """
    Hypertable conversions and in-place alters needed to move from ``old`` to ``new``.

    A hypertable that disappears from ``new`` produces nothing: dropping the table, and its
    hypertable metadata with it, belongs to the generic table differ.
    """
    if new is None:
        return []

    old_specs = old.hypertables() if old is not None else {}
    new_specs = new.hypertables()
    operations: List[Operation] = []

    for (schema, table), spec in new_specs.items():
        previous = old_specs.get((schema, table))
        if previous is None:
            op = CreateHypertableOp.from_spec(schema, table, spec)
            logger.debug("diff.hypertable.create: table=%s.%s time_column=%s", schema, table, spec.time_column_name)
            operations.append(op)
            continue

        if previous.time_column_name != spec.time_column_name:
            logger.warning(
                "diff.hypertable.unsupported: table=%s.%s time column change %s -> %s is ignored",
                schema,
                table,
                previous.time_column_name,
                spec.time_column_name,
            )

        if not hypertable_changed(previous, spec):
            continue

        logger.debug("diff.hypertable.alter: table=%s.%s", schema, table)
        operations.append(
            AlterHypertableOp(
                table_name=table,
                schema=schema,
                chunk_time_interval=spec.chunk_time_interval,
                old_chunk_time_interval=previous.chunk_time_interval,
                enable_compression=spec.enable_compression,
                old_enable_compression=previous.enable_compression,
                chunk_skip_columns=spec.chunk_skip_columns,
                old_chunk_skip_columns=previous.chunk_skip_columns,
                additional_dimensions=spec.additional_dimensions,
                old_additional_dimensions=previous.additional_dimensions,
                compression_segment_by=spec.compression_segment_by,
                old_compression_segment_by=previous.compression_segment_by,
                compression_order_by=spec.compression_order_by,
                old_compression_order_by=previous.compression_order_by,
            )
        )

    kept_tables = {t.key for t in new.tables}
    for key in old_specs:
        if key not in new_specs and key in kept_tables:
            logger.warning("diff.hypertable.unsupported: table=%s.%s cannot be converted back to a plain table", *key)

    return operations
