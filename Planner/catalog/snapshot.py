from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from Planner.catalog.base import borrow_connection
from Planner.catalog.continuous_aggregate_policies import (
    ContinuousAggregatePolicyInfo,
    extract_continuous_aggregate_policies,
)
from Planner.catalog.continuous_aggregates import ContinuousAggregateInfo, extract_continuous_aggregates
from Planner.catalog.hypertables import HypertableInfo, extract_hypertables
from Planner.catalog.reorder_policies import ReorderPolicyInfo, extract_reorder_policies
from Planner.config import get_engine

logger = logging.getLogger(__name__)


@dataclass
class CatalogState:
    hypertables: Dict[Tuple[str, str], HypertableInfo] = field(default_factory=dict)
    continuous_aggregates: Dict[Tuple[str, str], ContinuousAggregateInfo] = field(default_factory=dict)
    continuous_aggregate_policies: Dict[Tuple[str, str], ContinuousAggregatePolicyInfo] = field(default_factory=dict)
    reorder_policies: Dict[Tuple[str, str], ReorderPolicyInfo] = field(default_factory=dict)


# Runs every extractor over one borrowed connection; the first failure aborts the whole read.
# Without a bind, an engine is built from DATABASE_URL for this read only.
def read_catalog(bind: Any = None) -> CatalogState:
    if bind is None:
        engine = get_engine()
        try:
            return read_catalog(engine)
        finally:
            engine.dispose()

    with borrow_connection(bind) as conn:
        state = CatalogState(
            hypertables=extract_hypertables(conn),
            continuous_aggregates=extract_continuous_aggregates(conn),
            continuous_aggregate_policies=extract_continuous_aggregate_policies(conn),
            reorder_policies=extract_reorder_policies(conn),
        )
    logger.info(
        "catalog.read: hypertables=%d continuous_aggregates=%d refresh_policies=%d reorder_policies=%d",
        len(state.hypertables),
        len(state.continuous_aggregates),
        len(state.continuous_aggregate_policies),
        len(state.reorder_policies),
    )
    return state
