from .hypertables import diff_hypertables
from .reorder_policies import diff_reorder_policies
from .continuous_aggregates import diff_continuous_aggregates
from .continuous_aggregate_policies import diff_continuous_aggregate_policies

__all__ = [
    "diff_hypertables",
    "diff_reorder_policies",
    "diff_continuous_aggregates",
    "diff_continuous_aggregate_policies",
]
