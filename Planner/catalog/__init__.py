# Live-catalog readers: the reverse of the snapshot model, used to reverse-engineer an existing database.

from .base import CatalogExtractionError  # noqa: F401
from .continuous_aggregate_policies import (  # noqa: F401
    ContinuousAggregatePolicyInfo,
    extract_continuous_aggregate_policies,
)
from .continuous_aggregates import ContinuousAggregateInfo, extract_continuous_aggregates  # noqa: F401
from .hypertables import HypertableInfo, extract_hypertables  # noqa: F401
from .intervals import normalize_interval, parse_interval_or_integer  # noqa: F401
from .reorder_policies import ReorderPolicyInfo, extract_reorder_policies  # noqa: F401
from .snapshot import CatalogState, read_catalog  # noqa: F401
