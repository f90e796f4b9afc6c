from __future__ import annotations

import logging
from typing import List, Optional

from Planner.models.snapshot import SchemaSnapshot
from Planner.models.specs import ReorderPolicySpec
from Planner.operations import (
    AddReorderPolicyOp,
    AlterReorderPolicyOp,
    Operation,
    RemoveReorderPolicyOp,
)

logger = logging.getLogger(__name__)


# Job settings alter_job() can change on a registered reorder policy
def job_settings_changed(old: ReorderPolicySpec, new: ReorderPolicySpec) -> bool:
    return (
        old.schedule_interval != new.schedule_interval
        or old.max_runtime != new.max_runtime
        or old.max_retries != new.max_retries
        or old.retry_period != new.retry_period
    )


def diff_reorder_policies(old: Optional[SchemaSnapshot], new: Optional[SchemaSnapshot]) -> List[Operation]:
    """
    Reorder-policy changes keyed by (schema, table, index name).

    A different index is a different key, so renaming the index shows up as Remove plus Add.
    ``initial_start`` is fixed at registration and is re-registered the same way.
    """
    old_policies = old.reorder_policies() if old is not None else {}
    new_policies = new.reorder_policies() if new is not None else {}
    operations: List[Operation] = []

    for (schema, table, index), policy in new_policies.items():
        previous = old_policies.get((schema, table, index))
        if previous is None:
            logger.debug("diff.reorder.add: table=%s.%s index=%s", schema, table, index)
            operations.append(AddReorderPolicyOp.from_spec(schema, table, policy))
        elif previous.initial_start != policy.initial_start:
            logger.debug("diff.reorder.replace: table=%s.%s index=%s", schema, table, index)
            operations.append(RemoveReorderPolicyOp(table_name=table, schema=schema, index_name=index))
            operations.append(AddReorderPolicyOp.from_spec(schema, table, policy))
        elif job_settings_changed(previous, policy):
            logger.debug("diff.reorder.alter: table=%s.%s index=%s", schema, table, index)
            operations.append(
                AlterReorderPolicyOp(
                    table_name=table,
                    schema=schema,
                    index_name=index,
                    schedule_interval=policy.schedule_interval,
                    old_schedule_interval=previous.schedule_interval,
                    max_runtime=policy.max_runtime,
                    old_max_runtime=previous.max_runtime,
                    max_retries=policy.max_retries,
                    old_max_retries=previous.max_retries,
                    retry_period=policy.retry_period,
                    old_retry_period=previous.retry_period,
                )
            )

    for (schema, table, index) in old_policies:
        if (schema, table, index) not in new_policies:
            logger.debug("diff.reorder.remove: table=%s.%s index=%s", schema, table, index)
            operations.append(RemoveReorderPolicyOp(table_name=table, schema=schema, index_name=index))

    return operations
