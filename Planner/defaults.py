# TimescaleDB defaults, mirrored so snapshots and catalog reads agree on what "unset" means.

DEFAULT_SCHEMA = "public"

CHUNK_TIME_INTERVAL = "7 days"

REORDER_POLICY_SCHEDULE_INTERVAL = "1 day"
REORDER_POLICY_MAX_RETRIES = -1
REORDER_POLICY_RETRY_PERIOD = "5 minutes"

REFRESH_POLICY_BUCKETS_PER_BATCH = 1
REFRESH_POLICY_MAX_BATCHES_PER_EXECUTION = 0
REFRESH_POLICY_REFRESH_NEWEST_FIRST = True
