from __future__ import annotations

# Marker the remote API reports at the end of an hourly segment bucket.
SENTINEL_MARKER = "0"

# Empirical thresholds for RDS log timing behaviour; all overridable via TailConfig.
ROLLOVER_GRACE_MINUTES = 5
BINARY_SKIP_BYTES      = 1_000
POLL_INTERVAL_S        = 5.0
THROTTLE_BACKOFF_S     = 5.0
NOT_FOUND_WAIT_S       = 2.0

DEFAULT_NUM_LINES = 10_000
PROBE_NUM_LINES   = 1

# RDS hard-codes log_line_prefix for Postgres.
RDS_POSTGRES_LINE_PREFIX = "%t:%r:%u@%d:[%p]:"

DEFAULT_HONEYCOMB_API_HOST = "https://api.honeycomb.io/"
