"""Prometheus metrics for the moderation pipeline."""

from prometheus_client import Counter

MODERATION_ACTIONS = Counter(
    "moderation_actions_total",
    "Moderation actions processed",
    ["action", "outcome"],  # approve/reject/edit, ok/error
)

AUDIT_WRITE_FAILURES = Counter(
    "moderation_audit_write_failures_total",
    "Audit log writes that failed and were skipped",
    ["log"],  # moderation_log, publication_log
)

READ_FAILURES = Counter(
    "moderation_read_failures_total",
    "Per-table read failures tolerated by aggregate reads",
    ["operation", "table"],
)
