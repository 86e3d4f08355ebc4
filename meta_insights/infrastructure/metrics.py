from __future__ import annotations

from prometheus_client import Counter, Histogram

ASYNC_JOBS = Counter(
    "meta_insights_async_jobs_total",
    "Async insights jobs by terminal outcome",
    ["outcome"],
)
JOB_RETRIES = Counter(
    "meta_insights_job_retries_total",
    "Async insights jobs resubmitted after a failure",
)
SYNC_FALLBACKS = Counter(
    "meta_insights_sync_fallbacks_total",
    "Synchronous insights requests that fell back to an async job",
)
BATCH_GROUPS = Counter(
    "meta_insights_batch_groups_total",
    "Batched insights groups issued",
    ["outcome"],
)
POLL_WAIT = Histogram(
    "meta_insights_poll_wait_seconds",
    "Wait intervals chosen while polling async jobs",
    buckets=(0.5, 1, 2, 5, 10, 30, 60, 120, 300),
)
