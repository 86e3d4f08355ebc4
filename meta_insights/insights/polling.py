from __future__ import annotations

import logging
from typing import Optional

from ..infrastructure.error_handling import (
    DecodeError,
    InsightsTimeout,
    JobFailed,
    UnexpectedJobState,
    dump_payload,
)
from ..infrastructure.metrics import ASYNC_JOBS, POLL_WAIT
from ..integrations.graph_client import decode_response
from .models import JobHandle, JobStatus, JobStatusSnapshot, PollState
from .session import InsightsSession

logger = logging.getLogger(__name__)


def next_wait_interval(
    interval: float,
    delta_percent: float,
    *,
    min_interval: float = 0.0,
    max_interval: float = 300.0,
) -> float:
    """Scale the polling interval by how much the job progressed since the last check.

    Buckets on the percentage delta: <=5 x5, (5,10] x2, (10,15] x1,
    (15,25] x0.75, >25 x0.5. The result is clamped to [min_interval, max_interval].
    """
    if delta_percent > 25:
        factor = 0.5
    elif delta_percent > 15:
        factor = 0.75
    elif delta_percent > 10:
        factor = 1.0
    elif delta_percent > 5:
        factor = 2.0
    else:
        factor = 5.0
    return min(max_interval, max(min_interval, interval * factor))


class AsyncJobPoller:
    def __init__(self, session: InsightsSession) -> None:
        self.session = session

    def fetch_status(self, job_id: str) -> JobStatusSnapshot:
        payload = decode_response(self.session.transport.send("GET", job_id))
        if not isinstance(payload, dict):
            raise DecodeError(f"Job status for {job_id} is not an object")
        return JobStatusSnapshot.from_payload(payload)

    def poll_until_terminal(self, handle: JobHandle, deadline_sec: Optional[float] = None) -> str:
        """Block until the job finishes; return the raw body of its first report page.

        Raises JobFailed, UnexpectedJobState or InsightsTimeout.
        """
        settings = self.session.settings
        clock = self.session.clock
        deadline = settings.poll_deadline_sec if deadline_sec is None else deadline_sec
        job_id = handle.job_id

        snapshot = self.fetch_status(job_id)
        state = PollState(
            interval=settings.poll_initial_interval_sec,
            last_percent=snapshot.percent,
            started_at=handle.submitted_at,
        )

        while not snapshot.status.terminal:
            elapsed = clock.elapsed_since(state.started_at)
            if elapsed > deadline:
                ASYNC_JOBS.labels("timeout").inc()
                raise InsightsTimeout(
                    f"Async query took more than {deadline / 60:.0f} mins for job ID {job_id}"
                )

            state.interval = next_wait_interval(
                state.interval,
                snapshot.percent - state.last_percent,
                min_interval=settings.poll_min_interval_sec,
                max_interval=settings.poll_max_interval_sec,
            )
            state.last_percent = snapshot.percent

            logger.debug(
                "%s Async %s (%s%%). Waiting %.1f seconds...",
                job_id, snapshot.raw_status, snapshot.percent, state.interval,
            )
            POLL_WAIT.observe(state.interval)
            self.session.sleep(state.interval)

            snapshot = self.fetch_status(job_id)

        if snapshot.status is JobStatus.COMPLETED:
            ASYNC_JOBS.labels("completed").inc()
            logger.debug("%s Async job completed after %.1fs", job_id, clock.elapsed_since(state.started_at))
            return self.session.transport.send("GET", f"{job_id}/insights")

        if snapshot.status is JobStatus.FAILED:
            ASYNC_JOBS.labels("failed").inc()
            raise JobFailed(job_id, snapshot.payload)

        ASYNC_JOBS.labels("unexpected").inc()
        logger.error(dump_payload(snapshot.payload))
        raise UnexpectedJobState(job_id, snapshot.raw_status, snapshot.payload)
