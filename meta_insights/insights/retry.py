from __future__ import annotations

import logging

from ..infrastructure.error_handling import JobFailed, RetriesExhausted, dump_payload
from ..infrastructure.metrics import JOB_RETRIES
from .models import ReportResult, RetryContext
from .session import InsightsSession

logger = logging.getLogger(__name__)


def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


class RetryCoordinator:
    """Resubmits the original request after Meta marks its async job failed."""

    def __init__(self, session: InsightsSession) -> None:
        self.session = session

    def handle_job_failure(self, ctx: RetryContext, failure: JobFailed) -> ReportResult:
        attempt = ctx.attempt + 1
        max_retries = self.session.settings.max_retries

        logger.error(dump_payload(failure.payload))
        if attempt > max_retries:
            logger.error(
                "Tried job %s query %d times, giving up", failure.job_id, attempt,
            )
            raise RetriesExhausted(
                "Tried this query too many times, this is a serious issue."
            ) from failure

        logger.info("Retrying query for the %s time", _ordinal(attempt))
        JOB_RETRIES.inc()
        # give the remote system a chance to recover
        self.session.sleep(self.session.settings.retry_cooldown_sec)
        return ctx.replay(ctx.request.with_retries(attempt))
