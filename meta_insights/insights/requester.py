from __future__ import annotations

import logging
from typing import List, Optional, Union

from ..config import InsightsSettings
from ..infrastructure.error_handling import (
    DecodeError,
    InsightsDataLimitError,
    InsightsError,
    InvalidUsage,
    JobFailed,
)
from ..infrastructure.metrics import SYNC_FALLBACKS
from ..integrations.graph_client import AccountAuth, decode_response
from .batching import BatchFanout
from .models import InsightsRequest, JobHandle, JobMode, ReportResult, RetryContext
from .pagination import PageWalker
from .polling import AsyncJobPoller
from .retry import RetryCoordinator
from .session import InsightsSession

logger = logging.getLogger(__name__)

InsightsOutcome = Union[ReportResult, List[ReportResult]]


def insights_path(target: str) -> str:
    return f"{target.strip().rstrip('/')}/insights"


class ReportRequester:
    """
    Entry point for insights reports.

    Single target: sync GET first; any transport failure (typically "please
    reduce the amount of data") falls back to an async report job, which is
    polled, resubmitted on failure, and paginated. Several targets: sync only,
    fanned out through the batch endpoint.
    """

    def __init__(self, session: InsightsSession) -> None:
        self.session = session
        self.poller = AsyncJobPoller(session)
        self.retries = RetryCoordinator(session)
        self.pages = PageWalker(session)
        self.batches = BatchFanout(session)

    def request_insights(self, request: InsightsRequest) -> InsightsOutcome:
        if request.is_batched:
            if request.mode is JobMode.ASYNC:
                raise InvalidUsage(
                    "Batched queries are not possible with async call. Please query only one item at a time."
                )
            return self.batches.run_batched(request.targets, request.to_params(), simplify=request.simplify)

        target = request.targets[0] if request.targets else self.session.account_path
        if request.mode is JobMode.SYNC:
            return self._request_sync(target, request)
        return self._request_async(target, request)

    def _request_sync(self, target: str, request: InsightsRequest) -> InsightsOutcome:
        try:
            raw = self.session.transport.send("GET", insights_path(target), request.to_params())
        except InsightsError as e:
            # TODO: only InsightsDataLimitError should switch to async; other errors are real failures
            reason = "hit the data limit" if isinstance(e, InsightsDataLimitError) else "failed"
            logger.debug("Sync request %s (%s), starting async request.", reason, e)
            SYNC_FALLBACKS.inc()
            return self.request_insights(request.with_mode(JobMode.ASYNC))
        return self.pages.collect_pages(raw, simplify=request.simplify)

    def submit_async(self, target: str, request: InsightsRequest) -> JobHandle:
        raw = self.session.transport.send("POST", insights_path(target), request.to_params())
        payload = decode_response(raw)
        job_id = None
        if isinstance(payload, dict):
            job_id = payload.get("report_run_id") or payload.get("id")
        if not job_id:
            raise DecodeError(f"Async submission for {target} returned no job id")
        handle = JobHandle(job_id=str(job_id), submitted_at=self.session.clock.now_utc())
        logger.debug("Started async insights job %s for %s (retries=%d)", handle.job_id, target, request.retries)
        return handle

    def _request_async(self, target: str, request: InsightsRequest) -> ReportResult:
        handle = self.submit_async(target, request)
        ctx = RetryContext(request=request, attempt=request.retries, replay=self.request_insights)
        try:
            outcome: Union[str, ReportResult] = self.poller.poll_until_terminal(handle)
        except JobFailed as failure:
            outcome = self.retries.handle_job_failure(ctx, failure)

        # a resubmitted job already came back paginated
        if isinstance(outcome, ReportResult):
            return outcome
        return self.pages.collect_pages(outcome, simplify=request.simplify)


def request_insights(
    request: Optional[InsightsRequest] = None,
    *,
    session: Optional[InsightsSession] = None,
    account: Optional[AccountAuth] = None,
    settings: Optional[InsightsSettings] = None,
    **request_kwargs,
) -> InsightsOutcome:
    """Convenience wrapper: build a session from env credentials unless one is given."""
    if request is None:
        request = InsightsRequest(**request_kwargs)
    elif request_kwargs:
        raise InvalidUsage("Pass either an InsightsRequest or keyword arguments, not both")
    if session is None:
        session = InsightsSession.for_account(account or AccountAuth.from_env(), settings)
    return ReportRequester(session).request_insights(request)
