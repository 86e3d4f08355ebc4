"""
Insights report orchestration.

- requester: sync/async mode selection and the top-level call
- polling: async job status polling with adaptive waits and a deadline
- retry: resubmission of failed async jobs
- pagination: following report page cursors
- batching: multi-target fan-out through the Graph batch endpoint
"""

from .models import (
    InsightsRequest, JobMode, JobStatus, JobStatusSnapshot, JobHandle, PollState,
    ReportPage, ReportResult, RetryContext,
)
from .session import InsightsSession
from .polling import AsyncJobPoller, next_wait_interval
from .retry import RetryCoordinator
from .pagination import PageWalker
from .batching import BatchFanout, chunk_targets
from .tables import flatten_pages
from .requester import ReportRequester, request_insights

__all__ = [
    'InsightsRequest', 'JobMode', 'JobStatus', 'JobStatusSnapshot', 'JobHandle', 'PollState',
    'ReportPage', 'ReportResult', 'RetryContext', 'InsightsSession',
    'AsyncJobPoller', 'next_wait_interval', 'RetryCoordinator', 'PageWalker',
    'BatchFanout', 'chunk_targets', 'flatten_pages', 'ReportRequester', 'request_insights',
]
