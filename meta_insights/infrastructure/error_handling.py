from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class InsightsError(RuntimeError):
    """Base class for every failure raised by the insights orchestration."""


class InvalidUsage(InsightsError, ValueError):
    """Raised when a call is shaped wrong (async + several targets, multi-keyword search)."""


class ConfigError(InsightsError, ValueError):
    """Raised for missing credentials or settings that fail validation."""


class TransportError(InsightsError):
    """Raised when a single Graph request/response exchange fails."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[int] = None,
        subcode: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.subcode = subcode
        self.payload = payload or {}


class InsightsDataLimitError(TransportError):
    """Raised when Meta limits insights request by data volume."""


class DecodeError(InsightsError):
    """Raised when a response body is not valid JSON."""


class InsightsTimeout(InsightsError, TimeoutError):
    """Raised when an async job is still running past the polling deadline."""


class InsightsCancelled(InsightsError):
    """Raised when the caller's cancellation event fires during a wait."""


class JobFailed(InsightsError):
    """Raised when Meta reports an async job as failed. Recoverable by resubmission."""

    def __init__(self, job_id: str, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"Async job {job_id} failed")
        self.job_id = job_id
        self.payload = payload or {}


class RetriesExhausted(InsightsError):
    """Raised once a failed async job has been resubmitted too many times."""


class UnexpectedJobState(InsightsError):
    """Raised when an async job reports a status we do not know how to handle."""

    def __init__(self, job_id: str, status: str, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"Unexpected response for the asynchronous job {job_id}: {status!r}")
        self.job_id = job_id
        self.status = status
        self.payload = payload or {}


class PaginationLimitExceeded(InsightsError):
    """Raised when a report keeps returning next-page cursors past the page cap."""


def dump_payload(payload: Any, limit: int = 2000) -> str:
    """Render a decoded response for log lines, truncated."""
    try:
        text = json.dumps(payload, default=str, sort_keys=True)
    except (TypeError, ValueError):
        text = repr(payload)
    if len(text) > limit:
        return text[:limit] + "...(truncated)"
    return text
