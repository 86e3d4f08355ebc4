from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from ..infrastructure.error_handling import DecodeError, InsightsError, TransportError
from ..infrastructure.metrics import BATCH_GROUPS
from ..integrations.graph_client import decode_response
from .models import ReportPage, ReportResult
from .session import InsightsSession
from .tables import flatten_pages

logger = logging.getLogger(__name__)


def chunk_targets(targets: Sequence[str], size: int) -> List[List[str]]:
    if size <= 0:
        raise ValueError("size must be >= 1")
    return [list(targets[i:i + size]) for i in range(0, len(targets), size)]


class BatchFanout:
    """Synchronous multi-target insights through the Graph batch endpoint."""

    def __init__(self, session: InsightsSession) -> None:
        self.session = session

    def relative_url(self, target: str, query: str) -> str:
        path = f"{self.session.transport.api_version}/{target.strip('/')}/insights"
        return f"{path}?{query}" if query else path

    def run_batched(
        self,
        targets: Sequence[str],
        shared_params: Optional[Dict[str, Any]] = None,
        *,
        simplify: bool = True,
    ) -> List[ReportResult]:
        """One POST per group of targets; one ReportResult per group, in order.

        Every group is issued even if an earlier one failed; the first failure
        is then raised unchanged.
        """
        query = urlencode({k: v for k, v in (shared_params or {}).items() if v is not None})
        groups = chunk_targets(list(targets), self.session.settings.batch_size)
        results: List[ReportResult] = []
        first_error: Optional[InsightsError] = None

        for idx, group in enumerate(groups, start=1):
            try:
                results.append(self._run_group(group, query, simplify))
                BATCH_GROUPS.labels("ok").inc()
            except InsightsError as e:
                BATCH_GROUPS.labels("failed").inc()
                logger.error("Batch group %d/%d (%d targets) failed: %s", idx, len(groups), len(group), e)
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error
        return results

    def _run_group(self, group: List[str], query: str, simplify: bool) -> ReportResult:
        batch = [{"method": "GET", "relative_url": self.relative_url(t, query)} for t in group]
        raw = self.session.transport.send("POST", "", {"batch": json.dumps(batch)})
        responses = decode_response(raw)
        if not isinstance(responses, list):
            raise DecodeError("Batch response is not a list")
        if len(responses) != len(group):
            raise TransportError(f"Batch returned {len(responses)} responses for {len(group)} targets")

        pages: List[ReportPage] = []
        for target, sub in zip(group, responses):
            if not isinstance(sub, dict):
                raise TransportError(f"No batch response for {target}")
            body = decode_response(sub.get("body"))
            code = sub.get("code")
            if isinstance(code, int) and code >= 400:
                error = body.get("error", {}) if isinstance(body, dict) else {}
                raise TransportError(
                    f"Batched insights for {target} failed with {code}: {error.get('message', body)}",
                    status=code, code=error.get("code"), subcode=error.get("error_subcode"),
                    payload=body if isinstance(body, dict) else None,
                )
            data = body.get("data") if isinstance(body, dict) else None
            pages.append(ReportPage(rows=data or []))

        result = ReportResult(pages=pages)
        if simplify:
            result.table = flatten_pages(result.data)
        return result
