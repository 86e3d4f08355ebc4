from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..infrastructure.error_handling import DecodeError, PaginationLimitExceeded
from ..integrations.graph_client import decode_response
from .models import ReportPage, ReportResult
from .session import InsightsSession
from .tables import flatten_pages

logger = logging.getLogger(__name__)


def _to_page(payload: Any) -> ReportPage:
    if not isinstance(payload, dict):
        raise DecodeError("Report page is not an object")
    rows = payload.get("data") or []
    if not isinstance(rows, list):
        raise DecodeError("Report page 'data' is not a list")
    paging: Dict[str, Any] = payload.get("paging") or {}
    next_url: Optional[str] = paging.get("next") if isinstance(paging, dict) else None
    return ReportPage(rows=rows, next_url=next_url or None)


class PageWalker:
    def __init__(self, session: InsightsSession) -> None:
        self.session = session

    def collect_pages(self, first_raw: str, *, simplify: bool = False) -> ReportResult:
        """Follow ``paging.next`` cursors from the first report page until they run out."""
        max_pages = self.session.settings.max_pages
        page = _to_page(decode_response(first_raw))
        pages = [page]

        while page.next_url:
            if len(pages) >= max_pages:
                raise PaginationLimitExceeded(
                    f"Report still paginating after {max_pages} pages"
                )
            page = _to_page(decode_response(self.session.transport.get_url(page.next_url)))
            pages.append(page)

        logger.debug("Collected %d report page(s), %d rows", len(pages), sum(len(p.rows) for p in pages))
        result = ReportResult(pages=pages)
        if simplify:
            result.table = flatten_pages(result.data)
        return result
