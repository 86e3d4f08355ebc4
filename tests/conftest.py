"""
Shared fixtures for the insights tests.

- FakeTransport: scripted Graph responses keyed by (method, path), records every call
- SimulatedClock session: sleeps advance time instantly and are recorded
"""

import json
from collections import defaultdict, deque
from typing import Any, Callable, Deque, Dict, List, Tuple, Union

import pytest

from meta_insights.config import InsightsSettings
from meta_insights.insights.session import InsightsSession
from meta_insights.utils import SimulatedClock

Scripted = Union[str, dict, list, Exception, Callable[[Dict[str, Any]], Any]]


class FakeTransport:
    api_version = "v23.0"
    account_path = "act_123"

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self._routes: Dict[Tuple[str, str], Deque[Tuple[Scripted, bool]]] = defaultdict(deque)

    def add(self, method: str, path: str, response: Scripted, *, sticky: bool = False) -> "FakeTransport":
        """Queue a response. Sticky responses are returned for every further call."""
        self._routes[(method, path)].append((response, sticky))
        return self

    def send(self, method: str, path: str, params: Dict[str, Any] = None) -> str:
        params = dict(params or {})
        self.calls.append((method, path, params))
        return self._respond((method, path), params)

    def get_url(self, url: str) -> str:
        self.calls.append(("GET", url, {}))
        return self._respond(("GET", url), {})

    def calls_to(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [p for m, pa, p in self.calls if m == method and pa == path]

    def _respond(self, key: Tuple[str, str], params: Dict[str, Any]) -> str:
        queue = self._routes.get(key)
        if not queue:
            raise AssertionError(f"Unexpected call {key}")
        response, sticky = queue[0]
        if not sticky:
            queue.popleft()
        if callable(response) and not isinstance(response, Exception):
            response = response(params)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


def job_status(status: str, percent: float = 0) -> Dict[str, Any]:
    return {"id": "job", "async_status": status, "async_percent_completion": percent}


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> SimulatedClock:
    return SimulatedClock()


@pytest.fixture
def settings() -> InsightsSettings:
    return InsightsSettings()


@pytest.fixture
def session(transport: FakeTransport, clock: SimulatedClock, settings: InsightsSettings) -> InsightsSession:
    return InsightsSession(transport=transport, settings=settings, clock=clock)
