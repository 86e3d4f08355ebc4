from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Protocol

from ..config import InsightsSettings
from ..integrations.graph_client import AccountAuth, GraphTransport
from ..utils import Clock, RealClock


class Transport(Protocol):
    api_version: str
    account_path: str

    def send(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> str: ...

    def get_url(self, url: str) -> str: ...


@dataclass
class InsightsSession:
    """Everything the insights components share for one account, passed explicitly."""

    transport: Transport
    settings: InsightsSettings = field(default_factory=InsightsSettings)
    # sleeping and deadlines run on wall time; NOW_UTC only pins report dates
    clock: Clock = field(default_factory=RealClock)
    cancel: Optional[threading.Event] = None

    @staticmethod
    def for_account(
        account: AccountAuth,
        settings: Optional[InsightsSettings] = None,
        *,
        clock: Optional[Clock] = None,
        cancel: Optional[threading.Event] = None,
    ) -> "InsightsSession":
        settings = settings or InsightsSettings()
        if not account.api_version:
            account = replace(account, api_version=settings.api_version)
        transport = GraphTransport(account, timeout=settings.timeout_sec)
        return InsightsSession(
            transport=transport,
            settings=settings,
            clock=clock or RealClock(),
            cancel=cancel,
        )

    @property
    def account_path(self) -> str:
        return self.transport.account_path

    def sleep(self, seconds: float) -> None:
        self.clock.sleep(seconds, self.cancel)
