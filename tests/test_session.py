import pytest

from meta_insights.config import InsightsSettings
from meta_insights.infrastructure.error_handling import InsightsTimeout
from meta_insights.insights.models import JobHandle
from meta_insights.insights.polling import AsyncJobPoller
from meta_insights.insights.session import InsightsSession
from meta_insights.integrations.graph_client import AccountAuth, GraphTransport
from meta_insights.utils import RealClock, meta_range_last_n_full_days

from tests.conftest import job_status


@pytest.fixture
def pinned_today(monkeypatch):
    monkeypatch.setenv("NOW_UTC", "2024-01-01T00:00:00Z")


class TestPinnedDate:
    def test_sessions_keep_wall_clock(self, pinned_today, transport):
        assert isinstance(InsightsSession(transport=transport).clock, RealClock)
        session = InsightsSession.for_account(AccountAuth(account_id="1", access_token="t"))
        assert isinstance(session.clock, RealClock)

    def test_report_dates_still_pinned(self, pinned_today):
        assert meta_range_last_n_full_days(1, "UTC") == {"since": "2023-12-31", "until": "2023-12-31"}

    def test_poll_deadline_fires(self, pinned_today, transport, monkeypatch):
        slept = []
        monkeypatch.setattr(RealClock, "sleep", lambda self, seconds, cancel=None: slept.append(seconds))
        transport.add("GET", "job", job_status("Job Running", 10), sticky=True)
        session = InsightsSession(transport=transport, settings=InsightsSettings())
        started = session.clock.now_utc()
        # submitted a year ago, so the first deadline check trips
        handle = JobHandle("job", started.replace(year=started.year - 1))

        with pytest.raises(InsightsTimeout):
            AsyncJobPoller(session).poll_until_terminal(handle)

        assert slept == []
        assert len(transport.calls_to("GET", "job")) == 1


class TestAccountNotMutated:
    def test_for_account_copies_account(self):
        account = AccountAuth(account_id="1", access_token="t")

        session = InsightsSession.for_account(account, InsightsSettings(api_version="v21.0"))

        assert account.api_version is None
        assert session.transport.api_version == "v21.0"

    def test_transport_defaults_version_without_writing_it(self):
        account = AccountAuth(account_id="1", access_token="t")

        assert GraphTransport(account).api_version == "v23.0"
        assert account.api_version is None
