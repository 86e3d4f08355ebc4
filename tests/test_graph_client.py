from urllib.parse import parse_qs

import pytest
import requests
import responses

from meta_insights.infrastructure.error_handling import (
    ConfigError,
    DecodeError,
    InsightsDataLimitError,
    TransportError,
)
from meta_insights.integrations.graph_client import (
    AccountAuth,
    GraphTransport,
    _normalize_account_id,
    decode_response,
)

BASE = "https://graph.facebook.com/v23.0"


@pytest.fixture
def graph():
    return GraphTransport(AccountAuth(account_id="123", access_token="tok"))


class TestSend:
    @responses.activate
    def test_get_adds_token_and_params(self, graph):
        responses.add(responses.GET, f"{BASE}/act_123/insights", body='{"data": []}', status=200)

        body = graph.send("GET", "act_123/insights", {"fields": ["spend", "clicks"], "limit": 100})

        assert body == '{"data": []}'
        qs = parse_qs(responses.calls[0].request.url.split("?", 1)[1])
        assert qs["access_token"] == ["tok"]
        assert qs["fields"] == ["spend,clicks"]
        assert qs["limit"] == ["100"]

    @responses.activate
    def test_post_sends_form_data(self, graph):
        responses.add(responses.POST, f"{BASE}/act_123/insights", json={"report_run_id": "99"})

        graph.send("POST", "act_123/insights", {"time_range": {"since": "2024-01-01", "until": "2024-01-02"}})

        form = parse_qs(responses.calls[0].request.body)
        assert form["time_range"] == ['{"since": "2024-01-01", "until": "2024-01-02"}']
        assert form["access_token"] == ["tok"]

    @responses.activate
    def test_root_path(self, graph):
        responses.add(responses.POST, f"{BASE}/", json=[])

        assert graph.send("POST", "", {"batch": "[]"}) == "[]"

    @responses.activate
    def test_data_limit_error_is_typed(self, graph):
        responses.add(
            responses.GET,
            f"{BASE}/act_123/insights",
            json={"error": {"message": "Please reduce the amount of data", "code": 100, "error_subcode": 1487534}},
            status=400,
        )

        with pytest.raises(InsightsDataLimitError) as exc:
            graph.send("GET", "act_123/insights")

        assert exc.value.status == 400
        assert exc.value.subcode == 1487534

    @responses.activate
    def test_http_error(self, graph):
        responses.add(responses.GET, f"{BASE}/42", body="upstream exploded", status=502)

        with pytest.raises(TransportError, match="502") as exc:
            graph.send("GET", "42")

        assert not isinstance(exc.value, InsightsDataLimitError)
        assert len(responses.calls) == 1

    @responses.activate
    def test_connection_error_wrapped(self, graph):
        responses.add(responses.GET, f"{BASE}/42", body=requests.ConnectionError("refused"))

        with pytest.raises(TransportError):
            graph.send("GET", "42")

    def test_rejects_other_methods(self, graph):
        with pytest.raises(ValueError):
            graph.send("DELETE", "42")


@responses.activate
def test_get_url_follows_absolute_cursor(graph):
    url = f"{BASE}/act_123/insights?after=abc&access_token=tok"
    responses.add(responses.GET, url, body='{"data": [1]}')

    assert graph.get_url(url) == '{"data": [1]}'


def test_account_paths():
    assert _normalize_account_id("act_55") == ("55", "act_55")
    assert _normalize_account_id(" 55 ") == ("55", "act_55")
    assert AccountAuth(account_id="55", access_token="t").account_path == "act_55"


def test_api_version_defaulted():
    graph = GraphTransport(AccountAuth(account_id="1", access_token="t"))
    assert graph.api_version == "v23.0"


def test_account_from_env(monkeypatch):
    monkeypatch.setenv("FB_AD_ACCOUNT_ID", "act_9")
    monkeypatch.setenv("FB_ACCESS_TOKEN", "secret")
    monkeypatch.setenv("FB_API_VERSION", "v22.0")

    account = AccountAuth.from_env()

    assert account.account_path == "act_9"
    assert account.api_version == "v22.0"


def test_account_from_env_missing(monkeypatch):
    monkeypatch.delenv("FB_AD_ACCOUNT_ID", raising=False)
    monkeypatch.delenv("FB_ACCESS_TOKEN", raising=False)

    with pytest.raises(ConfigError, match="FB_ACCESS_TOKEN"):
        AccountAuth.from_env()


class TestDecodeResponse:
    def test_object(self):
        assert decode_response('{"a": 1}') == {"a": 1}

    def test_bytes_and_newlines(self):
        assert decode_response(b'{"a":\n 1}') == {"a": 1}

    @pytest.mark.parametrize("raw", [None, "", "   ", "{oops", '"just a string"', "42"])
    def test_rejects(self, raw):
        with pytest.raises(DecodeError):
            decode_response(raw)
