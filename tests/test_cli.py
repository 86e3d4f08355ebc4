import json

import pandas as pd
import pytest

from meta_insights import cli
from meta_insights.infrastructure.error_handling import JobFailed
from meta_insights.insights.models import JobMode, ReportPage, ReportResult


@pytest.fixture
def env(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "load_dotenv", lambda *a, **k: None)
    monkeypatch.setenv("FB_AD_ACCOUNT_ID", "123")
    monkeypatch.setenv("FB_ACCESS_TOKEN", "tok")
    return ["--settings", str(tmp_path / "missing.yaml")]


class _Requester:
    outcome = None
    seen = []

    def __init__(self, session):
        self.session = session

    def request_insights(self, request):
        _Requester.seen.append(request)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def test_build_request_from_args():
    args = cli.build_parser().parse_args([
        "report", "--target", "1", "--target", "2",
        "--fields", "spend, ad_id", "--level", "ad",
        "--since", "2024-01-01", "--until", "2024-01-31",
        "--date-preset", "last_7d",
        "--filtering", '[{"field": "ad.effective_status", "operator": "IN", "value": ["ACTIVE"]}]',
        "--param", "action_breakdowns=action_type", "--async",
    ])

    request = cli.build_request(args)

    assert request.targets == ("1", "2")
    assert request.fields == ("spend", "ad_id")
    assert request.time_range == {"since": "2024-01-01", "until": "2024-01-31"}
    assert request.date_preset is None
    assert request.filtering[0]["operator"] == "IN"
    assert request.params == {"action_breakdowns": "action_type"}
    assert request.mode is JobMode.ASYNC
    assert request.simplify is True


def test_parse_kv_rejects_bare_words():
    with pytest.raises(ValueError):
        cli._parse_kv(["limit"])


def test_result_frame_joins_groups():
    outcome = [
        ReportResult(pages=[ReportPage(rows=[{"a": 1}])], table=pd.DataFrame({"a": [1]})),
        ReportResult(pages=[ReportPage(rows=[{"a": 2, "b": 3}])]),
    ]

    df = cli.result_frame(outcome)

    assert list(df["a"]) == [1, 2]
    assert list(df.columns) == ["a", "b"]


def test_write_output_csv_and_json(tmp_path):
    df = pd.DataFrame({"ad_id": ["1", "2"], "spend": [1.5, 2.0]})

    cli.write_output(df, str(tmp_path / "out.csv"))
    cli.write_output(df, str(tmp_path / "out.json"))

    assert pd.read_csv(tmp_path / "out.csv")["spend"].tolist() == [1.5, 2.0]
    assert json.loads((tmp_path / "out.json").read_text())[1]["ad_id"] == "2"


def test_write_output_unknown_suffix(tmp_path):
    with pytest.raises(SystemExit):
        cli.write_output(pd.DataFrame({"a": [1]}), str(tmp_path / "out.parquet"))


def test_main_report_success(env, monkeypatch, tmp_path):
    _Requester.outcome = ReportResult(pages=[ReportPage(rows=[{"spend": "3.2"}])])
    _Requester.seen = []
    monkeypatch.setattr(cli, "ReportRequester", _Requester)
    out = tmp_path / "report.csv"

    code = cli.main(env + ["report", "--fields", "spend", "--output", str(out)])

    assert code == 0
    assert _Requester.seen[0].mode is JobMode.SYNC
    assert pd.read_csv(out)["spend"].tolist() == [3.2]


def test_main_report_failure_exit_code(env, monkeypatch, capsys):
    _Requester.outcome = JobFailed("777", {"async_status": "Job Failed"})
    monkeypatch.setattr(cli, "ReportRequester", _Requester)

    assert cli.main(env + ["report", "--fields", "spend"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_main_missing_credentials(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "load_dotenv", lambda *a, **k: None)
    monkeypatch.delenv("FB_AD_ACCOUNT_ID", raising=False)
    monkeypatch.delenv("FB_ACCESS_TOKEN", raising=False)

    assert cli.main(["--settings", str(tmp_path / "none.yaml"), "search", "running"]) == 1
