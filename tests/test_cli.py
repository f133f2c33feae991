from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from flakescan import cli
from flakescan.ci.jenkins_client import JenkinsClient
from flakescan.core.config import Settings
from flakescan.models.domain import PullRequestRef
from flakescan.scm.pull_requests import PullRequestResolver

JOB_URL = "https://ci.example.com/job/acme/job/ghpr_verify/"


def _config(**overrides) -> Settings:
    return Settings(_env_file=None, github_token="token", **overrides)


def _detail(result: str, sha: str) -> dict:
    spec = {"refs": {"pulls": [{"number": 1, "sha": sha}]}}
    return {"result": result, "actions": [{"parameters": [{"name": "JOB_SPEC", "value": json.dumps(spec)}]}]}


@pytest.fixture
def stub_github(monkeypatch):
    pulls = {
        "aaa": PullRequestRef(number=1, merge_commit_sha="aaa", merged_at=datetime(2023, 1, 1, tzinfo=timezone.utc)),
        "bbb": PullRequestRef(number=2, merge_commit_sha="bbb", merged_at=datetime(2023, 1, 10, tzinfo=timezone.utc)),
    }
    monkeypatch.setattr(PullRequestResolver, "find_pull_for_commit", lambda self, sha: pulls.get(sha))
    monkeypatch.setattr(PullRequestResolver, "pulls_merged_between", lambda self, start, end: [])
    monkeypatch.setattr(PullRequestResolver, "last_commit_sha", lambda self, number: {1: "abc123", 2: "def456"}[number])
    return pulls


@pytest.fixture
def stub_jenkins(monkeypatch):
    requests_seen: list[str] = []
    builds = {10: _detail("FAILURE", "abc123"), 11: _detail("SUCCESS", "abc123")}

    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request.url.path)
        if request.url.path.endswith("/ghpr_verify/api/json"):
            return httpx.Response(200, json={"builds": [{"number": n} for n in builds]})
        return httpx.Response(200, json=builds[int(request.url.path.split("/")[-3])])

    def fake_client(config, test_type):
        return JenkinsClient(JOB_URL, transport=httpx.MockTransport(handler))

    monkeypatch.setattr(cli, "build_jenkins_client", fake_client)
    return requests_seen


def test_cli_prints_banner_and_links(stub_github, stub_jenkins, capsys):
    code = cli.main(["--start-commit", "aaa", "--end-commit", "bbb"], config=_config())
    out = capsys.readouterr().out.splitlines()
    assert code == 0
    assert out == ["======Below is the unstable ut ci link======", f"ci link: {JOB_URL}10"]


def test_cli_accepts_positional_commits(stub_github, stub_jenkins, capsys):
    code = cli.main(["aaa", "bbb", "--test-type", "kafka-test"], config=_config())
    out = capsys.readouterr().out
    assert code == 0
    assert "======Below is the unstable kafka-test ci link======" in out


def test_cli_reports_order_error_without_scanning(stub_github, stub_jenkins, capsys):
    code = cli.main(["--start-commit", "bbb", "--end-commit", "aaa"], config=_config())
    out = capsys.readouterr().out
    assert code == 1
    assert "[ERROR] start commit merged time is after end commit merged time" in out
    assert "ci link" not in out
    assert stub_jenkins == []


def test_cli_reports_unresolved_commit(stub_github, stub_jenkins, capsys):
    code = cli.main(["--start-commit", "zzz", "--end-commit", "bbb"], config=_config())
    assert code == 1
    assert "[ERROR] failed to get start pr with commit: zzz" in capsys.readouterr().out


def test_cli_rejects_unknown_test_type(capsys):
    code = cli.main(["aaa", "bbb", "--test-type", "e2e"], config=_config())
    assert code == 2
    assert "unknown test type 'e2e'" in capsys.readouterr().out


def test_cli_requires_token(stub_jenkins, capsys):
    code = cli.main(["aaa", "bbb"], config=Settings(_env_file=None, github_token=None))
    assert code == 2
    assert "GitHub token is required" in capsys.readouterr().out


def test_cli_token_flag_overrides_settings(stub_github, stub_jenkins, capsys):
    code = cli.main(["aaa", "bbb", "--github-token", "flag-token"], config=Settings(_env_file=None, github_token=None))
    assert code == 0


def test_cli_requires_both_commits():
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--start-commit", "aaa"], config=_config())
    assert excinfo.value.code == 2


def test_cli_rejects_mixed_commit_surfaces():
    with pytest.raises(SystemExit):
        cli.main(["aaa", "bbb", "--start-commit", "ccc"], config=_config())


def test_cli_writes_report_file(stub_github, stub_jenkins, tmp_path):
    report_path = tmp_path / "report.jsonl"
    code = cli.main(["aaa", "bbb", "--report-path", str(report_path)], config=_config())
    assert code == 0
    event = json.loads(report_path.read_text(encoding="utf-8"))
    assert event["links"] == [f"{JOB_URL}10"]
    assert event["commits"] == ["abc123", "def456"]


def test_apply_overrides_leaves_unset_fields():
    args = cli.build_parser().parse_args(["aaa", "bbb", "--owner", "acme", "--fail-fast"])
    config = cli.apply_overrides(_config(), args)
    assert config.github_owner == "acme"
    assert config.github_repo == "tiflow"
    assert config.fail_fast is True
    assert config.report_backend == "off"


def test_cli_rejects_unsupported_report_backend(stub_github, stub_jenkins, capsys):
    code = cli.main(["aaa", "bbb"], config=_config(report_backend="bigquery"))
    out = capsys.readouterr().out
    assert code == 2
    assert "[ERROR] Unsupported report backend: bigquery" in out
    assert stub_jenkins == []


def test_cli_reports_unusable_report_path(stub_github, stub_jenkins, tmp_path, capsys):
    blocker = tmp_path / "file.txt"
    blocker.write_text("not a directory", encoding="utf-8")
    code = cli.main(["aaa", "bbb", "--report-path", str(blocker / "report.jsonl")], config=_config())
    out = capsys.readouterr().out
    assert code == 2
    assert "[ERROR] cannot prepare report file" in out
    assert stub_jenkins == []
