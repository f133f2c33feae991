from __future__ import annotations

import json

import pytest

from flakescan.core.config import Settings
from flakescan.models.domain import PullRequestRef
from flakescan.schemas.report import UnstableLinkReport
from flakescan.telemetry import ReportExporter, exporter_from_settings


def _report(**overrides) -> UnstableLinkReport:
    fields = dict(
        test_type="ut",
        job_url="https://ci.example.com/job/ghpr_verify/",
        start_commit="aaa",
        end_commit="bbb",
        start_pull=PullRequestRef(number=1),
        end_pull=PullRequestRef(number=2),
        pulls=[PullRequestRef(number=1), PullRequestRef(number=2)],
        links=["https://ci.example.com/job/ghpr_verify/10"],
    )
    fields.update(overrides)
    return UnstableLinkReport(**fields)


def test_export_appends_one_line_per_report(tmp_path):
    path = tmp_path / "nested" / "reports.jsonl"
    exporter = ReportExporter(path)
    assert exporter.enabled
    assert path.parent.is_dir()

    exporter.export(_report())
    exporter.export(_report(test_type="kafka-test", links=[]))

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first, second = (json.loads(line) for line in lines)
    assert first["test_type"] == "ut"
    assert first["links"] == ["https://ci.example.com/job/ghpr_verify/10"]
    assert first["pull_numbers"] == [1, 2]
    assert "timestamp" in first and "generated_at" not in first
    assert "pulls" not in first
    assert second["test_type"] == "kafka-test"


def test_disabled_exporter_writes_nothing(tmp_path):
    exporter = ReportExporter(None)
    assert not exporter.enabled
    exporter.export(_report())
    assert list(tmp_path.iterdir()) == []


def test_exporter_from_settings_file_backend(tmp_path):
    path = tmp_path / "out.jsonl"
    exporter = exporter_from_settings(Settings(_env_file=None, report_backend="file", report_path=str(path)))
    assert exporter.path == path


@pytest.mark.parametrize("backend", ["off", "none", "disabled", " OFF "])
def test_exporter_from_settings_disabled_backends(backend):
    exporter = exporter_from_settings(Settings(_env_file=None, report_backend=backend))
    assert not exporter.enabled


def test_exporter_from_settings_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported report backend: bigquery"):
        exporter_from_settings(Settings(_env_file=None, report_backend="bigquery"))
