"""Tests for the cybershieldx command line."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from cybershieldx.cli import cli

REPORT = {
    "reportId": "s1-1714557600000",
    "scanId": "s1",
    "scanType": "network",
    "summary": {
        "riskLevel": "low",
        "riskScore": 25,
        "analyzerRiskScore": 25,
        "issueBuilderRiskScore": 55,
        "issueCount": {"critical": 0, "high": 3, "medium": 1, "low": 0, "total": 4},
        "overallStatus": "at risk",
    },
}


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def pipeline():
    fake = MagicMock()
    fake.run.return_value = REPORT
    fake.report_from_raw.return_value = REPORT
    with patch("cybershieldx.create_pipeline", return_value=fake) as factory:
        fake.factory = factory
        yield fake


class TestScanCommand:
    def test_summary_output(self, runner, pipeline):
        result = runner.invoke(cli, ["scan", "--type", "network", "--client-id", "acme", "--scan-id", "s1"])

        assert result.exit_code == 0, result.output
        pipeline.run.assert_called_once_with("network", client_id="acme", scan_id="s1")
        assert "Report s1-1714557600000 (network)" in result.output
        assert "risk: low (analyzer 25, issue builder 55)" in result.output
        assert "issues: 4 (critical 0, high 3, medium 1, low 0)" in result.output

    def test_defaults(self, runner, pipeline):
        result = runner.invoke(cli, ["scan"])
        assert result.exit_code == 0, result.output
        pipeline.run.assert_called_once_with("quick", client_id="local", scan_id=None)
        pipeline.factory.assert_called_once_with(reports_dir=None)

    def test_print_json(self, runner, pipeline, tmp_path):
        result = runner.invoke(cli, ["scan", "--print", "--reports-dir", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["reportId"] == "s1-1714557600000"
        pipeline.factory.assert_called_once_with(reports_dir=str(tmp_path))

    def test_rejects_unknown_type(self, runner, pipeline):
        result = runner.invoke(cli, ["scan", "--type", "deep"])
        assert result.exit_code == 2
        pipeline.run.assert_not_called()


class TestAnalyzeCommand:
    def test_analyze_saved_result(self, runner, pipeline, tmp_path, network_raw):
        raw_file = tmp_path / "raw.json"
        raw_file.write_text(json.dumps(network_raw), encoding="utf-8")

        result = runner.invoke(cli, ["analyze", str(raw_file), "--client-id", "acme"])

        assert result.exit_code == 0, result.output
        pipeline.report_from_raw.assert_called_once_with(network_raw, client_id="acme", scan_id=None)
        assert "status: at risk" in result.output

    def test_invalid_json(self, runner, pipeline, tmp_path):
        raw_file = tmp_path / "raw.json"
        raw_file.write_text("{not json", encoding="utf-8")
        result = runner.invoke(cli, ["analyze", str(raw_file)])
        assert result.exit_code == 1
        assert "is not valid JSON" in result.output

    def test_not_a_raw_result(self, runner, pipeline, tmp_path):
        raw_file = tmp_path / "raw.json"
        raw_file.write_text('{"reportId": "x"}', encoding="utf-8")
        result = runner.invoke(cli, ["analyze", str(raw_file)])
        assert result.exit_code == 1
        assert "no scanType" in result.output
        pipeline.report_from_raw.assert_not_called()

    def test_missing_file(self, runner, pipeline, tmp_path):
        result = runner.invoke(cli, ["analyze", str(tmp_path / "absent.json")])
        assert result.exit_code == 2
