"""Tests for the Reporter and the JSON file sink."""

from __future__ import annotations

import json

import pytest

from cybershieldx.scanner.analyzers import RiskAnalyzer
from cybershieldx.scanner.reporter import (
    JsonFileSink,
    Reporter,
    extract_system_details,
    report_filename,
    system_summary,
)

QUICK_RAW = {
    "scanType": "quick",
    "timestamp": "2024-05-01T10:00:00.000Z",
    "system": {
        "os": {"platform": "linux", "distro": "Debian GNU/Linux", "release": "12", "hostname": "kiosk-3",
               "uptime": "2 days, 1 hours, 0 minutes"},
        "memory": {"total": 8589934592, "usedPercentage": 41},
    },
    "network": {
        "interfaces": [
            {"iface": "lo", "mac": "00:00:00:00:00:00", "ip4": "127.0.0.1", "internal": True},
            {"iface": "eth0", "mac": "AA:BB:CC:11:22:33", "ip4": "10.20.30.40", "operstate": "up"},
        ],
        "localPorts": [{"port": 22, "protocol": "tcp", "service": "ssh", "state": "open"}],
    },
}


class FailingSink:
    def __call__(self, report):
        raise OSError(28, "No space left on device")


@pytest.fixture
def analysis(fixed_clock):
    return RiskAnalyzer(clock=fixed_clock).analyze(QUICK_RAW)


class TestReport:
    def test_report_layout(self, ctx, analysis, memory_sink):
        report = Reporter(ctx).generate_report("scan-1", "quick", QUICK_RAW, analysis)

        assert report["reportId"] == "scan-1-1714557600000"
        assert report["timestamp"] == "2024-05-01T10:00:00.000Z"
        assert set(report) == {"reportId", "scanId", "scanType", "timestamp", "summary", "details",
                               "systemDetails", "scanData", "agentInfo"}
        assert report["summary"]["riskScore"] == analysis["riskScores"]["overall"]
        assert report["summary"]["issueCount"] == {"critical": 0, "high": 1, "medium": 0, "low": 0, "total": 1}
        assert report["summary"]["overallStatus"] == "at risk"
        assert report["details"]["issues"]["high"][0] == {
            "title": "Sensitive ports open",
            "description": "1 sensitive ports are open, including 22",
            "category": "network",
            "severity": "high",
        }
        assert report["agentInfo"]["platform"] == "linux"
        assert memory_sink.reports == [report]

    def test_mac_is_masked_in_scan_data(self, ctx, analysis):
        report = Reporter(ctx).generate_report("scan-1", "quick", QUICK_RAW, analysis)
        iface = report["scanData"]["network"]["interfaces"][1]
        assert iface["mac"] == "AA:BB:CC:XX:XX:XX"
        assert iface["ip4"] == "10.20.30.xxx"
        assert report["systemDetails"]["network"]["interfaces"][1]["mac"] == "AA:BB:CC:XX:XX:XX"
        # raw input keeps its addresses
        assert QUICK_RAW["network"]["interfaces"][1]["mac"] == "AA:BB:CC:11:22:33"

    def test_summary_ip_is_masked(self, ctx, analysis):
        report = Reporter(ctx).generate_report("scan-1", "quick", QUICK_RAW, analysis)
        assert report["summary"]["systemInfo"]["ipAddress"] == "10.20.30.xxx"
        assert "10.20.30.40" not in json.dumps(report)

    def test_issue_text_and_plan_are_masked(self, ctx, fixed_clock, network_raw):
        analysis = RiskAnalyzer(clock=fixed_clock).analyze(network_raw)
        detailed = {
            "summary": {"riskScore": 25},
            "remediationPlan": {"criticalActions": [
                {"title": "Remediate: FTP on 192.168.1.20", "description": "Host aa:bb:cc:00:00:20"},
            ]},
        }
        report = Reporter(ctx).generate_report("scan-2", "network", network_raw, analysis, detailed)

        high = [i["title"] for i in report["details"]["issues"]["high"]]
        assert "FTP service exposed on 192.168.1.xxx" in high
        assert report["details"]["remediationPlan"]["criticalActions"][0] == {
            "title": "Remediate: FTP on 192.168.1.xxx",
            "description": "Host aa:bb:cc:XX:XX:XX",
        }
        assert "192.168.1.20" not in json.dumps(report)
        # analysis itself keeps the raw text
        assert "FTP service exposed on 192.168.1.20" in [i["title"] for i in analysis["issues"]["high"]]

    def test_detailed_scores_side_by_side(self, ctx, analysis):
        detailed = {"summary": {"riskScore": 35}, "remediationPlan": {"criticalActions": []}}
        report = Reporter(ctx).generate_report("scan-1", "quick", QUICK_RAW, analysis, detailed)
        assert report["summary"]["analyzerRiskScore"] == analysis["riskScores"]["overall"]
        assert report["summary"]["issueBuilderRiskScore"] == 35
        assert report["details"]["remediationPlan"] == {"criticalActions": []}

    def test_analysis_error_is_carried(self, ctx, fixed_clock):
        analysis = RiskAnalyzer(clock=fixed_clock).fallback("quick", RuntimeError("bad input"))
        report = Reporter(ctx).generate_report("scan-1", "quick", QUICK_RAW, analysis)
        assert report["analysisError"] == "bad input"
        assert report["summary"]["riskLevel"] == "high"

    def test_generation_failure_yields_error_report(self, ctx, memory_sink):
        report = Reporter(ctx).generate_report("scan-9", "system", QUICK_RAW, "not an analysis")
        assert report["reportId"] == "error-scan-9-1714557600000"
        assert report["summary"]["overallStatus"] == "error"
        assert report["summary"]["riskLevel"] == "unknown"
        assert "error" in report
        assert memory_sink.reports == []

    def test_sink_failure_still_returns_report(self, make_ctx, analysis):
        report = Reporter(make_ctx(sink=FailingSink())).generate_report("scan-1", "quick", QUICK_RAW, analysis)
        assert report["reportId"] == "scan-1-1714557600000"
        assert "error" not in report

    def test_no_sink(self, make_ctx, analysis):
        reporter = Reporter(make_ctx(sink=None))
        assert reporter.persist({"reportId": "x"}) is None


class TestExtraction:
    def test_system_summary(self, system_raw):
        summary = system_summary(system_raw)
        assert summary["os"] == "Ubuntu 16.04.7 LTS 16.04"
        assert summary["hostname"] == "web-01"
        assert summary["cpu"] == "Intel Xeon E5"
        assert summary["memory"] == "16 GB"
        assert summary["memoryUsage"] == "75%"
        assert summary["ipAddress"] == "10.0.0.xxx"
        assert "deviceCount" not in summary

    def test_system_summary_counts_devices(self, network_raw):
        assert system_summary(network_raw) == {"deviceCount": 2}

    def test_system_details(self, system_raw):
        details = extract_system_details(system_raw)
        assert details["hardware"]["disk"][0] == {"mount": "/", "size": "100 GB", "used": "50 GB",
                                                  "usedPercentage": 50}
        assert details["network"]["interfaces"][0]["name"] == "eth0"
        assert details["security"]["users"]["isAdmin"] is True
        assert details["security"]["encryption"] == {"enabled": False, "score": 0}
        assert details["security"]["securitySoftware"] == {"count": 0, "score": 0}

    def test_empty_raw(self):
        assert extract_system_details({}) == {"security": {}}
        assert system_summary({}) == {}


class TestJsonFileSink:
    def test_filename(self):
        report = {"scanId": "abc", "timestamp": "2024-05-01T10:00:00.000Z"}
        assert report_filename(report) == "report-abc-2024-05-01T10-00-00.000Z.json"

    def test_writes_masked_report(self, make_ctx, analysis, tmp_path):
        reports_dir = tmp_path / "out"
        ctx = make_ctx(sink=JsonFileSink(reports_dir))
        Reporter(ctx).generate_report("scan-1", "quick", QUICK_RAW, analysis)

        files = list(reports_dir.iterdir())
        assert [f.name for f in files] == ["report-scan-1-2024-05-01T10-00-00.000Z.json"]
        saved = json.loads(files[0].read_text(encoding="utf-8"))
        assert saved["scanData"]["network"]["interfaces"][1]["mac"] == "AA:BB:CC:XX:XX:XX"

    def test_no_partial_file_on_failure(self, tmp_path):
        sink = JsonFileSink(tmp_path)
        with pytest.raises(TypeError):
            # object() keys cannot be serialized
            sink({"scanId": "bad", "timestamp": "t", "data": {object(): 1}})
        assert list(tmp_path.iterdir()) == []

    def test_returns_path(self, tmp_path):
        path = JsonFileSink(tmp_path)({"scanId": "s", "timestamp": "t"})
        assert path.endswith("report-s-t.json")
