"""Tests for the Risk Analyzer."""

from __future__ import annotations

import copy

import pytest

from cybershieldx.scanner.analyzers import RiskAnalyzer, deduplicate_recommendations
from cybershieldx.scanner.analyzers.full import (
    breach_indicators,
    synthesize_network_vulnerabilities,
    synthesize_system_vulnerabilities,
)
from cybershieldx.scanner.base import SEVERITIES


@pytest.fixture
def analyzer(fixed_clock) -> RiskAnalyzer:
    return RiskAnalyzer(clock=fixed_clock)


def _titles(result, severity):
    return [i["title"] for i in result["issues"][severity]]


def _all_issues(result):
    return [i for s in SEVERITIES for i in result["issues"][s]]


class TestDispatch:
    def test_unknown_scan_type(self, analyzer):
        result = analyzer.analyze({"scanType": "deep-space"})
        assert result["riskScores"] == {"overall": 0}
        assert result["riskLevel"] == "low"
        assert _all_issues(result) == []
        assert result["summary"]["overallStatus"] == "excellent"

    def test_fallback_on_failure(self, analyzer):
        # disk entries must be dicts
        result = analyzer.analyze({"scanType": "quick", "system": {"disk": ["/dev/sda1"]}})
        assert result["riskScores"] == {"overall": 100}
        assert result["riskLevel"] == "high"
        assert result["summary"]["overallStatus"] == "unknown"
        assert result["recommendations"][0]["recommendation"] == "Analysis failed, manual investigation required"
        assert "error" in result

    def test_timestamp_from_clock(self, analyzer):
        assert analyzer.analyze({"scanType": "quick"})["timestamp"] == "2024-05-01T10:00:00.000Z"

    def test_severity_set_is_closed(self, analyzer, system_raw, network_raw):
        for raw in (system_raw, network_raw):
            result = analyzer.analyze(raw)
            assert set(result["issues"]) == set(SEVERITIES)
            for severity, issues in result["issues"].items():
                assert all(i["severity"] == severity for i in issues)

    def test_issue_ids_unique(self, analyzer, system_raw):
        ids = [i["id"] for i in _all_issues(analyzer.analyze(system_raw))]
        assert len(ids) == len(set(ids))
        assert all(i.startswith("ISS-") and len(i) == 12 for i in ids)

    def test_input_not_mutated(self, analyzer, system_raw):
        before = copy.deepcopy(system_raw)
        analyzer.analyze(system_raw)
        assert system_raw == before


class TestQuickScan:
    def test_disk_memory_and_ports(self, analyzer):
        raw = {
            "scanType": "quick",
            "system": {
                "disk": [{"mount": "/", "usedPercentage": 95}, {"mount": "/home", "usedPercentage": 85}],
                "memory": {"usedPercentage": 93},
            },
            "network": {"localPorts": [{"port": p} for p in (22, 80, 443, 3389, 8000, 8001,
                                                              8002, 8003, 8004, 8005, 8006)]},
        }
        result = analyzer.analyze(raw)

        assert _titles(result, "high") == ["Sensitive ports open"]
        assert _titles(result, "medium") == ["Critical disk space on /", "High memory usage", "Many open ports"]
        assert _titles(result, "low") == ["Low disk space on /home"]
        assert result["riskScores"]["system"] == 30
        assert result["riskScores"]["network"] == 35
        recs = [r["recommendation"] for r in result["recommendations"]]
        assert recs == ["Run a full security scan", "Close unnecessary open ports", "Free up disk space"]

    def test_clean_quick_scan(self, analyzer):
        result = analyzer.analyze({"scanType": "quick", "system": {}, "network": {"localPorts": []}})
        assert result["riskScores"] == {"system": 0, "network": 0, "overall": 0}
        assert result["recommendations"] == []


class TestSystemScan:
    def test_firewall_disabled_scenario(self, analyzer):
        raw = {
            "scanType": "system",
            "config": {"firewallConfig": {"firewallStatus": {"enabled": False}, "score": 0, "rating": "poor"}},
        }
        result = analyzer.analyze(raw)

        assert _titles(result, "high") == ["Firewall disabled"]
        assert sum(len(v) for v in result["issues"].values()) == 1
        assert result["riskScores"]["configuration"] >= 25
        assert result["riskLevel"] in ("medium", "high")

    def test_partial_profiles_count_as_disabled(self, analyzer):
        raw = {
            "scanType": "system",
            "config": {"firewallConfig": {"firewallStatus": {"enabled": True, "allProfilesEnabled": False},
                                          "score": 50}},
        }
        assert "Firewall disabled" in _titles(analyzer.analyze(raw), "high")

    def test_findings(self, analyzer, system_raw):
        result = analyzer.analyze(system_raw)
        high = _titles(result, "high")
        assert "Outdated Ubuntu version" in high
        assert "Running as administrator/root" in high
        assert "Disk encryption not enabled" in high
        assert "No security software detected" in high
        assert "Excessive system uptime" in _titles(result, "medium")
        assert result["riskScores"]["system"] == 35
        # overallScore present: configuration is the sum of finding points, capped
        assert result["riskScores"]["configuration"] == 75

    def test_configuration_from_mean_when_no_overall(self, analyzer):
        raw = {
            "scanType": "system",
            "config": {
                "users": {"isAdmin": False, "score": 100},
                "updates": {"updateStatus": {}, "error": "apt-get: exit 100", "rating": "unknown"},
            },
        }
        # scores 100 and 0 (missing numeric score) → mean 50
        assert analyzer.analyze(raw)["riskScores"]["configuration"] == 50

    def test_password_and_update_policy(self, analyzer):
        raw = {
            "scanType": "system",
            "config": {
                "authentication": {"passwordPolicy": {"minPasswordLength": 6, "maxPasswordAge": 365}, "score": 20},
                "updates": {"updateStatus": {"pendingUpdates": 4, "daysSinceLastUpdate": 75}, "score": 50},
                "overallScore": 35,
            },
        }
        result = analyzer.analyze(raw)
        assert "Weak password policy" in _titles(result, "high")
        assert "System updates significantly delayed" in _titles(result, "high")
        assert "Weak password expiration policy" in _titles(result, "medium")
        assert "Pending system updates" in _titles(result, "medium")
        assert result["riskScores"]["configuration"] == 65

    def test_vulnerabilities_and_malware(self, analyzer):
        raw = {
            "scanType": "system",
            "vulnerabilities": {
                "osVulnerabilities": {"high": [{"name": "CVE-2024-1086", "description": "nf_tables UAF"}]},
                "vulnerabilityCounts": {"high": 1, "medium": 2, "low": 0},
                "recommendations": [{"priority": "high", "recommendation": "Patch the kernel", "issue": "UAF"}],
            },
            "malware": {"findings": {"suspiciousProcesses": 2, "suspiciousConnections": 1}},
        }
        result = analyzer.analyze(raw)
        assert "CVE-2024-1086" in _titles(result, "high")
        assert "Suspicious processes detected" in _titles(result, "high")
        assert result["riskScores"]["vulnerabilities"] == 45
        assert result["riskScores"]["malware"] == 65
        assert result["recommendations"][0]["recommendation"] == "Patch the kernel"

    def test_clean_system_gets_maintenance_advice(self, analyzer):
        result = analyzer.analyze({"scanType": "system", "config": {"users": {"score": 100}, "overallScore": 100}})
        assert [r["recommendation"] for r in result["recommendations"]] == ["Maintain good security practices"]


class TestNetworkScan:
    def test_quiet_network_scenario(self, analyzer):
        raw = {
            "scanType": "network",
            "devices": [],
            "services": {"services": {}},
            "firewall": {"status": "on", "rulesCount": 12},
        }
        result = analyzer.analyze(raw)
        assert _all_issues(result) == []
        assert result["riskScores"]["overall"] == 0
        assert result["riskLevel"] == "low"

    def test_exposed_services_and_firewall_off(self, analyzer, network_raw):
        result = analyzer.analyze(network_raw)
        high = _titles(result, "high")
        assert "Sensitive services exposed" in high
        assert "FTP service exposed on 192.168.1.20" in high
        assert "Firewall disabled" in high
        assert "RDP service exposed on 192.168.1.20" in _titles(result, "medium")
        # off firewall is not also flagged for its rule count
        assert "Few firewall rules configured" not in _titles(result, "medium")
        assert result["riskScores"]["services"] == 25
        assert result["riskScores"]["firewall"] == 25
        recs = [r["recommendation"] for r in result["recommendations"]]
        assert recs == ["Disable or secure sensitive network services", "Enable the firewall"]

    def test_unknown_devices_and_unknown_firewall(self, analyzer):
        raw = {
            "scanType": "network",
            "devices": [{"ip": f"10.0.0.{i}", "hostname": "", "vendor": "Unknown"} for i in range(25)],
            "firewall": {"status": "unknown"},
        }
        result = analyzer.analyze(raw)
        assert "Large number of devices on network" in _titles(result, "low")
        assert "Multiple unknown devices on network" in _titles(result, "medium")
        assert "Firewall status unknown" in _titles(result, "medium")
        assert result["riskScores"]["devices"] == 20
        assert "Identify all devices on your network" in [r["recommendation"] for r in result["recommendations"]]


class TestFullScan:
    @pytest.fixture
    def breached_raw(self, system_raw, network_raw):
        return {
            "scanType": "full",
            "system": system_raw["system"],
            "config": system_raw["config"],
            "network": {"devices": network_raw["devices"], "services": network_raw["services"]},
            "firewall": network_raw["firewall"],
            "malware": {
                "findings": {"suspiciousProcesses": 3},
                "rootkits": [{"name": "Diamorphine"}],
                "suspiciousConnections": [],
                "systemModifications": {"suspicious": []},
            },
        }

    def test_breach_is_first_critical_and_first_recommendation(self, analyzer, breached_raw):
        result = analyzer.analyze(breached_raw)
        assert result["issues"]["critical"][0]["title"] == "Possible security breach detected"
        assert result["recommendations"][0]["recommendation"] == "Isolate this system immediately"
        assert result["summary"]["overallStatus"] == "critical"

    def test_data_protection_correlation(self, analyzer, breached_raw):
        result = analyzer.analyze(breached_raw)
        assert "Data protection weaknesses" in _titles(result, "high")
        recs = [r["recommendation"] for r in result["recommendations"]]
        assert "Strengthen data protection measures" in recs

    def test_categories_merge(self, analyzer, breached_raw):
        scores = analyzer.analyze(breached_raw)["riskScores"]
        for category in ("system", "configuration", "services", "firewall", "malware"):
            assert category in scores
        assert scores["services"] == 25
        assert all(0 <= v <= 100 for v in scores.values())

    def test_breach_indicator_count(self):
        assert breach_indicators(None) == 0
        assert breach_indicators({"rootkits": [1], "suspiciousConnections": [1, 2, 3]}) == 2
        assert breach_indicators({"findings": {"possibleMalwareFound": 4},
                                  "systemModifications": {"suspicious": ["hosts"]}}) == 2
        assert breach_indicators({"findings": {"suspiciousProcesses": 2}}) == 0

    def test_vulnerability_synthesis_derives_counts(self):
        vulns = {
            "system": {"osVulnerabilities": {"high": [{"name": "a"}], "low": [{"name": "b"}]},
                       "insecureServices": {"medium": [{"name": "telnetd"}]}},
            "network": {"weakEncryption": {"high": [{"name": "TLS 1.0"}, {"name": "SSLv3"}]}},
        }
        system = synthesize_system_vulnerabilities(vulns)
        network = synthesize_network_vulnerabilities(vulns)
        assert system["vulnerabilityCounts"] == {"high": 1, "medium": 1, "low": 1}
        assert network["vulnerabilityCounts"] == {"high": 2, "medium": 0, "low": 0}
        assert synthesize_system_vulnerabilities(None) is None


class TestRecommendationDedup:
    def test_case_insensitive_first_wins(self):
        recs = [
            {"priority": "high", "recommendation": "Enable the firewall", "details": "first"},
            {"priority": "low", "recommendation": "enable the FIREWALL", "details": "second"},
            {"priority": "medium", "recommendation": "Free up disk space", "details": ""},
        ]
        unique = deduplicate_recommendations(recs)
        assert [r["details"] for r in unique] == ["first", ""]

    def test_idempotent(self):
        recs = [{"recommendation": "A"}, {"recommendation": "a"}, {"recommendation": "B"}]
        once = deduplicate_recommendations(recs)
        assert deduplicate_recommendations(once) == once

    def test_analysis_output_has_no_duplicates(self, analyzer, system_raw):
        raw = dict(system_raw)
        raw["vulnerabilities"] = {"recommendations": [
            {"priority": "high", "recommendation": "Patch now"},
            {"priority": "high", "recommendation": "PATCH NOW"},
        ]}
        texts = [r["recommendation"].lower() for r in analyzer.analyze(raw)["recommendations"]]
        assert len(texts) == len(set(texts))
