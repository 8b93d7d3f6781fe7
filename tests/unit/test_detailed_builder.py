"""Tests for the Detailed Issue Builder."""

from __future__ import annotations

import pytest

from cybershieldx.scanner.detailed import (
    ComplianceCheckProcessor,
    DetailedIssueBuilder,
    NetworkScanProcessor,
    SectionProcessor,
    VulnerabilityScanProcessor,
    build_remediation_plan,
    create_issue,
)
from cybershieldx.scanner.detailed.builder import client_info
from cybershieldx.scanner.detailed.processors import wireless_severity
from cybershieldx.scanner.detailed.remediation import (
    database_vulnerability_steps,
    remediation_difficulty,
    web_vulnerability_steps,
)


class ExplodingProcessor(SectionProcessor):
    name = "explodingScan"

    def empty_section(self):
        return {"issues": []}

    def process(self, data, section):
        raise RuntimeError("processor bug")


@pytest.fixture
def builder(fixed_clock) -> DetailedIssueBuilder:
    return DetailedIssueBuilder(clock=fixed_clock)


def _titles(section):
    return [i["title"] for i in section["issues"]]


class TestCreateIssue:
    @pytest.mark.parametrize("severity,difficulty", [
        ("critical", "High"),
        ("high", "Medium to High"),
        ("medium", "Medium"),
        ("low", "Low to Medium"),
    ])
    def test_difficulty_from_severity(self, severity, difficulty):
        issue = create_issue("t", "d", "i", severity, "Compliance", "GDPR Requirements", "r")
        assert issue.remediation_difficulty == difficulty
        assert remediation_difficulty(severity) == difficulty

    def test_invalid_severity_rejected(self):
        with pytest.raises(ValueError):
            create_issue("t", "d", "i", "severe", "Malware", "System", "r")


class TestNetworkSection:
    def test_network_scan_shape(self, builder, network_raw):
        report = builder.analyze_results(network_raw, "client-7")
        section = report["networkScan"]

        assert _titles(section) == [
            "Potentially insecure service running: ftp on port 21",
            "Detected 2 potentially unauthorized devices on the network",
            "Firewall is disabled",
        ]
        assert [i["severity"] for i in section["issues"]] == ["critical", "medium", "critical"]
        assert section["firewallStatus"]["enabled"] is False
        assert len(section["openPorts"]) == 2
        assert section["vulnerableServices"][0]["port"] == 21

    def test_devices_are_masked(self, builder, network_raw):
        devices = builder.analyze_results(network_raw, "c")["networkScan"]["networkDevices"]
        assert devices[0]["ipAddress"] == "192.168.1.xxx"
        assert devices[0]["macAddress"] == "aa:bb:cc:XX:XX:XX"
        assert devices[1]["hostname"] == "Unknown"

    def test_authorized_devices_not_flagged(self):
        section = NetworkScanProcessor().build({"network": {"devices": [
            {"ip": "10.0.0.1", "status": "up", "authorized": True},
            {"ip": "10.0.0.2", "status": "down"},
        ]}})
        assert section["issues"] == []

    def test_permissive_firewall_rules(self):
        section = NetworkScanProcessor().build({"networkScan": {"firewallStatus": {
            "enabled": True,
            "rules": [{"action": "allow", "remoteAddress": "any"}, {"action": "block", "remoteAddress": "any"}],
        }}})
        assert [i.title for i in section["issues"]] == ["Overly permissive firewall rules detected"]
        assert section["firewallStatus"]["recommendations"] == ["Review and restrict overly permissive firewall rules"]

    @pytest.mark.parametrize("encryption,severity", [
        ("WEP", "critical"),
        ("Open", "critical"),
        ("WPA", "high"),
        ("WPA-TKIP", "high"),
        ("None", "high"),
        ("WPA2-PSK", None),
        ("WPA3-SAE", None),
    ])
    def test_wireless_severity(self, encryption, severity):
        assert wireless_severity(encryption) == severity

    def test_weak_wireless_adds_vulnerability_note(self):
        section = NetworkScanProcessor().build({"networkScan": {"wirelessSecurity": {"encryption": "WEP"}}})
        assert section["wirelessSecurity"]["vulnerabilities"] == ["Weak encryption (WEP)"]
        assert section["issues"][0].severity == "critical"


class TestSystemSection:
    def test_patches_and_outdated(self, builder):
        raw = {"systemScan": {"patches": {
            "installed": ["KB1"],
            "missing": [{"id": "KB2", "severity": "Critical"}, {"id": "KB3", "severity": "Low"}],
            "lastUpdate": "2024-01-01",
        }}}
        section = builder.analyze_results(raw, "c")["systemScan"]
        assert _titles(section) == ["Missing critical security patches", "System significantly outdated"]
        assert section["osPatches"]["lastUpdateDate"] == "2024-01-01"

    def test_outdated_without_missing_patches(self, builder):
        raw = {"systemScan": {"patches": {"missing": [], "lastUpdate": "2023-12-01T00:00:00Z"}}}
        assert _titles(builder.analyze_results(raw, "c")["systemScan"]) == ["System significantly outdated"]

    def test_recent_update_not_flagged(self, builder):
        raw = {"systemScan": {"patches": {"missing": [], "lastUpdate": "2024-04-15"}}}
        assert builder.analyze_results(raw, "c")["systemScan"]["issues"] == []

    def test_accounts_and_settings(self, builder):
        raw = {"systemScan": {
            "userAccounts": {
                "total": 8,
                "administrators": 3,
                "passwordPolicy": {"minimumLength": 8, "complexityEnabled": False, "expirationDays": 365},
                "dormant": ["old-admin"],
            },
            "securitySettings": {"antivirus": "Active", "diskEncryption": "Full", "autoUpdates": False},
        }}
        section = builder.analyze_results(raw, "c")["systemScan"]
        assert _titles(section) == [
            "Excessive number of administrator accounts",
            "Weak password policy detected",
            "Dormant user accounts detected",
            "Automatic updates disabled",
        ]
        weak = section["issues"][1]["description"]
        assert "minimum length (8)" in weak and "exceeds 90 days" in weak

    def test_system_section_reads_explicit_key_only(self, builder, system_raw):
        assert builder.analyze_results(system_raw, "c")["systemScan"]["issues"] == []


class TestVulnerabilitySection:
    def test_cve_gets_nvd_reference(self, builder):
        raw = {"vulnerabilityScan": {"cveFindings": [
            {"id": "CVE-2024-3094", "severity": "Critical", "exploitable": True,
             "description": "xz backdoor", "affectedSoftware": ["xz-utils"]},
            {"id": "CVE-2023-0001", "severity": "Low"},
        ]}}
        report = builder.analyze_results(raw, "c")
        issue = report["vulnerabilityScan"]["issues"][0]
        assert issue["title"] == "Critical severity vulnerability: CVE-2024-3094"
        assert issue["cveIds"] == ["CVE-2024-3094"]
        assert issue["location"] == "Software: xz-utils"
        assert len(report["vulnerabilityScan"]["cveFindings"]) == 2

        action = report["remediationPlan"]["criticalActions"][0]
        assert "https://nvd.nist.gov/vuln/detail/CVE-2024-3094" in action["resources"]
        assert action["issueId"] == issue["id"]

    def test_software_outdated_severity(self):
        section = VulnerabilityScanProcessor().build({"vulnerabilities": {"softwareVulnerabilities": [
            {"software": "openssl", "version": "1.0.2", "latestVersion": "3.0.13", "vulnerableVersion": True},
            {"software": "curl", "version": "8.5", "latestVersion": "8.7", "vulnerableVersion": False},
            {"software": "bash", "version": "5.2", "latestVersion": "5.2", "vulnerableVersion": False},
        ]}})
        assert [(i.title, i.severity) for i in section["issues"]] == [
            ("Outdated software with security implications: openssl", "high"),
            ("Outdated software with security implications: curl", "medium"),
        ]

    def test_authorization_steps_before_authentication(self):
        assert web_vulnerability_steps("Broken Authorization")[0].startswith("Implement proper access control")
        assert web_vulnerability_steps("Broken Authentication")[0] == "Implement strong password policies."
        assert database_vulnerability_steps("Excessive Privilege")[0].startswith("Apply the principle of least")

    def test_web_and_database_findings(self):
        section = VulnerabilityScanProcessor().build({"vulnerabilities": {
            "webApplications": [{"vulnerabilities": [
                {"url": "https://shop/login", "type": "SQL Injection", "severity": "High"},
                {"url": "https://shop/", "type": "Missing header", "severity": "Low"},
            ]}],
            "databases": [{"name": "orders", "type": "MySQL", "vulnerabilities": [
                {"type": "Weak Password", "severity": "Critical"},
            ]}],
        }})
        assert len(section["webApplicationFindings"]) == 2
        assert [i.title for i in section["issues"]] == [
            "Web application vulnerability: SQL Injection",
            "Database vulnerability: Weak Password",
        ]
        assert section["issues"][1].location == "Database: orders (MySQL)"


class TestMalwareAndCompliance:
    def test_quarantine_lowers_severity(self, builder):
        raw = {"malwareScan": {"filesScanned": 1200, "detections": [
            {"type": "trojan", "name": "Emotet", "path": "/tmp/a", "quarantined": True},
            {"type": "worm", "name": "Conficker", "path": "/tmp/b"},
        ], "suspicious": [{"path": "/tmp/c", "riskScore": 8}, {"path": "/tmp/d", "riskScore": 3}]}}
        section = builder.analyze_results(raw, "c")["malwareScan"]
        assert section["filesScanned"] == 1200
        assert [i["severity"] for i in section["issues"]] == ["medium", "critical", "high"]

    def test_compliance_link_by_location(self, builder):
        raw = {"compliance": {
            "gdpr": {"status": "Non-compliant", "findings": ["no DPA"], "recommendations": ["Sign a DPA"]},
            "pci": {"status": "Compliant", "findings": ["n/a"]},
        }}
        report = builder.analyze_results(raw, "c")
        issues = report["complianceCheck"]["issues"]
        assert [i["title"] for i in issues] == ["GDPR compliance issues detected"]
        assert issues[0]["remediationSteps"] == ["Sign a DPA"]
        assert report["complianceCheck"]["pci"]["status"] == "Compliant"

        action = report["remediationPlan"]["highPriorityActions"][0]
        assert "https://gdpr.eu/checklist/" in action["resources"]
        assert action["estimatedTime"] == "1-3 days"

    def test_empty_compliance_section(self):
        section = ComplianceCheckProcessor().build({})
        assert section == {"gdpr": {}, "iso27001": {}, "pci": {}, "hipaa": {}, "issues": []}


class TestReportAssembly:
    def test_summary_and_plan(self, builder, network_raw):
        report = builder.analyze_results(network_raw, "client-7")
        summary = report["summary"]

        assert summary["scanDate"] == "2024-05-01T10:00:00.000Z"
        assert summary["clientInfo"]["id"] == "client-7"
        # 2 critical, 1 medium
        assert summary["riskScore"] == 55
        assert (summary["criticalIssues"], summary["mediumIssues"], summary["totalIssues"]) == (2, 1, 3)

        plan = report["remediationPlan"]
        assert [len(plan[b]) for b in ("criticalActions", "highPriorityActions",
                                        "mediumPriorityActions", "lowPriorityActions")] == [2, 0, 1, 0]
        assert plan["criticalActions"][0]["title"] == "Remediate: Potentially insecure service running: ftp on port 21"
        assert plan["criticalActions"][0]["verificationSteps"][0] == "Scan the system again after remediation."

    def test_every_issue_has_exactly_one_action(self, builder, network_raw):
        report = builder.analyze_results(network_raw, "c")
        issue_ids = [i["id"] for name in ("networkScan", "systemScan", "vulnerabilityScan",
                                          "malwareScan", "complianceCheck")
                     for i in report[name]["issues"]]
        action_ids = [a["issueId"] for bucket in report["remediationPlan"].values() for a in bucket]
        assert sorted(issue_ids) == sorted(action_ids)

    def test_plan_preserves_issue_order(self):
        issues = [create_issue(f"t{n}", "", "", "high", "Malware", "System", "") for n in range(3)]
        plan = build_remediation_plan(issues)
        assert [a.title for a in plan["highPriorityActions"]] == ["Remediate: t0", "Remediate: t1", "Remediate: t2"]

    def test_client_info_masks_addresses(self, system_raw):
        info = client_info(system_raw, "acme")
        assert info == {
            "id": "acme",
            "name": "web-01",
            "ipAddress": "10.0.0.xxx",
            "macAddress": "AA:BB:CC:XX:XX:XX",
            "osInfo": "Ubuntu 16.04.7 LTS 16.04",
            "systemType": "linux",
        }

    def test_client_info_explicit_blocks_win(self):
        raw = {
            "systemInfo": {"hostname": "fin-laptop", "osDetails": "Windows 11 Pro", "systemType": "laptop"},
            "networkInfo": {"ipAddress": "172.16.4.9", "macAddress": "00-1A-2B-3C-4D-5E"},
        }
        info = client_info(raw, "acme")
        assert info["name"] == "fin-laptop"
        assert info["ipAddress"] == "172.16.4.xxx"
        assert info["macAddress"] == "00-1A-2B-XX-XX-XX"
        assert info["osInfo"] == "Windows 11 Pro"

    def test_empty_input(self, builder):
        report = builder.analyze_results({}, "c")
        assert report["summary"]["riskScore"] == 0
        assert report["summary"]["clientInfo"]["ipAddress"] == "Unknown"
        assert "error" not in report

    def test_fallback_on_processor_failure(self, fixed_clock, network_raw):
        builder = DetailedIssueBuilder(processors=[NetworkScanProcessor(), ExplodingProcessor()], clock=fixed_clock)
        report = builder.analyze_results(network_raw, "client-7")

        assert report["error"] == "processor bug"
        assert report["summary"]["riskScore"] == 100
        assert report["summary"]["totalIssues"] == 0
        assert report["networkScan"]["issues"] == []
        assert report["explodingScan"] == {"issues": []}
        assert all(actions == [] for actions in report["remediationPlan"].values())
