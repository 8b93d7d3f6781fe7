# cybershieldx/scanner/analyzers/full.py
"""
Full scan analyzer.

A full RawScanResult nests what the system and network scans report flat:

    vulnerabilities.system   → osVulnerabilities / weakConfigurations /
                               outdatedSoftware / insecureServices
    vulnerabilities.network  → openVulnerablePorts / weakEncryption /
                               defaultCredentials
    network.devices, network.services, firewall

This analyzer rebuilds the flat system and network inputs from it, runs
both analyzers into the same Analysis (category points add up), then
correlates across domains:

    Breach indicators (≥2 of):
        rootkits found
        more than 2 suspicious connections
        more than 2 suspicious processes, or more than 3 malware files
        suspicious system modifications
    → critical "Possible security breach detected", listed first

    Data protection weaknesses (≥2 of):
        disk encryption off
        firewall off
        a sensitive network service exposed
    → high "Data protection weaknesses"
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from cybershieldx.scanner.analyzers.analysis import Analysis
from cybershieldx.scanner.analyzers.network import NETWORK_VULNERABILITY_GROUPS, NetworkScanAnalyzer
from cybershieldx.scanner.analyzers.system import SystemScanAnalyzer
from cybershieldx.scanner.base import BaseAnalyzer

logger = logging.getLogger(__name__)

SYSTEM_GROUPS = ("osVulnerabilities", "weakConfigurations", "outdatedSoftware", "insecureServices")


def _count(groups: Dict[str, Any], severity: str) -> int:
    return sum(len((g or {}).get(severity) or []) for g in groups.values())


def _with_counts(groups: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(groups)
    result["vulnerabilityCounts"] = {s: _count(groups, s) for s in ("high", "medium", "low")}
    return result


def synthesize_system_vulnerabilities(vulns: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Flat system-scan vulnerability shape from the nested full-scan one.

    Groups are looked up under "system" first, then at the top level. A
    "system" object that is itself a severity group is taken as the OS
    vulnerabilities.
    """
    if not vulns:
        return None
    nested = vulns.get("system") or {}

    groups: Dict[str, Any] = {}
    for name in SYSTEM_GROUPS:
        groups[name] = nested.get(name) or vulns.get(name) or {}
    if not groups["osVulnerabilities"] and any(k in nested for k in ("high", "medium", "low")):
        groups["osVulnerabilities"] = nested

    result = _with_counts(groups)
    result["recommendations"] = nested.get("recommendations") or vulns.get("recommendations") or []
    return result


def synthesize_network_vulnerabilities(vulns: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not vulns:
        return None
    nested = vulns.get("network") or {}
    groups = {name: nested.get(name) or {} for name in NETWORK_VULNERABILITY_GROUPS}
    result = _with_counts(groups)
    result["recommendations"] = nested.get("recommendations") or []
    return result


def breach_indicators(malware: Optional[Dict[str, Any]]) -> int:
    if not malware:
        return 0
    findings = malware.get("findings") or {}
    modifications = malware.get("systemModifications") or {}
    indicators = (
        len(malware.get("rootkits") or []) > 0,
        len(malware.get("suspiciousConnections") or []) > 2,
        (findings.get("suspiciousProcesses") or 0) > 2 or (findings.get("possibleMalwareFound") or 0) > 3,
        len(modifications.get("suspicious") or []) > 0,
    )
    return sum(1 for hit in indicators if hit)


class FullScanAnalyzer(BaseAnalyzer):
    scan_type = "full"
    categories = ("system", "configuration", "network", "services", "vulnerabilities", "malware", "firewall")

    def __init__(self):
        self.system_analyzer = SystemScanAnalyzer()
        self.network_analyzer = NetworkScanAnalyzer()

    def analyze(self, raw: Dict[str, Any], analysis: Analysis) -> None:
        analysis.init_categories(self.categories)
        vulns = raw.get("vulnerabilities")

        if raw.get("system"):
            self.system_analyzer.analyze({
                "scanType": "system",
                "system": raw["system"],
                "config": raw.get("config"),
                "vulnerabilities": synthesize_system_vulnerabilities(vulns),
                "malware": raw.get("malware"),
            }, analysis)

        network = raw.get("network")
        if network:
            self.network_analyzer.analyze({
                "scanType": "network",
                "devices": network.get("devices"),
                "services": network.get("services"),
                "firewall": raw.get("firewall"),
                "vulnerabilities": synthesize_network_vulnerabilities(vulns),
            }, analysis)

        self._data_protection(raw, analysis)
        self._breach(raw, analysis)

    @staticmethod
    def _data_protection(raw: Dict[str, Any], analysis: Analysis) -> None:
        encryption = ((raw.get("config") or {}).get("encryption") or {}).get("encryptionStatus")
        weaknesses = (
            bool(encryption) and not encryption.get("enabled"),
            (raw.get("firewall") or {}).get("status") == "off",
            analysis.has_issues("high", category="network", title_contains="service"),
        )
        if sum(1 for w in weaknesses if w) >= 2:
            analysis.add_issue("high", "security", "Data protection weaknesses",
                               "Multiple data protection mechanisms are disabled or misconfigured")
            analysis.recommend(
                "high", "Strengthen data protection measures",
                "Enable disk encryption, configure firewall properly, and secure or disable sensitive services.",
                first=True,
            )

    @staticmethod
    def _breach(raw: Dict[str, Any], analysis: Analysis) -> None:
        if breach_indicators(raw.get("malware")) < 2:
            return
        logger.warning("Multiple indicators of compromise in full scan results")
        analysis.add_issue("critical", "security", "Possible security breach detected",
                           "Multiple indicators of compromise detected, system may be actively compromised",
                           first=True)
        analysis.recommend(
            "critical", "Isolate this system immediately",
            "Multiple indicators suggest this system may be compromised. "
            "Disconnect from the network and perform forensic analysis.",
            first=True,
        )
