# cybershieldx/scanner/analyzers/network.py
"""
Network scan analyzer.

Reads discovered devices, the per-host service map, the host firewall
state and, when a provider supplied them, network vulnerability results.

Categories: devices, services, vulnerabilities, firewall
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from cybershieldx.scanner.analyzers.analysis import (
    Analysis,
    add_vulnerability_group,
    carry_recommendations,
)
from cybershieldx.scanner.base import BaseAnalyzer
from cybershieldx.utils.scoring import weighted_vulnerability_score

logger = logging.getLogger(__name__)

SENSITIVE_SERVICE_PORTS = {21, 22, 23, 25, 80, 135, 139, 445, 1433, 1434, 3306, 3389, 5432, 5900, 5901}

NETWORK_VULNERABILITY_GROUPS = ("openVulnerablePorts", "weakEncryption", "defaultCredentials")


def _is_unidentified(device: Dict[str, Any]) -> bool:
    hostname = device.get("hostname")
    vendor = device.get("vendor")
    return not hostname or hostname == "Unknown" or not vendor or vendor == "Unknown"


class NetworkScanAnalyzer(BaseAnalyzer):
    scan_type = "network"
    categories = ("devices", "services", "vulnerabilities", "firewall")

    def analyze(self, raw: Dict[str, Any], analysis: Analysis) -> None:
        analysis.init_categories(self.categories)

        if raw.get("devices") is not None:
            self._devices(raw["devices"] or [], analysis)
        services = raw.get("services") or {}
        if services.get("services"):
            self._services(services["services"], analysis)
        if raw.get("firewall"):
            self._firewall(raw["firewall"], analysis)
        if raw.get("vulnerabilities"):
            self._vulnerabilities(raw["vulnerabilities"], analysis)

        self._recommendations(analysis)

    def _devices(self, devices: List[Dict[str, Any]], analysis: Analysis) -> None:
        if len(devices) > 20:
            analysis.add_issue("low", "network", "Large number of devices on network",
                               f"{len(devices)} devices found on the network")
            analysis.add_score("devices", 5)

        unknown = [d for d in devices if _is_unidentified(d)]
        if len(unknown) > 3:
            analysis.add_issue("medium", "network", "Multiple unknown devices on network",
                               f"{len(unknown)} devices have missing identification details")
            analysis.add_score("devices", 15)

    def _services(self, hosts: Dict[str, Any], analysis: Analysis) -> None:
        exposed = []
        for ip, host in hosts.items():
            ports = [p.get("port") for p in (host or {}).get("ports") or []]
            sensitive = [p for p in ports if p in SENSITIVE_SERVICE_PORTS]
            if sensitive:
                exposed.append({"ip": ip, "hostname": host.get("hostname") or "Unknown", "ports": sensitive})

        if not exposed:
            return

        analysis.add_issue("high", "network", "Sensitive services exposed",
                           f"{len(exposed)} hosts have sensitive services exposed")
        analysis.add_score("services", 25)

        for host in exposed:
            ip, hostname = host["ip"], host["hostname"]
            if 21 in host["ports"]:
                analysis.add_issue(
                    "high", "network", f"FTP service exposed on {ip}",
                    f"Host {hostname} ({ip}) has FTP service running, which transmits credentials in cleartext",
                )
            if 23 in host["ports"]:
                analysis.add_issue(
                    "high", "network", f"Telnet service exposed on {ip}",
                    f"Host {hostname} ({ip}) has Telnet service running, which transmits data in cleartext",
                )
            if 3389 in host["ports"]:
                analysis.add_issue("medium", "network", f"RDP service exposed on {ip}",
                                   f"Host {hostname} ({ip}) has Remote Desktop service running")

    def _firewall(self, firewall: Dict[str, Any], analysis: Analysis) -> None:
        status = firewall.get("status")
        if status in ("off", "disabled"):
            analysis.add_issue("high", "network", "Firewall disabled",
                               "The firewall is currently disabled, leaving the system exposed")
            analysis.add_score("firewall", 25)
        elif status == "unknown":
            analysis.add_issue("medium", "network", "Firewall status unknown",
                               "The firewall status could not be determined")
            analysis.add_score("firewall", 15)

        rules = firewall.get("rulesCount")
        if isinstance(rules, int) and rules < 5 and status != "off":
            analysis.add_issue("medium", "network", "Few firewall rules configured",
                               f"Only {rules} firewall rules are configured")
            analysis.add_score("firewall", 15)

    def _vulnerabilities(self, vulns: Dict[str, Any], analysis: Analysis) -> None:
        for group in NETWORK_VULNERABILITY_GROUPS:
            add_vulnerability_group(analysis, vulns.get(group))

        analysis.add_score("vulnerabilities", weighted_vulnerability_score(vulns.get("vulnerabilityCounts") or {}))
        carry_recommendations(analysis, vulns, details_key="issue")

    @staticmethod
    def _recommendations(analysis: Analysis) -> None:
        if analysis.has_issues("high", category="network", title_contains="service"):
            analysis.recommend(
                "high", "Disable or secure sensitive network services",
                "Sensitive services like FTP, Telnet, and others transmit data in cleartext "
                "and should be replaced with secure alternatives.",
            )
        if analysis.has_issues("high", category="network", title_contains="Firewall"):
            analysis.recommend(
                "high", "Enable the firewall",
                "A properly configured firewall is essential for network security.",
            )
        if analysis.has_issues("medium", title_contains="unknown devices"):
            analysis.recommend(
                "medium", "Identify all devices on your network",
                "Unknown devices could be unauthorized access points or rogue devices.",
            )
