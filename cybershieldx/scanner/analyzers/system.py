# cybershieldx/scanner/analyzers/system.py
"""
System scan analyzer.

Reads detailed host facts, the security configuration checks and, when a
provider supplied them, vulnerability and malware results.

Categories: system, configuration, vulnerabilities, malware

The configuration category combines two signals: points added by the
individual findings below, and 100 minus the mean check score. The mean
only applies when the collector did not report an overallScore.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from cybershieldx.scanner.analyzers.analysis import (
    Analysis,
    add_vulnerability_group,
    carry_recommendations,
)
from cybershieldx.scanner.base import BaseAnalyzer
from cybershieldx.utils.formatting import uptime_days
from cybershieldx.utils.scoring import average_score, malware_score, weighted_vulnerability_score

logger = logging.getLogger(__name__)

EOL_WINDOWS = ("Windows 7", "Windows 8", "Windows XP", "Windows Vista")
MIN_WINDOWS10_BUILD = 17763

CONFIG_CHECKS = (
    "users",
    "authentication",
    "updates",
    "encryption",
    "networkConfig",
    "firewallConfig",
    "securitySoftware",
)

SYSTEM_VULNERABILITY_GROUPS = ("osVulnerabilities", "weakConfigurations", "outdatedSoftware")


def _int_part(version: str, index: int) -> Optional[int]:
    """Numeric component of a dotted version; None when absent or non-numeric."""
    parts = (version or "").split(".")
    if index >= len(parts):
        return None
    m = re.match(r"\d+", parts[index])
    return int(m.group()) if m else None


class SystemScanAnalyzer(BaseAnalyzer):
    scan_type = "system"
    categories = ("system", "configuration", "vulnerabilities", "malware")

    def analyze(self, raw: Dict[str, Any], analysis: Analysis) -> None:
        analysis.init_categories(self.categories)

        if raw.get("system"):
            self._operating_system(raw["system"], analysis)
        if raw.get("config"):
            self._configuration(raw["config"], analysis)
        if raw.get("vulnerabilities"):
            self._vulnerabilities(raw["vulnerabilities"], analysis)
        if raw.get("malware"):
            self._malware(raw["malware"], analysis)

        if not analysis.has_issues("high", "medium"):
            analysis.recommend(
                "low", "Maintain good security practices",
                "Continue with regular updates and backups to maintain good security posture.",
            )

    # ------------------------------------------------------------------
    # Operating system
    # ------------------------------------------------------------------

    def _operating_system(self, system: Dict[str, Any], analysis: Analysis) -> None:
        os_info = system.get("os") or {}
        name = os_info.get("distro") or ""
        release = os_info.get("release") or ""

        if "Windows" in name:
            if any(eol in name for eol in EOL_WINDOWS):
                analysis.add_issue("high", "system", "End-of-life operating system",
                                   f"{name} is no longer supported with security updates")
                analysis.add_score("system", 25)
            elif "Windows 10" in name:
                build = _int_part(release, 2)
                if build is not None and build < MIN_WINDOWS10_BUILD:
                    analysis.add_issue("medium", "system", "Outdated Windows 10 version",
                                       f"Windows 10 build {release} may not be receiving the latest security updates")
                    analysis.add_score("system", 15)

        elif "macOS" in name or "Mac" in name:
            major, minor = _int_part(release, 0), _int_part(release, 1)
            if major is not None and (major < 10 or (major == 10 and minor is not None and minor < 13)):
                analysis.add_issue("high", "system", "Outdated macOS version",
                                   f"macOS {release} is no longer receiving security updates")
                analysis.add_score("system", 25)

        elif "Ubuntu" in name:
            m = re.search(r"\d+\.\d+", name)
            if m and float(m.group()) < 18.04:
                analysis.add_issue("high", "system", "Outdated Ubuntu version",
                                   f"Ubuntu {m.group()} may be past its support window")
                analysis.add_score("system", 25)

        uptime = os_info.get("uptime")
        if uptime and uptime_days(uptime) > 90:
            analysis.add_issue("medium", "system", "Excessive system uptime",
                               f"System has been running for {uptime} without a reboot")
            analysis.add_score("system", 10)

    # ------------------------------------------------------------------
    # Security configuration
    # ------------------------------------------------------------------

    def _configuration(self, config: Dict[str, Any], analysis: Analysis) -> None:
        scores: List[float] = []

        def record(check: Dict[str, Any]) -> None:
            score = check.get("score")
            scores.append(score if isinstance(score, (int, float)) else 0)

        users = config.get("users")
        if users:
            if users.get("isAdmin"):
                analysis.add_issue("high", "configuration", "Running as administrator/root",
                                   "Regular usage with administrative privileges increases security risk")
                analysis.add_score("configuration", 25)
            if users.get("multipleUsersLoggedIn"):
                analysis.add_issue("medium", "configuration", "Multiple users logged in simultaneously",
                                   f"{users.get('usersLoggedIn')} users are currently logged in")
                analysis.add_score("configuration", 10)
            record(users)

        auth = config.get("authentication")
        if auth:
            policy = auth.get("passwordPolicy") or {}
            min_length = policy.get("minPasswordLength")
            if isinstance(min_length, (int, float)) and min_length < 8:
                analysis.add_issue("high", "configuration", "Weak password policy",
                                   f"Minimum password length is set to {min_length} characters")
                analysis.add_score("configuration", 20)
            max_age = policy.get("maxPasswordAge")
            if isinstance(max_age, (int, float)) and max_age > 180:
                analysis.add_issue("medium", "configuration", "Weak password expiration policy",
                                   f"Maximum password age is set to {max_age} days")
                analysis.add_score("configuration", 10)
            record(auth)

        updates = config.get("updates")
        if updates:
            status = updates.get("updateStatus") or {}
            if (status.get("pendingUpdates") or 0) > 0:
                analysis.add_issue("medium", "configuration", "Pending system updates",
                                   f"{status['pendingUpdates']} updates are pending installation")
                analysis.add_score("configuration", 15)
            if (status.get("daysSinceLastUpdate") or 0) > 60:
                analysis.add_issue("high", "configuration", "System updates significantly delayed",
                                   f"System was last updated {status['daysSinceLastUpdate']} days ago")
                analysis.add_score("configuration", 20)
            record(updates)

        encryption = config.get("encryption")
        if encryption:
            status = encryption.get("encryptionStatus")
            if status and not status.get("enabled"):
                analysis.add_issue(
                    "high", "configuration", "Disk encryption not enabled",
                    "System does not have full-disk encryption enabled, which puts data at risk if the device is stolen",
                )
                analysis.add_score("configuration", 25)
            record(encryption)

        network = config.get("networkConfig")
        if network:
            insecure = network.get("insecureServices") or []
            if insecure:
                analysis.add_issue("high", "configuration", "Insecure network services running",
                                   f"{len(insecure)} insecure services are running")
                analysis.add_score("configuration", 25)
            promiscuous = network.get("promiscuousInterfaces") or []
            if promiscuous:
                analysis.add_issue(
                    "high", "configuration", "Network interfaces in promiscuous mode",
                    f"{len(promiscuous)} interfaces are in promiscuous mode, which could indicate network sniffing",
                )
                analysis.add_score("configuration", 25)
            record(network)

        firewall = config.get("firewallConfig")
        if firewall:
            status = firewall.get("firewallStatus")
            if status and (not status.get("enabled") or status.get("allProfilesEnabled") is False):
                analysis.add_issue("high", "configuration", "Firewall disabled",
                                   "System firewall is not enabled on all profiles")
                analysis.add_score("configuration", 25)
            record(firewall)

        software = config.get("securitySoftware")
        if software:
            if software.get("count") == 0:
                analysis.add_issue("high", "configuration", "No security software detected",
                                   "No antivirus or security software was detected on the system")
                analysis.add_score("configuration", 25)
            record(software)

        overall = config.get("overallScore")
        if overall:
            scores.append(overall)

        if scores and not overall:
            analysis.risk_scores["configuration"] = max(
                analysis.risk_scores.get("configuration", 0),
                100 - average_score(scores),
            )

    # ------------------------------------------------------------------
    # Provider results
    # ------------------------------------------------------------------

    def _vulnerabilities(self, vulns: Dict[str, Any], analysis: Analysis) -> None:
        for group in SYSTEM_VULNERABILITY_GROUPS:
            add_vulnerability_group(analysis, vulns.get(group))

        analysis.add_score("vulnerabilities", weighted_vulnerability_score(vulns.get("vulnerabilityCounts") or {}))
        carry_recommendations(analysis, vulns, details_key="issue")

    def _malware(self, malware: Dict[str, Any], analysis: Analysis) -> None:
        findings = malware.get("findings") or {}

        checks = (
            ("suspiciousProcesses", "Suspicious processes detected",
             "{n} potentially malicious processes found running"),
            ("suspiciousStartupItems", "Suspicious startup items detected",
             "{n} potentially malicious startup items found"),
            ("possibleMalwareFound", "Possible malware files detected",
             "{n} potential malware files found"),
            ("suspiciousConnections", "Suspicious network connections",
             "{n} suspicious outbound connections detected"),
        )
        for key, title, description in checks:
            n = findings.get(key) or 0
            if n > 0:
                analysis.add_issue("high", "malware", title, description.format(n=n))

        analysis.add_score("malware", malware_score(findings))
        carry_recommendations(analysis, malware, details_key="details")
