# cybershieldx/scanner/detailed/processors.py
"""
Detailed issue processors.

Each processor reads one input section of a RawScanResult, copies the
facts worth keeping into its report section, and emits fully described
Issues (impact, location, remediation steps) through create_issue().

    Processor        Report section       Input keys (first present wins)
    network          networkScan          networkScan, network
    system           systemScan           systemScan
    vulnerability    vulnerabilityScan    vulnerabilityScan, vulnerabilities
    malware          malwareScan          malwareScan, malware
    compliance       complianceCheck      complianceCheck, compliance

Processors are independent: none reads another's section. Input is
untrusted collector or provider output, so every field is optional.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from cybershieldx.scanner.base import Issue, now_utc
from cybershieldx.scanner.detailed.remediation import (
    database_vulnerability_steps,
    remediation_difficulty,
    web_vulnerability_steps,
)
from cybershieldx.utils.sanitize import mask_sensitive_data

logger = logging.getLogger(__name__)


def create_issue(
    title: str,
    description: str,
    impact: str,
    severity: str,
    category: str,
    location: str,
    recommendation: str,
    remediation_steps: Iterable[str] = (),
    evidence: str = "",
    references: Iterable[str] = (),
    cve_ids: Iterable[str] = (),
) -> Issue:
    """The single constructor for detailed issues. Assigns ID and difficulty."""
    return Issue(
        title=title,
        description=description,
        impact=impact,
        severity=severity,
        category=category,
        location=location,
        evidence=evidence,
        recommendation=recommendation,
        remediation_steps=tuple(remediation_steps or ()),
        remediation_difficulty=remediation_difficulty(severity),
        references=tuple(references or ()),
        cve_ids=tuple(cve_ids or ()),
    )


def _is_severe(severity: Any) -> bool:
    return severity in ("Critical", "High")


class SectionProcessor(ABC):
    """
    Base for one report section.

    To create a new processor:
        1. Set `name` (report section key) and `input_keys`
        2. Implement `empty_section()` with the section's default shape
        3. Implement `process(data, section)`; append Issues to
           section["issues"]
    """

    name: str = ""
    input_keys: Tuple[str, ...] = ()

    def input_for(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        for key in self.input_keys:
            value = raw.get(key)
            if isinstance(value, dict):
                return value
        return {}

    @abstractmethod
    def empty_section(self) -> Dict[str, Any]:
        ...

    @abstractmethod
    def process(self, data: Dict[str, Any], section: Dict[str, Any]) -> None:
        ...

    def build(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        section = self.empty_section()
        self.process(self.input_for(raw), section)
        logger.debug(f"{self.name}: {len(section['issues'])} issues")
        return section


# ---------------------------------------------------------------------------
# Network
# ---------------------------------------------------------------------------

RISKY_SERVICES = (
    "telnet", "ftp", "rsh", "rexec", "tftp", "smtp",
    "smb", "netbios", "vnc", "redis", "mongodb", "cassandra",
    "elasticsearch", "memcached", "ms-sql-s", "mysql", "postgresql",
)

PERMISSIVE_SOURCES = ("any", "0.0.0.0/0")


def wireless_severity(encryption: str) -> Optional[str]:
    """
    WEP and open networks are critical; bare WPA and "None" are high.
    WPA2 and WPA3 are not flagged.
    """
    if "WEP" in encryption or "Open" in encryption:
        return "critical"
    if "None" in encryption or re.search(r"WPA(?![23])", encryption):
        return "high"
    return None


class NetworkScanProcessor(SectionProcessor):
    name = "networkScan"
    input_keys = ("networkScan", "network")

    def input_for(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(super().input_for(raw))
        # A network scan reports devices/services/firewall at the top level
        for key in ("devices", "services"):
            if key not in data and key in raw:
                data[key] = raw[key]
        if "firewallStatus" not in data and isinstance(raw.get("firewall"), dict):
            status = raw["firewall"].get("status")
            if status in ("on", "off"):
                data["firewallStatus"] = {"enabled": status == "on", "rules": []}
        return data

    def empty_section(self) -> Dict[str, Any]:
        return {
            "openPorts": [],
            "vulnerableServices": [],
            "networkDevices": [],
            "wirelessSecurity": {},
            "firewallStatus": {},
            "issues": [],
        }

    def process(self, data: Dict[str, Any], section: Dict[str, Any]) -> None:
        ports = self._open_ports(data)
        if ports:
            self._ports(ports, section)
        if data.get("devices"):
            self._devices(data["devices"], section)
        if data.get("wirelessSecurity"):
            self._wireless(data["wirelessSecurity"], section)
        if data.get("firewallStatus"):
            self._firewall(data["firewallStatus"], section)

    @staticmethod
    def _open_ports(data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Explicit openPorts, else the ports of every host in the service map."""
        if data.get("openPorts"):
            return list(data["openPorts"])
        services = (data.get("services") or {}).get("services") or {}
        ports = []
        for host in services.values():
            for port in (host or {}).get("ports") or []:
                ports.append(port)
        return ports

    def _ports(self, ports: List[Dict[str, Any]], section: Dict[str, Any]) -> None:
        section["openPorts"] = [
            {"port": p.get("port"), "service": p.get("service"), "state": p.get("state"), "protocol": p.get("protocol")}
            for p in ports
        ]
        vulnerable = [
            p for p in ports
            if p.get("service") and any(s in str(p["service"]).lower() for s in RISKY_SERVICES)
        ]
        section["vulnerableServices"] = vulnerable

        for svc in vulnerable:
            name, port, proto = svc["service"], svc.get("port"), svc.get("protocol")
            lowered = str(name).lower()
            section["issues"].append(create_issue(
                title=f"Potentially insecure service running: {name} on port {port}",
                description=(
                    f"The service {name} running on port {port}/{proto} "
                    "could pose a security risk if not properly secured."
                ),
                impact="Unauthorized access to systems, data exfiltration, and potential for service exploitation.",
                severity="critical" if "telnet" in lowered or "ftp" in lowered else "high",
                category="Insecure Services",
                location=f"Port {port}/{proto}",
                recommendation=(
                    "Close the port if the service is unused. If needed, implement proper "
                    "authentication, encryption, and access controls."
                ),
                remediation_steps=[
                    "Verify if this service is necessary for business operations.",
                    "If unnecessary, disable the service and close the port in your firewall.",
                    "If required, update to the latest secure version and enable encryption.",
                    "Implement strong authentication and restrict access by IP.",
                    "Configure proper logging to monitor access attempts.",
                ],
            ))

    def _devices(self, devices: List[Dict[str, Any]], section: Dict[str, Any]) -> None:
        section["networkDevices"] = [
            {
                "hostname": d.get("hostname") or "Unknown",
                "ipAddress": mask_sensitive_data(d.get("ipAddress") or d.get("ip") or "Unknown"),
                "macAddress": mask_sensitive_data(d.get("macAddress") or d.get("mac") or "Unknown", "mac"),
                "vendor": d.get("vendor") or "Unknown",
                "status": d.get("status") or "Unknown",
            }
            for d in devices
        ]

        unauthorized = [d for d in devices if not d.get("authorized") and d.get("status") == "up"]
        if not unauthorized:
            return
        section["issues"].append(create_issue(
            title=f"Detected {len(unauthorized)} potentially unauthorized devices on the network",
            description=(
                "Devices without explicit authorization were detected on the network. "
                "These could represent security risks."
            ),
            impact=(
                "Unauthorized devices may introduce vulnerabilities or be used for malicious "
                "purposes such as data theft or network monitoring."
            ),
            severity="medium",
            category="Network Access Control",
            location="Local Network",
            recommendation=(
                "Implement network access control (NAC) to prevent unauthorized devices "
                "from connecting to the network."
            ),
            remediation_steps=[
                "Document all authorized devices in a network inventory.",
                "Implement 802.1X authentication for network access.",
                "Configure DHCP to only assign IP addresses to known MAC addresses.",
                "Segment the network to isolate unknown devices.",
                "Consider implementing a network access control solution.",
            ],
        ))

    def _wireless(self, wireless: Dict[str, Any], section: Dict[str, Any]) -> None:
        encryption = wireless.get("encryption") or ""
        summary = {
            "encryptionType": encryption or "Unknown",
            "signalStrength": wireless.get("signalStrength") or "Unknown",
            "vulnerabilities": list(wireless.get("vulnerabilities") or []),
        }
        section["wirelessSecurity"] = summary

        severity = wireless_severity(encryption) if encryption else None
        if not severity:
            return
        section["issues"].append(create_issue(
            title="Weak wireless network encryption",
            description=f"The wireless network is using {encryption} encryption, which is considered insecure.",
            impact=(
                "Weak encryption can be broken, allowing attackers to intercept network traffic, "
                "steal sensitive information, and gain unauthorized access to the network."
            ),
            severity=severity,
            category="Wireless Security",
            location="Wireless Network",
            recommendation=(
                "Upgrade to WPA3 encryption with a strong, unique password. "
                "If WPA3 is not available, use WPA2 with AES."
            ),
            remediation_steps=[
                "Access your wireless router's admin interface.",
                "Change the encryption type to WPA3 if supported, or WPA2-AES if not.",
                "Generate a strong, unique password of at least 12 characters.",
                "Disable WPS (Wi-Fi Protected Setup) as it can be vulnerable.",
                "Consider implementing a guest network for non-trusted devices.",
                "Update router firmware to the latest version.",
            ],
        ))
        summary["vulnerabilities"].append(f"Weak encryption ({encryption})")

    def _firewall(self, firewall: Dict[str, Any], section: Dict[str, Any]) -> None:
        rules = firewall.get("rules") or []
        summary = {"enabled": bool(firewall.get("enabled")), "rules": rules, "recommendations": []}
        section["firewallStatus"] = summary

        if not firewall.get("enabled"):
            section["issues"].append(create_issue(
                title="Firewall is disabled",
                description=(
                    "The system firewall is currently disabled, leaving the system "
                    "vulnerable to unauthorized access."
                ),
                impact=(
                    "Without a firewall, the system is exposed to potential attacks from the internet "
                    "and local network, increasing the risk of unauthorized access and malware infection."
                ),
                severity="critical",
                category="Perimeter Security",
                location="System Firewall",
                recommendation="Enable the system firewall immediately with a deny-by-default policy.",
                remediation_steps=[
                    "Enable the system firewall.",
                    "Configure a deny-by-default policy.",
                    "Allow only necessary incoming and outgoing connections.",
                    "Test that legitimate applications can still function.",
                    "Implement logging for firewall activities.",
                ],
            ))
            summary["recommendations"].append("Enable the system firewall immediately")

        permissive = [
            r for r in rules
            if isinstance(r, dict) and r.get("action") == "allow" and r.get("remoteAddress") in PERMISSIVE_SOURCES
        ]
        if permissive:
            section["issues"].append(create_issue(
                title="Overly permissive firewall rules detected",
                description=f"Found {len(permissive)} firewall rules that allow traffic from any source address.",
                impact=(
                    "Overly permissive rules reduce the effectiveness of the firewall and may allow "
                    "unauthorized access from untrusted sources."
                ),
                severity="high",
                category="Perimeter Security",
                location="System Firewall",
                recommendation=(
                    "Review and restrict firewall rules to allow traffic only from trusted sources "
                    "and to necessary services."
                ),
                remediation_steps=[
                    "Review all firewall rules, especially those allowing traffic from any source.",
                    'Replace "any" source address with specific IPs or ranges for trusted sources.',
                    "Implement the principle of least privilege by allowing only necessary ports.",
                    "Document the purpose of each rule for future reference.",
                    "Consider implementing geolocation-based filtering if appropriate.",
                ],
            ))
            summary["recommendations"].append("Review and restrict overly permissive firewall rules")


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------

def _parse_date(value: Any) -> Optional[datetime]:
    """ISO date or datetime; naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


class SystemScanProcessor(SectionProcessor):
    name = "systemScan"
    input_keys = ("systemScan",)

    OUTDATED_AFTER_DAYS = 90

    def __init__(self, clock: Callable[[], datetime] = now_utc):
        self.clock = clock

    def empty_section(self) -> Dict[str, Any]:
        return {
            "osPatches": {},
            "userAccounts": {},
            "filePermissions": {},
            "securitySettings": {},
            "issues": [],
        }

    def process(self, data: Dict[str, Any], section: Dict[str, Any]) -> None:
        if data.get("patches"):
            self._patches(data["patches"], section)
        if data.get("userAccounts"):
            self._accounts(data["userAccounts"], section)
        if data.get("filePermissions"):
            self._file_permissions(data["filePermissions"], section)
        if data.get("securitySettings"):
            self._security_settings(data["securitySettings"], section)

    def _patches(self, patches: Dict[str, Any], section: Dict[str, Any]) -> None:
        missing = patches.get("missing") or []
        last_update = patches.get("lastUpdate")
        section["osPatches"] = {
            "installedPatches": patches.get("installed") or [],
            "missingPatches": missing,
            "lastUpdateDate": last_update or "Unknown",
        }

        critical = [p for p in missing if isinstance(p, dict) and p.get("severity") in ("Critical", "Important")]
        if critical:
            section["issues"].append(create_issue(
                title="Missing critical security patches",
                description=f"Found {len(critical)} critical security patches that need to be installed.",
                impact=(
                    "Missing security patches can leave the system vulnerable to known exploits, "
                    "potentially allowing unauthorized access, data theft, or malware infection."
                ),
                severity="critical",
                category="System Updates",
                location="Operating System",
                recommendation=(
                    "Install all missing security patches as soon as possible, "
                    "prioritizing critical and important updates."
                ),
                remediation_steps=[
                    "Run the system update utility (Windows Update, apt, yum, etc.).",
                    "Install all critical and important security updates.",
                    "If necessary, schedule a maintenance window for updates requiring restarts.",
                    "Configure automatic updates to prevent future gaps.",
                    "Document update policy and ensure regular maintenance.",
                ],
            ))

        updated = _parse_date(last_update)
        if updated and (self.clock() - updated).total_seconds() / 86400 > self.OUTDATED_AFTER_DAYS:
            section["issues"].append(create_issue(
                title="System significantly outdated",
                description=f"The system has not been updated for over 90 days (last update: {last_update}).",
                impact=(
                    "Severely outdated systems face a higher risk of compromise through known "
                    "vulnerabilities that have been patched in more recent updates."
                ),
                severity="high",
                category="System Updates",
                location="Operating System",
                recommendation="Perform a full system update immediately and implement regular update checks.",
                remediation_steps=[
                    "Back up important data before updating.",
                    "Perform a complete system update.",
                    "Enable automatic updates when possible.",
                    "Create a schedule for manual update checks if automatic updates aren't possible.",
                    "Consider implementing a patch management solution for larger environments.",
                ],
            ))

    def _accounts(self, accounts: Dict[str, Any], section: Dict[str, Any]) -> None:
        policy = accounts.get("passwordPolicy")
        summary = {
            "totalAccounts": accounts.get("total") or 0,
            "administratorAccounts": accounts.get("administrators") or 0,
            "passwordPolicy": {
                "minimumLength": (policy or {}).get("minimumLength") or 0,
                "complexityEnabled": bool((policy or {}).get("complexityEnabled")),
                "expirationDays": (policy or {}).get("expirationDays") or 0,
            },
            "issues": [],
        }
        section["userAccounts"] = summary

        admins = accounts.get("administrators") or 0
        if admins > 2:
            section["issues"].append(create_issue(
                title="Excessive number of administrator accounts",
                description=f"Found {admins} accounts with administrator privileges.",
                impact=(
                    "More administrator accounts increase the attack surface and the likelihood "
                    "of privilege escalation through compromised accounts."
                ),
                severity="high",
                category="Account Security",
                location="User Account Management",
                recommendation=(
                    "Review all administrator accounts, remove unnecessary ones, and ensure "
                    "proper controls for required admin accounts."
                ),
                remediation_steps=[
                    "Audit all administrator accounts and their purposes.",
                    "Remove unnecessary admin accounts or demote them to standard user.",
                    "Ensure admin accounts are used only for administrative tasks.",
                    "Consider implementing Just-In-Time (JIT) admin access.",
                    "Implement multi-factor authentication for all admin accounts.",
                ],
            ))
            summary["issues"].append("Excessive administrator accounts")

        if policy:
            weak_points = self._policy_weaknesses(policy)
            if weak_points:
                section["issues"].append(create_issue(
                    title="Weak password policy detected",
                    description=f"The current password policy has the following weaknesses: {', '.join(weak_points)}.",
                    impact=(
                        "Weak password policies may allow easily guessable passwords, increasing "
                        "the risk of credential theft and unauthorized access."
                    ),
                    severity="high",
                    category="Account Security",
                    location="Password Policy",
                    recommendation=(
                        "Strengthen the password policy to enforce longer, complex passwords "
                        "with reasonable expiration periods."
                    ),
                    remediation_steps=[
                        "Set minimum password length to at least 12 characters.",
                        "Enable password complexity requirements.",
                        "Set password expiration to 90 days or less (or implement NIST "
                        "recommendations for not expiring strong passwords).",
                        "Implement multi-factor authentication where possible.",
                        "Consider using a password manager with random password generation.",
                    ],
                ))
                summary["issues"].append("Weak password policy")

        dormant = accounts.get("dormant") or []
        if dormant:
            section["issues"].append(create_issue(
                title="Dormant user accounts detected",
                description=f"Found {len(dormant)} accounts that have not been active for over 90 days.",
                impact=(
                    "Dormant accounts may be forgotten and left unsecured, providing an entry "
                    "point for unauthorized access."
                ),
                severity="medium",
                category="Account Security",
                location="User Account Management",
                recommendation="Disable dormant accounts and implement a regular account review process.",
                remediation_steps=[
                    "Review each dormant account to determine if it's still needed.",
                    "Disable or remove unneeded accounts.",
                    "For needed but rarely used accounts, implement stronger security controls.",
                    "Document a process for regular account audits (e.g., quarterly).",
                    "Implement automated account deactivation based on inactivity.",
                ],
            ))
            summary["issues"].append("Dormant accounts present")

    @staticmethod
    def _policy_weaknesses(policy: Dict[str, Any]) -> List[str]:
        weak = []
        min_length = policy.get("minimumLength")
        if isinstance(min_length, (int, float)) and min_length < 12:
            weak.append(f"minimum length ({min_length}) less than 12 characters")
        if not policy.get("complexityEnabled"):
            weak.append("password complexity not required")
        expiration = policy.get("expirationDays")
        if isinstance(expiration, (int, float)) and expiration > 90:
            weak.append(f"password expiration ({expiration} days) exceeds 90 days")
        return weak

    def _file_permissions(self, permissions: Dict[str, Any], section: Dict[str, Any]) -> None:
        summary = {"criticalFiles": permissions.get("criticalFiles") or [], "issues": []}
        section["filePermissions"] = summary

        insecure = permissions.get("insecure") or []
        if not insecure:
            return
        section["issues"].append(create_issue(
            title="Insecure file permissions",
            description=f"Found {len(insecure)} critical files with insufficient permissions control.",
            impact=(
                "Insecure file permissions may allow unauthorized users to read, modify, or execute "
                "important files, leading to data breaches or system compromise."
            ),
            severity="high",
            category="File System Security",
            location="File System",
            recommendation="Review and correct permissions on critical files to ensure proper access controls.",
            remediation_steps=[
                "Identify all critical files and their required permissions.",
                "Update permissions to follow the principle of least privilege.",
                "Remove world-readable/writable permissions where inappropriate.",
                "Ensure ownership is correctly assigned.",
                "Implement regular permissions audits.",
            ],
        ))
        summary["issues"].append("Insecure permissions on critical files")

    def _security_settings(self, settings: Dict[str, Any], section: Dict[str, Any]) -> None:
        antivirus = settings.get("antivirus") or "Unknown"
        encryption = settings.get("diskEncryption") or "Unknown"
        summary = {
            "antivirusStatus": antivirus,
            "firewallStatus": settings.get("firewall") or "Unknown",
            "autoUpdatesEnabled": bool(settings.get("autoUpdates")),
            "diskEncryptionStatus": encryption,
            "secureBootEnabled": bool(settings.get("secureBoot")),
            "issues": [],
        }
        section["securitySettings"] = summary

        if antivirus not in ("Active", "Up-to-date"):
            section["issues"].append(create_issue(
                title="Inadequate antivirus protection",
                description=(
                    f"Antivirus status: {antivirus}. The system does not have active, "
                    "up-to-date antivirus protection."
                ),
                impact=(
                    "Without proper antivirus protection, the system is more vulnerable to malware, "
                    "ransomware, and other malicious software."
                ),
                severity="high",
                category="Endpoint Protection",
                location="Antivirus System",
                recommendation="Install or update antivirus software and ensure real-time protection is enabled.",
                remediation_steps=[
                    "Install a reputable antivirus/endpoint protection solution.",
                    "Update virus definitions to the latest version.",
                    "Enable real-time protection.",
                    "Perform a full system scan.",
                    "Configure scheduled scans and automatic updates.",
                ],
            ))
            summary["issues"].append("Inadequate antivirus protection")

        if encryption not in ("Full", "Enabled"):
            section["issues"].append(create_issue(
                title="Disk encryption not enabled",
                description=f"Disk encryption status: {encryption}. The system's storage is not fully encrypted.",
                impact=(
                    "Unencrypted disks are vulnerable to data theft if the device is lost or stolen, "
                    "potentially leading to data breaches."
                ),
                severity="high",
                category="Data Protection",
                location="System Storage",
                recommendation="Enable full disk encryption to protect sensitive data in case of device theft or loss.",
                remediation_steps=[
                    "Back up all important data before proceeding.",
                    "Enable disk encryption (BitLocker, FileVault, LUKS, etc.).",
                    "Store recovery keys in a secure location.",
                    "Verify encryption status after implementation.",
                    "Consider hardware-based encryption for added security.",
                ],
            ))
            summary["issues"].append("Disk encryption not enabled")

        if not settings.get("autoUpdates"):
            section["issues"].append(create_issue(
                title="Automatic updates disabled",
                description=(
                    "Automatic system updates are not enabled, which may lead to security "
                    "vulnerabilities remaining unpatched."
                ),
                impact=(
                    "Without automatic updates, the system may remain vulnerable to known security "
                    "issues that have been patched by the vendor."
                ),
                severity="medium",
                category="System Updates",
                location="Operating System",
                recommendation="Enable automatic system updates to ensure timely installation of security patches.",
                remediation_steps=[
                    "Enable automatic updates in system settings.",
                    "Configure updates to be installed at convenient times.",
                    "Ensure the system checks for updates daily.",
                    "Consider a centralized patch management solution for enterprise environments.",
                    "Implement a process for testing critical updates in sensitive environments.",
                ],
            ))
            summary["issues"].append("Automatic updates disabled")


# ---------------------------------------------------------------------------
# Vulnerabilities
# ---------------------------------------------------------------------------

class VulnerabilityScanProcessor(SectionProcessor):
    name = "vulnerabilityScan"
    input_keys = ("vulnerabilityScan", "vulnerabilities")

    def empty_section(self) -> Dict[str, Any]:
        return {
            "cveFindings": [],
            "softwareVulnerabilities": [],
            "webApplicationFindings": [],
            "databaseVulnerabilities": [],
            "issues": [],
        }

    def process(self, data: Dict[str, Any], section: Dict[str, Any]) -> None:
        if data.get("cveFindings"):
            self._cves(data["cveFindings"], section)
        if data.get("softwareVulnerabilities"):
            self._software(data["softwareVulnerabilities"], section)
        if data.get("webApplications"):
            self._web_applications(data["webApplications"], section)
        if data.get("databases"):
            self._databases(data["databases"], section)

    def _cves(self, cves: List[Dict[str, Any]], section: Dict[str, Any]) -> None:
        section["cveFindings"] = [
            {
                "id": c.get("id"),
                "severity": c.get("severity"),
                "exploitable": bool(c.get("exploitable")),
                "description": c.get("description"),
                "affectedSoftware": c.get("affectedSoftware"),
            }
            for c in cves
        ]

        for cve in cves:
            if not _is_severe(cve.get("severity")):
                continue
            affected = cve.get("affectedSoftware")
            section["issues"].append(create_issue(
                title=f"{cve['severity']} severity vulnerability: {cve.get('id')}",
                description=cve.get("description") or "",
                impact=(
                    f"This vulnerability could allow an attacker to {'easily ' if cve.get('exploitable') else ''}"
                    "compromise system security, potentially leading to unauthorized access, "
                    "data theft, or service disruption."
                ),
                severity=cve["severity"].lower(),
                category="Software Vulnerabilities",
                location=f"Software: {', '.join(affected)}" if affected else "System",
                recommendation=(
                    "Apply vendor-provided patches or update the affected software to a non-vulnerable version."
                ),
                remediation_steps=[
                    "Check vendor website for security patches addressing this CVE.",
                    "Apply security patches following change management procedures.",
                    "If patches are unavailable, consider implementing mitigating controls.",
                    "Update affected software to the latest version.",
                    "Verify the vulnerability has been resolved through rescanning.",
                ],
                cve_ids=[cve["id"]] if cve.get("id") else [],
            ))

    def _software(self, software: List[Dict[str, Any]], section: Dict[str, Any]) -> None:
        section["softwareVulnerabilities"] = [
            {
                "software": sw.get("software"),
                "version": sw.get("version"),
                "vulnerableVersion": sw.get("vulnerableVersion", True),
                "latestVersion": sw.get("latestVersion"),
                "issues": sw.get("issues") or [],
            }
            for sw in software
        ]

        outdated = [sw for sw in software if sw.get("vulnerableVersion") or sw.get("version") != sw.get("latestVersion")]
        for sw in outdated:
            name, latest = sw.get("software"), sw.get("latestVersion")
            section["issues"].append(create_issue(
                title=f"Outdated software with security implications: {name}",
                description=(
                    f"Running {name} version {sw.get('version')}, which is outdated "
                    f"(latest: {latest}) and may contain security vulnerabilities."
                ),
                impact=(
                    "Outdated software versions often contain known security vulnerabilities that can be "
                    "exploited to gain unauthorized access or compromise system integrity."
                ),
                severity="high" if sw.get("vulnerableVersion") else "medium",
                category="Software Vulnerabilities",
                location=f"Software: {name}",
                recommendation=f"Update {name} to the latest version ({latest}).",
                remediation_steps=[
                    "Download the latest version from the official source.",
                    "Follow the vendor's upgrade procedure.",
                    "Backup configurations and data before upgrading.",
                    "Test application functionality after upgrading.",
                    "Document the upgrade process for future reference.",
                ],
            ))

    def _web_applications(self, webapps: List[Dict[str, Any]], section: Dict[str, Any]) -> None:
        for webapp in webapps:
            for vuln in (webapp or {}).get("vulnerabilities") or []:
                section["webApplicationFindings"].append({
                    "url": vuln.get("url"),
                    "vulnerability": vuln.get("type"),
                    "severity": vuln.get("severity"),
                    "description": vuln.get("description"),
                })
                if not _is_severe(vuln.get("severity")):
                    continue
                section["issues"].append(create_issue(
                    title=f"Web application vulnerability: {vuln.get('type')}",
                    description=vuln.get("description") or "",
                    impact=(
                        "This vulnerability could allow attackers to compromise the web application, "
                        "potentially leading to data theft, unauthorized access, or service disruption."
                    ),
                    severity=vuln["severity"].lower(),
                    category="Web Application Security",
                    location=f"URL: {vuln.get('url')}",
                    recommendation=(
                        "Fix the vulnerability by implementing proper input validation, output encoding, "
                        "or other security controls appropriate for this vulnerability type."
                    ),
                    remediation_steps=web_vulnerability_steps(vuln.get("type") or ""),
                ))

    def _databases(self, databases: List[Dict[str, Any]], section: Dict[str, Any]) -> None:
        for db in databases:
            db = db or {}
            for vuln in db.get("vulnerabilities") or []:
                section["databaseVulnerabilities"].append({
                    "database": db.get("name"),
                    "type": db.get("type"),
                    "vulnerability": vuln.get("type"),
                    "severity": vuln.get("severity"),
                    "description": vuln.get("description"),
                })
                if not _is_severe(vuln.get("severity")):
                    continue
                section["issues"].append(create_issue(
                    title=f"Database vulnerability: {vuln.get('type')}",
                    description=vuln.get("description") or "",
                    impact=(
                        "This vulnerability could compromise database security, potentially leading to "
                        "unauthorized data access, data corruption, or data loss."
                    ),
                    severity=vuln["severity"].lower(),
                    category="Database Security",
                    location=f"Database: {db.get('name')} ({db.get('type')})",
                    recommendation=(
                        "Apply vendor security patches, update database software, and implement "
                        "proper security configurations."
                    ),
                    remediation_steps=database_vulnerability_steps(vuln.get("type") or ""),
                ))


# ---------------------------------------------------------------------------
# Malware
# ---------------------------------------------------------------------------

class MalwareScanProcessor(SectionProcessor):
    name = "malwareScan"
    input_keys = ("malwareScan", "malware")

    HIGH_RISK_SCORE = 7

    def empty_section(self) -> Dict[str, Any]:
        return {
            "filesScanned": 0,
            "malwareDetected": [],
            "suspiciousFiles": [],
            "persistenceMechanisms": [],
            "issues": [],
        }

    def process(self, data: Dict[str, Any], section: Dict[str, Any]) -> None:
        section["filesScanned"] = data.get("filesScanned") or 0
        if data.get("detections"):
            self._detections(data["detections"], section)
        if data.get("suspicious"):
            self._suspicious(data["suspicious"], section)
        if data.get("persistenceMechanisms"):
            self._persistence(data["persistenceMechanisms"], section)

    def _detections(self, detections: List[Dict[str, Any]], section: Dict[str, Any]) -> None:
        section["malwareDetected"] = [
            {
                "type": d.get("type"),
                "name": d.get("name"),
                "location": d.get("path"),
                "severity": d.get("severity"),
                "quarantined": bool(d.get("quarantined")),
            }
            for d in detections
        ]

        for d in detections:
            quarantined = bool(d.get("quarantined"))
            section["issues"].append(create_issue(
                title=f"Malware detected: {d.get('name')}",
                description=f'Detected {d.get("type")} malware "{d.get("name")}" at location "{d.get("path")}".',
                impact=(
                    "Malware can compromise system security, steal sensitive information, damage files, "
                    "or allow unauthorized remote access to the system."
                ),
                severity="medium" if quarantined else "critical",
                category="Malware",
                location=d.get("path") or "Unknown",
                recommendation=(
                    "Review the quarantined malware and delete it if confirmed malicious."
                    if quarantined else
                    "Immediately quarantine or remove the malware and scan the system for additional infections."
                ),
                remediation_steps=[
                    "Verify the quarantined file is indeed malicious."
                    if quarantined else
                    "Use antivirus software to quarantine the malware immediately.",
                    "Scan the entire system for additional infections.",
                    "Identify how the malware entered the system.",
                    "Update security software and system patches.",
                    "Change passwords for sensitive accounts as they may have been compromised.",
                    "Review system logs for suspicious activities.",
                ],
            ))

    def _suspicious(self, files: List[Dict[str, Any]], section: Dict[str, Any]) -> None:
        section["suspiciousFiles"] = [
            {"location": f.get("path"), "reason": f.get("reason"), "riskScore": f.get("riskScore")}
            for f in files
        ]

        high_risk = [
            f for f in files
            if isinstance(f.get("riskScore"), (int, float)) and f["riskScore"] >= self.HIGH_RISK_SCORE
        ]
        if not high_risk:
            return
        section["issues"].append(create_issue(
            title="High-risk suspicious files detected",
            description=f"Found {len(high_risk)} suspicious files with high risk scores that may be malicious.",
            impact=(
                "These files exhibit behavior or characteristics typical of malware and may pose "
                "a security risk to the system."
            ),
            severity="high",
            category="Potential Malware",
            location="Multiple Locations",
            recommendation="Investigate these files and remove or quarantine them if confirmed malicious.",
            remediation_steps=[
                "Review each suspicious file in detail.",
                "Submit unknown files to online scanning services like VirusTotal.",
                "Quarantine or remove files confirmed as malicious.",
                "Monitor system for unusual behavior.",
                "Consider implementing application whitelisting for better control.",
            ],
        ))

    def _persistence(self, mechanisms: List[Dict[str, Any]], section: Dict[str, Any]) -> None:
        section["persistenceMechanisms"] = [
            {
                "type": m.get("type"),
                "location": m.get("location"),
                "associated": m.get("associatedWith"),
                "riskLevel": m.get("riskLevel"),
            }
            for m in mechanisms
        ]
        section["issues"].append(create_issue(
            title="Suspicious persistence mechanisms detected",
            description=(
                f"Found {len(mechanisms)} mechanisms that may be used by malware to maintain access to the system."
            ),
            impact=(
                "Persistence mechanisms allow malware to survive system reboots, making it difficult to "
                "completely remove infections and allowing continued unauthorized access."
            ),
            severity="high",
            category="Malware Persistence",
            location="System",
            recommendation=(
                "Investigate each persistence mechanism and remove any that are associated with malicious software."
            ),
            remediation_steps=[
                "Review each identified persistence mechanism in detail.",
                "Research unknown entries to determine legitimacy.",
                "Remove entries associated with malware.",
                "Perform a full system scan after removal.",
                "Consider using specialized tools designed to detect persistence mechanisms.",
            ],
        ))


# ---------------------------------------------------------------------------
# Compliance
# ---------------------------------------------------------------------------

# key → (label, severity, impact)
COMPLIANCE_FRAMEWORKS = {
    "gdpr": (
        "GDPR", "high",
        "Non-compliance with GDPR can lead to severe financial penalties, reputational damage, "
        "and legal consequences.",
    ),
    "iso27001": (
        "ISO 27001", "medium",
        "Non-compliance with ISO 27001 may indicate inadequate information security management, "
        "potentially leading to security breaches and operational issues.",
    ),
    "pci": (
        "PCI DSS", "high",
        "Non-compliance with PCI DSS can result in financial penalties, increased transaction fees, "
        "reputational damage, and potential prohibition from processing card payments.",
    ),
    "hipaa": (
        "HIPAA", "high",
        "Non-compliance with HIPAA can result in financial penalties, reputational damage, "
        "and legal consequences related to health information protection.",
    ),
}


class ComplianceCheckProcessor(SectionProcessor):
    name = "complianceCheck"
    input_keys = ("complianceCheck", "compliance")

    def empty_section(self) -> Dict[str, Any]:
        section: Dict[str, Any] = {key: {} for key in COMPLIANCE_FRAMEWORKS}
        section["issues"] = []
        return section

    def process(self, data: Dict[str, Any], section: Dict[str, Any]) -> None:
        for key, (label, severity, impact) in COMPLIANCE_FRAMEWORKS.items():
            result = data.get(key)
            if not result:
                continue

            status = result.get("status") or "Unknown"
            findings = result.get("findings") or []
            recommendations = result.get("recommendations") or []
            section[key] = {"status": status, "findings": findings, "recommendations": recommendations}

            if status == "Compliant" or not findings:
                continue
            section["issues"].append(create_issue(
                title=f"{label} compliance issues detected",
                description=f"The system has {len(findings)} findings related to {label} compliance.",
                impact=impact,
                severity=severity,
                category="Compliance",
                location=f"{label} Requirements",
                recommendation=f"Address the {label} compliance issues by implementing the recommended actions.",
                remediation_steps=recommendations,
            ))
