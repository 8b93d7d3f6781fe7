# cybershieldx/scanner/detailed/builder.py
"""
Detailed Issue Builder.

Re-walks a RawScanResult (plus any vulnerability, malware and compliance
sub-results) and produces a DetailedReport:

    summary             scanDate, clientInfo (IP/MAC masked), riskScore,
                        issue counts, scanDuration
    networkScan         \
    systemScan           |
    vulnerabilityScan    |  one section per processor, each with "issues"
    malwareScan          |
    complianceCheck     /
    remediationPlan     one RemediationAction per issue, bucketed by severity

Risk score here is the linear issue score (see utils.scoring), reported
next to the analyzer's self-weighted score. The two may disagree.

analyze_results() never raises: any failure yields an empty report with
riskScore 100 and an "error" string.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from cybershieldx.scanner.base import Issue, SEVERITIES, iso_timestamp, now_utc
from cybershieldx.scanner.detailed.processors import (
    ComplianceCheckProcessor,
    MalwareScanProcessor,
    NetworkScanProcessor,
    SectionProcessor,
    SystemScanProcessor,
    VulnerabilityScanProcessor,
)
from cybershieldx.scanner.detailed.remediation import RemediationAction
from cybershieldx.utils.formatting import format_duration
from cybershieldx.utils.sanitize import mask_sensitive_data
from cybershieldx.utils.scoring import linear_risk_score

logger = logging.getLogger(__name__)

PLAN_BUCKETS = {
    "critical": "criticalActions",
    "high": "highPriorityActions",
    "medium": "mediumPriorityActions",
    "low": "lowPriorityActions",
}


def default_processors(clock: Callable[[], datetime] = now_utc) -> List[SectionProcessor]:
    return [
        NetworkScanProcessor(),
        SystemScanProcessor(clock=clock),
        VulnerabilityScanProcessor(),
        MalwareScanProcessor(),
        ComplianceCheckProcessor(),
    ]


def build_remediation_plan(issues: List[Issue]) -> Dict[str, List[RemediationAction]]:
    """Partition by severity, one action per issue, issue order preserved."""
    plan: Dict[str, List[RemediationAction]] = {bucket: [] for bucket in PLAN_BUCKETS.values()}
    for issue in issues:
        plan[PLAN_BUCKETS[issue.severity]].append(RemediationAction.from_issue(issue))
    return plan


def _primary_interface(raw: Dict[str, Any]) -> Dict[str, Any]:
    interfaces = ((raw.get("network") or {}).get("interfaces")
                  or (raw.get("system") or {}).get("network")
                  or [])
    for iface in interfaces:
        if isinstance(iface, dict) and not iface.get("internal") and iface.get("ip4"):
            return iface
    return {}


def client_info(raw: Dict[str, Any], client_id: str) -> Dict[str, Any]:
    """
    Who was scanned. Explicit systemInfo/networkInfo blocks win over what
    the collectors reported; addresses are always masked.
    """
    system_info = raw.get("systemInfo") or {}
    network_info = raw.get("networkInfo") or {}
    os_info = (raw.get("system") or {}).get("os") or {}
    iface = _primary_interface(raw)

    os_details = system_info.get("osDetails")
    if not os_details and os_info.get("distro"):
        os_details = f"{os_info['distro']} {os_info.get('release', '')}".strip()

    return {
        "id": client_id,
        "name": system_info.get("hostname") or os_info.get("hostname") or "Unknown",
        "ipAddress": mask_sensitive_data(network_info.get("ipAddress") or iface.get("ip4") or "Unknown"),
        "macAddress": mask_sensitive_data(network_info.get("macAddress") or iface.get("mac") or "Unknown", "mac"),
        "osInfo": os_details or "Unknown",
        "systemType": system_info.get("systemType") or os_info.get("platform") or "Unknown",
    }


class DetailedIssueBuilder:

    def __init__(self, processors: Optional[List[SectionProcessor]] = None,
                 clock: Callable[[], datetime] = now_utc):
        self.clock = clock
        self.processors = processors if processors is not None else default_processors(clock)

    def analyze_results(self, raw: Dict[str, Any], client_id: str) -> Dict[str, Any]:
        start = time.monotonic()
        scan_date = iso_timestamp(self.clock())
        try:
            raw = raw or {}
            logger.info(f"Building detailed report for client {client_id}")

            sections: Dict[str, Dict[str, Any]] = {}
            issues: List[Issue] = []
            for processor in self.processors:
                section = processor.build(raw)
                sections[processor.name] = section
                issues.extend(section["issues"])

            plan = build_remediation_plan(issues)
            counts = {s: sum(1 for i in issues if i.severity == s) for s in SEVERITIES}

            report: Dict[str, Any] = {
                "summary": {
                    "scanDate": scan_date,
                    "clientInfo": client_info(raw, client_id),
                    "riskScore": linear_risk_score(**counts),
                    "totalIssues": len(issues),
                    "criticalIssues": counts["critical"],
                    "highIssues": counts["high"],
                    "mediumIssues": counts["medium"],
                    "lowIssues": counts["low"],
                    "scanDuration": format_duration((time.monotonic() - start) * 1000),
                },
            }
            for name, section in sections.items():
                section["issues"] = [i.to_dict() for i in section["issues"]]
                report[name] = section
            report["remediationPlan"] = {
                bucket: [a.to_dict() for a in actions] for bucket, actions in plan.items()
            }

            logger.info(
                f"Detailed report built: {len(issues)} issues, risk score {report['summary']['riskScore']}"
            )
            return report
        except Exception as e:
            logger.exception(f"Detailed analysis failed: {e}")
            return self.fallback(client_id, scan_date, e, time.monotonic() - start)

    def fallback(self, client_id: str, scan_date: str, error: Exception, elapsed: float) -> Dict[str, Any]:
        report: Dict[str, Any] = {
            "summary": {
                "scanDate": scan_date,
                "clientInfo": {
                    "id": client_id,
                    "name": "Unknown",
                    "ipAddress": "Unknown",
                    "macAddress": "Unknown",
                    "osInfo": "Unknown",
                    "systemType": "Unknown",
                },
                "riskScore": 100,
                "totalIssues": 0,
                "criticalIssues": 0,
                "highIssues": 0,
                "mediumIssues": 0,
                "lowIssues": 0,
                "scanDuration": format_duration(elapsed * 1000),
            },
        }
        for processor in self.processors:
            report[processor.name] = processor.empty_section()
        report["remediationPlan"] = {bucket: [] for bucket in PLAN_BUCKETS.values()}
        report["error"] = str(error)
        return report
