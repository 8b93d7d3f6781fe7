# cybershieldx/scanner/reporter.py
"""
Reporter.

Merges the RiskAnalyzer output and (optionally) the DetailedReport into
one Report, redacts identifying network data and hands the result to the
report sink.

Report layout:
    reportId, scanId, scanType, timestamp
    summary         riskLevel, riskScore, analyzerRiskScore,
                    issueBuilderRiskScore, issueCount, systemInfo,
                    overallStatus
    details         issues by severity, recommendations, riskScores,
                    remediationPlan
    systemDetails   os / hardware / network / security extract (sanitized)
    scanData        the whole RawScanResult (sanitized deep copy)
    agentInfo       version, platform, hostname

The Reporter is the only stage that redacts. generate_report() never
raises: a failure yields a minimal Report with overallStatus "error", and
a sink failure is logged while the built Report is still returned.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from cybershieldx.scanner.base import PipelineContext, SEVERITIES
from cybershieldx.utils.formatting import format_bytes
from cybershieldx.utils.sanitize import mask_sensitive_data, mask_text, redact, sanitize_scan_data

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def report_filename(report: Dict[str, Any]) -> str:
    stamp = str(report.get("timestamp", "")).replace(":", "-")
    return f"report-{report.get('scanId')}-{stamp}.json"


class JsonFileSink:
    """
    Writes each Report as pretty-printed UTF-8 JSON under `reports_dir`.

    The file appears all at once: the JSON is written to a temp file in
    the same directory, then renamed over the final name.
    """

    def __init__(self, reports_dir: Path | str):
        self.reports_dir = Path(reports_dir)

    def __call__(self, report: Dict[str, Any]) -> str:
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        path = self.reports_dir / report_filename(report)

        fd, tmp_path = tempfile.mkstemp(dir=self.reports_dir, prefix=".report-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(report, f, indent=2, ensure_ascii=False, default=str)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"Report saved to {path}")
        return str(path)


# ---------------------------------------------------------------------------
# Extraction helpers
# ---------------------------------------------------------------------------

def _devices(raw: Dict[str, Any]) -> Optional[List[Any]]:
    network = raw.get("network") or {}
    devices = network.get("devices") if "devices" in network else raw.get("devices")
    return devices if isinstance(devices, list) else None


def _interfaces(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    interfaces = (raw.get("network") or {}).get("interfaces") or (raw.get("system") or {}).get("network") or []
    return [i for i in interfaces if isinstance(i, dict)]


def system_summary(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Compact host summary. Every field is optional; the address is masked."""
    summary: Dict[str, Any] = {}
    system = raw.get("system") or {}

    os_info = system.get("os")
    if os_info:
        summary["os"] = f"{os_info.get('distro', '')} {os_info.get('release', '')}".strip()
        summary["hostname"] = os_info.get("hostname")
        summary["uptime"] = os_info.get("uptime")

    cpu = system.get("cpu")
    if cpu:
        summary["cpu"] = f"{cpu.get('manufacturer', '')} {cpu.get('brand', '')}".strip()
        summary["cores"] = cpu.get("cores")

    memory = system.get("memory")
    if memory:
        summary["memory"] = format_bytes(memory.get("total"))
        summary["memoryUsage"] = f"{memory.get('usedPercentage')}%"

    devices = _devices(raw)
    if devices is not None:
        summary["deviceCount"] = len(devices)

    primary = next((i for i in _interfaces(raw) if not i.get("internal") and i.get("ip4")), None)
    if primary:
        summary["ipAddress"] = mask_sensitive_data(primary["ip4"])

    return summary


def extract_system_details(raw: Dict[str, Any]) -> Dict[str, Any]:
    details: Dict[str, Any] = {}
    system = raw.get("system") or {}

    os_info = system.get("os")
    if os_info:
        details["os"] = {
            key: os_info.get(key)
            for key in ("platform", "distro", "release", "arch", "kernel", "hostname", "uptime")
        }

    if system:
        hardware: Dict[str, Any] = {}
        cpu = system.get("cpu")
        if cpu:
            hardware["cpu"] = {key: cpu.get(key) for key in ("manufacturer", "brand", "cores", "speed")}
        memory = system.get("memory")
        if memory:
            hardware["memory"] = {
                "total": format_bytes(memory.get("total")),
                "free": format_bytes(memory.get("free")),
                "used": format_bytes(memory.get("used")),
                "usedPercentage": memory.get("usedPercentage"),
            }
        if isinstance(system.get("disk"), list):
            hardware["disk"] = [
                {
                    "mount": disk.get("mount"),
                    "size": format_bytes(disk.get("size")),
                    "used": format_bytes(disk.get("used")),
                    "usedPercentage": disk.get("usedPercentage"),
                }
                for disk in system["disk"]
            ]
        details["hardware"] = hardware

    network: Dict[str, Any] = {}
    interfaces = _interfaces(raw)
    if interfaces:
        network["interfaces"] = [
            {
                "name": iface.get("iface"),
                "mac": iface.get("mac"),
                "ip4": iface.get("ip4"),
                "ip6": iface.get("ip6"),
                "status": iface.get("operstate"),
            }
            for iface in interfaces
        ]
    devices = _devices(raw)
    if devices is not None:
        network["devices"] = len(devices)
    firewall = raw.get("firewall")
    if firewall:
        network["firewall"] = {"status": firewall.get("status"), "rulesCount": firewall.get("rulesCount")}
    if network:
        details["network"] = network

    security: Dict[str, Any] = {}
    config = raw.get("config") or {}
    if config.get("users"):
        users = config["users"]
        security["users"] = {
            "currentUser": users.get("currentUser"),
            "isAdmin": users.get("isAdmin"),
            "multipleUsers": users.get("multipleUsersLoggedIn"),
            "score": users.get("score"),
        }
    if config.get("authentication"):
        auth = config["authentication"]
        security["authentication"] = {"score": auth.get("score"), "rating": auth.get("rating")}
    if config.get("encryption"):
        enc = config["encryption"]
        security["encryption"] = {
            "enabled": (enc.get("encryptionStatus") or {}).get("enabled"),
            "score": enc.get("score"),
        }
    if config.get("firewallConfig"):
        fw = config["firewallConfig"]
        security["firewall"] = {
            "enabled": (fw.get("firewallStatus") or {}).get("enabled"),
            "score": fw.get("score"),
        }
    if config.get("securitySoftware"):
        sw = config["securitySoftware"]
        security["securitySoftware"] = {"count": sw.get("count"), "score": sw.get("score")}
    details["security"] = security

    return details


def _masked(text: Optional[str]) -> Optional[str]:
    return mask_text(text) if isinstance(text, str) else text


def format_issues(issues: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Issue summaries for the report; host addresses in the text are masked."""
    return [
        {
            "title": _masked(issue.get("title")),
            "description": _masked(issue.get("description")),
            "category": issue.get("category"),
            "severity": issue.get("severity"),
        }
        for issue in issues
    ]


# ---------------------------------------------------------------------------
# Reporter
# ---------------------------------------------------------------------------

class Reporter:

    def __init__(self, ctx: PipelineContext):
        self.ctx = ctx

    def _epoch_ms(self) -> int:
        return int(self.ctx.clock().timestamp() * 1000)

    def agent_info(self) -> Dict[str, Any]:
        return {
            "version": self.ctx.config.agent_version,
            "platform": self.ctx.platform,
            "hostname": socket.gethostname(),
        }

    def generate_report(
        self,
        scan_id: str,
        scan_type: str,
        raw: Dict[str, Any],
        analysis: Dict[str, Any],
        detailed: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            logger.info(f"Generating report for scan {scan_id} ({scan_type})")
            raw = raw or {}
            issues = analysis.get("issues") or {}
            counts = {s: len(issues.get(s) or []) for s in SEVERITIES}
            risk_scores = analysis.get("riskScores") or {}
            overall = risk_scores.get("overall") or 0

            summary: Dict[str, Any] = {
                "riskLevel": analysis.get("riskLevel") or "unknown",
                "riskScore": overall,
                "analyzerRiskScore": overall,
                "issueCount": {**counts, "total": sum(counts.values())},
                "systemInfo": system_summary(raw),
                "overallStatus": (analysis.get("summary") or {}).get("overallStatus") or "unknown",
            }
            details: Dict[str, Any] = {
                "issues": {s: format_issues(issues.get(s) or []) for s in SEVERITIES},
                "recommendations": redact(list(analysis.get("recommendations") or [])),
                "riskScores": dict(risk_scores),
            }
            if detailed is not None:
                summary["issueBuilderRiskScore"] = (detailed.get("summary") or {}).get("riskScore")
                details["remediationPlan"] = redact(detailed.get("remediationPlan") or {})

            report = {
                "reportId": f"{scan_id}-{self._epoch_ms()}",
                "scanId": scan_id,
                "scanType": scan_type,
                "timestamp": self.ctx.timestamp(),
                "summary": summary,
                "details": details,
                "systemDetails": sanitize_scan_data(extract_system_details(raw)),
                "scanData": sanitize_scan_data(raw),
                "agentInfo": self.agent_info(),
            }
            if analysis.get("error"):
                report["analysisError"] = analysis["error"]
        except Exception as e:
            logger.exception(f"Failed to generate report: {e}")
            return self.error_report(scan_id, scan_type, e)

        self.persist(report)
        return report

    def persist(self, report: Dict[str, Any]) -> Optional[str]:
        if self.ctx.sink is None:
            return None
        try:
            return self.ctx.sink(report)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save report {report.get('reportId')}: {e}")
            return None

    def error_report(self, scan_id: str, scan_type: str, error: Exception) -> Dict[str, Any]:
        return {
            "reportId": f"error-{scan_id}-{self._epoch_ms()}",
            "scanId": scan_id,
            "scanType": scan_type,
            "timestamp": self.ctx.timestamp(),
            "error": str(error),
            "summary": {
                "riskLevel": "unknown",
                "riskScore": 0,
                "issueCount": {"critical": 0, "high": 0, "medium": 0, "low": 0, "total": 0},
                "overallStatus": "error",
            },
            "details": {"issues": {}, "recommendations": []},
            "agentInfo": self.agent_info(),
        }
