# cybershieldx/scanner/checks/common.py
"""
Security checks whose logic is shared across platforms.

Platform modules subclass these and override only the OS-specific query
(admin detection, promiscuous-mode detection, security product discovery),
so the scoring rules exist exactly once.

Scoring:
    users            100, −50 admin/root, −25 multiple sessions
    networkConfig    100, −20 per insecure listener, −30 any promiscuous NIC
    securitySoftware ≥2 products → 100, 1 → 75, none → 0
"""

from __future__ import annotations

import getpass
import logging
import os
from typing import Any, Dict, List

import psutil

from cybershieldx.scanner.base import PipelineContext, SecurityCheck

logger = logging.getLogger(__name__)

# Cleartext mail/file/terminal protocols that should not be listening
INSECURE_PORTS = (21, 23, 25, 110, 143)

SERVICE_NAMES = {
    21: "FTP",
    22: "SSH",
    23: "Telnet",
    25: "SMTP",
    53: "DNS",
    80: "HTTP",
    110: "POP3",
    143: "IMAP",
    443: "HTTPS",
    3389: "RDP",
}


def service_name_for_port(port: int) -> str:
    return SERVICE_NAMES.get(port, "Unknown")


def current_username() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


# ---------------------------------------------------------------------------
# users
# ---------------------------------------------------------------------------

class UsersCheck(SecurityCheck):
    """Privilege of the agent's account and concurrent interactive sessions."""

    name = "users"

    def is_admin(self, ctx: PipelineContext, username: str) -> bool:
        return hasattr(os, "geteuid") and os.geteuid() == 0

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        sessions = psutil.users()
        username = current_username()
        is_admin = self.is_admin(ctx, username)
        multiple = len(sessions) > 1

        score = 100
        if is_admin:
            score -= 50
        if multiple:
            score -= 25

        issues = []
        if is_admin:
            issues.append("Running as administrator/root is a security risk")
        if multiple:
            issues.append("Multiple users logged in simultaneously")

        return {
            "currentUser": username,
            "isAdmin": is_admin,
            "usersLoggedIn": len(sessions),
            "multipleUsersLoggedIn": multiple,
            "issues": issues,
            "score": score,
        }


# ---------------------------------------------------------------------------
# networkConfig
# ---------------------------------------------------------------------------

class NetworkConfigCheck(SecurityCheck):
    """Listening cleartext services and interfaces in promiscuous mode."""

    name = "networkConfig"

    def candidate_interfaces(self) -> List[str]:
        """Up, non-loopback interfaces."""
        stats = psutil.net_if_stats()
        return [
            name for name, st in stats.items()
            if st.isup and not name.lower().startswith(("lo", "loopback"))
        ]

    def promiscuous_interfaces(self, ctx: PipelineContext, interfaces: List[str]) -> List[str]:
        """Platform query. Default: no detection available."""
        return []

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        connections = psutil.net_connections(kind="inet")
        listening = [c for c in connections if c.status == psutil.CONN_LISTEN and c.laddr]

        insecure_services = []
        seen_ports = set()
        for conn in listening:
            port = conn.laddr.port
            if port in INSECURE_PORTS and port not in seen_ports:
                seen_ports.add(port)
                insecure_services.append({
                    "port": port,
                    "service": service_name_for_port(port),
                    "pid": conn.pid,
                })

        interfaces = self.candidate_interfaces()
        promiscuous = self.promiscuous_interfaces(ctx, interfaces)

        score = 100 - len(insecure_services) * 20
        if promiscuous:
            score -= 30

        issues = []
        if insecure_services:
            issues.append(f"Found {len(insecure_services)} potentially insecure services running")
        if promiscuous:
            issues.append("Found network interfaces in promiscuous mode, which is a security risk")

        return {
            "activeInterfaces": len(interfaces),
            "listeningPorts": len({c.laddr.port for c in listening}),
            "insecureServices": insecure_services,
            "promiscuousInterfaces": [{"iface": name, "promiscuous": True} for name in promiscuous],
            "issues": issues,
            "score": max(0, min(100, score)),
        }


# ---------------------------------------------------------------------------
# securitySoftware
# ---------------------------------------------------------------------------

class SecuritySoftwareCheck(SecurityCheck):
    """Antivirus, integrity and access-control products present on the host."""

    name = "securitySoftware"

    def detect(self, ctx: PipelineContext) -> List[Dict[str, str]]:
        return []

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        products = self.detect(ctx)
        if len(products) >= 2:
            score = 100
        elif len(products) == 1:
            score = 75
        else:
            score = 0
        return {"securitySoftware": products, "count": len(products), "score": score}


# ---------------------------------------------------------------------------
# Fallbacks for platforms without a dedicated strategy
# ---------------------------------------------------------------------------

class UnsupportedCheck(SecurityCheck):
    """Neutral default: the platform offers no query for this check."""

    def __init__(self, name: str, status_key: str, score: int = 50):
        self.name = name
        self.status_key = status_key
        self.default_score = score

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        return {self.status_key: {}, "score": self.default_score}
