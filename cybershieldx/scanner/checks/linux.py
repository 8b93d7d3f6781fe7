# cybershieldx/scanner/checks/linux.py
"""
Linux security check strategies.

Probes:
    users            effective uid (shared)
    authentication   PAM stacks under /etc/pam.d
    updates          apt-get -s upgrade, else yum/dnf check-update
    encryption       lsblk -f (LUKS) + /proc/mounts (eCryptfs)
    networkConfig    ip -o link show
    firewallConfig   ufw status, else iptables -L -n
    securitySoftware scanners on PATH + SELinux / AppArmor status
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from cybershieldx.scanner.base import PipelineContext, SecurityCheck
from cybershieldx.scanner.checks.common import (
    NetworkConfigCheck,
    SecuritySoftwareCheck,
    UsersCheck,
)
from cybershieldx.scanner.commands import CommandError, CommandNotFound
from cybershieldx.scanner.parsers import ParseError
from cybershieldx.scanner.parsers import linux as parsers

logger = logging.getLogger(__name__)

PAM_DIR = Path("/etc/pam.d")

# Debian family first, then the RHEL family
PAM_PASSWORD_FILES = ("common-password", "system-auth", "password-auth")
PAM_AUTH_FILES = ("common-auth", "system-auth", "password-auth")

# (display name, binaries that indicate it, type)
SECURITY_TOOLS = (
    ("ClamAV", ("clamscan", "clamd", "freshclam"), "antivirus"),
    ("rkhunter", ("rkhunter",), "rootkit scanner"),
    ("chkrootkit", ("chkrootkit",), "rootkit scanner"),
    ("AIDE", ("aide",), "integrity monitor"),
    ("Snort", ("snort",), "intrusion detection"),
    ("Lynis", ("lynis",), "auditing"),
    ("Fail2ban", ("fail2ban-client",), "intrusion prevention"),
)


def _read_pam(names, pam_dir: Path = PAM_DIR) -> Optional[str]:
    """Concatenated content of the PAM files that exist, None if none do."""
    chunks = []
    for name in names:
        path = pam_dir / name
        if path.is_file():
            chunks.append(path.read_text(errors="replace"))
    return "\n".join(chunks) if chunks else None


class LinuxAuthenticationCheck(SecurityCheck):
    name = "authentication"

    def __init__(self, pam_dir: Path = PAM_DIR):
        self.pam_dir = pam_dir

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        password_stack = _read_pam(PAM_PASSWORD_FILES, self.pam_dir)
        auth_stack = _read_pam(PAM_AUTH_FILES, self.pam_dir)
        if password_stack is None and auth_stack is None:
            raise FileNotFoundError(f"no PAM configuration found in {self.pam_dir}")

        complexity = parsers.pam_has_complexity(password_stack or "")
        lockout = parsers.pam_has_lockout(auth_stack or "")

        score = 0
        if complexity:
            score += 50
        if lockout:
            score += 50

        return {
            "passwordPolicy": {
                "complexityEnabled": complexity,
                "accountLockoutEnabled": lockout,
            },
            "score": score,
        }


class LinuxUpdatesCheck(SecurityCheck):
    name = "updates"

    def pending_updates(self, ctx: PipelineContext) -> Dict[str, Any]:
        if shutil.which("apt-get"):
            out = ctx.run(["apt-get", "-s", "upgrade"])
            return {"packageManager": "apt", "pendingUpdates": parsers.parse_apt_upgrade(out.stdout)}

        for manager in ("dnf", "yum"):
            if shutil.which(manager):
                # exit 100 means "updates available", 1 is a real error
                out = ctx.run([manager, "check-update", "-q"], check=False)
                if out.returncode not in (0, 100):
                    raise CommandError(out.cmd, f"exit {out.returncode}: {out.stderr.strip()[:500]}",
                                       returncode=out.returncode)
                return {"packageManager": manager, "pendingUpdates": parsers.parse_yum_check_update(out.stdout)}

        raise CommandNotFound(["apt-get"], "no supported package manager found")

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        status = self.pending_updates(ctx)
        pending = status["pendingUpdates"]
        if pending == 0:
            score = 100
        elif pending < 5:
            score = 75
        else:
            score = 50
        return {"updateStatus": status, "score": score}


class LinuxEncryptionCheck(SecurityCheck):
    name = "encryption"

    def __init__(self, mounts_file: Path = Path("/proc/mounts")):
        self.mounts_file = mounts_file

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        luks = parsers.lsblk_has_luks(ctx.run(["lsblk", "-f"]).stdout)
        ecryptfs = False
        if self.mounts_file.is_file():
            ecryptfs = parsers.mounts_have_ecryptfs(self.mounts_file.read_text(errors="replace"))

        enabled = luks or ecryptfs
        types = [name for name, on in (("LUKS", luks), ("eCryptfs", ecryptfs)) if on]
        return {
            "encryptionStatus": {"enabled": enabled, "type": ", ".join(types) or "None"},
            "score": 100 if enabled else 0,
        }


class LinuxNetworkConfigCheck(NetworkConfigCheck):

    def promiscuous_interfaces(self, ctx: PipelineContext, interfaces: List[str]) -> List[str]:
        try:
            out = ctx.run(["ip", "-o", "link", "show"])
        except CommandError as e:
            logger.debug(f"ip link query failed: {e}")
            return []
        wanted = set(interfaces)
        return [name for name in parsers.parse_promiscuous_links(out.stdout) if name in wanted]


class LinuxFirewallCheck(SecurityCheck):
    name = "firewallConfig"

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        try:
            ufw = parsers.parse_ufw_status(ctx.run(["ufw", "status"]).stdout)
            if ufw.active:
                return {
                    "firewallStatus": {"enabled": True, "type": "ufw", "rulesCount": ufw.rules_count},
                    "score": 100,
                }
        except (CommandError, ParseError) as e:
            logger.debug(f"ufw unavailable, trying iptables: {e}")

        rules = parsers.count_iptables_rules(ctx.run(["iptables", "-L", "-n"]).stdout)
        enabled = rules > 0
        return {
            "firewallStatus": {"enabled": enabled, "type": "iptables", "rulesCount": rules},
            "score": 100 if enabled else 0,
        }


class LinuxSecuritySoftwareCheck(SecuritySoftwareCheck):

    def detect(self, ctx: PipelineContext) -> List[Dict[str, str]]:
        products = [
            {"name": name, "status": "installed", "type": kind}
            for name, binaries, kind in SECURITY_TOOLS
            if any(shutil.which(b) for b in binaries)
        ]

        if shutil.which("sestatus"):
            out = ctx.run(["sestatus"], check=False)
            if out.ok and "enabled" in out.stdout.lower():
                products.append({"name": "SELinux", "status": "enabled", "type": "access control"})

        if shutil.which("aa-status"):
            # aa-status --enabled exits 0 only when AppArmor is loaded
            out = ctx.run(["aa-status", "--enabled"], check=False)
            if out.ok:
                products.append({"name": "AppArmor", "status": "enabled", "type": "access control"})

        return products


LINUX_CHECKS = [
    UsersCheck,
    LinuxAuthenticationCheck,
    LinuxUpdatesCheck,
    LinuxEncryptionCheck,
    LinuxNetworkConfigCheck,
    LinuxFirewallCheck,
    LinuxSecuritySoftwareCheck,
]
