# cybershieldx/scanner/checks/macos.py
"""
macOS security check strategies.

Probes:
    users            effective uid (shared)
    authentication   fdesetup status + screensaver askForPassword
    updates          softwareupdate -l, sw_vers -productVersion
    encryption       fdesetup status
    networkConfig    ifconfig <iface> flags
    firewallConfig   socketfilterfw --getglobalstate
    securitySoftware Gatekeeper (spctl), XProtect bundle, known AV apps
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

from cybershieldx.scanner.base import PipelineContext, SecurityCheck
from cybershieldx.scanner.checks.common import (
    NetworkConfigCheck,
    SecuritySoftwareCheck,
    UsersCheck,
)
from cybershieldx.scanner.commands import CommandError
from cybershieldx.scanner.parsers import macos as parsers

logger = logging.getLogger(__name__)

SOCKETFILTERFW = "/usr/libexec/ApplicationFirewall/socketfilterfw"

XPROTECT_PATHS = (
    "/Library/Apple/System/Library/CoreServices/XProtect.bundle",
    "/System/Library/CoreServices/XProtect.bundle",
)

THIRD_PARTY_AV = (
    "Malwarebytes",
    "Norton 360",
    "Avast",
    "Sophos Home",
    "Bitdefender",
    "Intego",
    "ESET Cyber Security",
)


class MacAuthenticationCheck(SecurityCheck):
    name = "authentication"

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        filevault = parsers.parse_fdesetup_status(ctx.run(["fdesetup", "status"]).stdout)

        # "defaults read" exits 1 when the key was never written, which means off
        out = ctx.run(["defaults", "read", "com.apple.screensaver", "askForPassword"], check=False)
        screensaver = out.ok and parsers.parse_screensaver_password(out.stdout)

        score = 0
        if filevault:
            score += 50
        if screensaver:
            score += 50

        return {
            "passwordPolicy": {
                "fileVaultEnabled": filevault,
                "screensaverPasswordRequired": screensaver,
            },
            "score": score,
        }


class MacUpdatesCheck(SecurityCheck):
    name = "updates"

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        version = ctx.run(["sw_vers", "-productVersion"]).stdout.strip()
        out = ctx.run(["softwareupdate", "-l"])
        # softwareupdate prints "No new software available." on stderr
        pending = parsers.parse_softwareupdate(out.stdout + out.stderr)

        return {
            "updateStatus": {"osVersion": version, "updatesAvailable": pending},
            "score": 50 if pending else 100,
        }


class MacEncryptionCheck(SecurityCheck):
    name = "encryption"

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        enabled = parsers.parse_fdesetup_status(ctx.run(["fdesetup", "status"]).stdout)
        return {
            "encryptionStatus": {"enabled": enabled, "type": "FileVault"},
            "score": 100 if enabled else 0,
        }


class MacNetworkConfigCheck(NetworkConfigCheck):

    def promiscuous_interfaces(self, ctx: PipelineContext, interfaces: List[str]) -> List[str]:
        found = []
        for iface in interfaces:
            try:
                out = ctx.run(["ifconfig", iface])
            except CommandError as e:
                logger.debug(f"ifconfig failed for {iface}: {e}")
                continue
            if "PROMISC" in out.stdout:
                found.append(iface)
        return found


class MacFirewallCheck(SecurityCheck):
    name = "firewallConfig"

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        out = ctx.run([SOCKETFILTERFW, "--getglobalstate"])
        enabled = parsers.parse_socketfilterfw_state(out.stdout)
        return {
            "firewallStatus": {"enabled": enabled, "type": "Application Firewall"},
            "score": 100 if enabled else 0,
        }


class MacSecuritySoftwareCheck(SecuritySoftwareCheck):

    def detect(self, ctx: PipelineContext) -> List[Dict[str, str]]:
        products: List[Dict[str, str]] = []

        # spctl exits non-zero when assessments are disabled
        out = ctx.run(["spctl", "--status"], check=False)
        if parsers.parse_spctl_status(out.stdout + out.stderr):
            products.append({"name": "Gatekeeper", "status": "enabled", "type": "application control"})

        if any(os.path.exists(path) for path in XPROTECT_PATHS):
            products.append({"name": "XProtect", "status": "installed", "type": "antivirus"})

        for app in THIRD_PARTY_AV:
            if os.path.exists(f"/Applications/{app}.app"):
                products.append({"name": app, "status": "installed", "type": "antivirus"})

        return products


MACOS_CHECKS = [
    UsersCheck,
    MacAuthenticationCheck,
    MacUpdatesCheck,
    MacEncryptionCheck,
    MacNetworkConfigCheck,
    MacFirewallCheck,
    MacSecuritySoftwareCheck,
]
