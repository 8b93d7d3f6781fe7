# cybershieldx/scanner/checks/windows.py
"""
Windows security check strategies.

Probes:
    users            net localgroup administrators
    authentication   net accounts
    updates          Get-HotFix (newest InstalledOn)
    encryption       Get-BitLockerVolume (system volume C:)
    networkConfig    Get-NetAdapter PromiscuousMode
    firewallConfig   netsh advfirewall show allprofiles
    securitySoftware Get-MpComputerStatus + SecurityCenter2 AntiVirusProduct
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List

from cybershieldx.scanner.base import PipelineContext, SecurityCheck
from cybershieldx.scanner.checks.common import (
    NetworkConfigCheck,
    SecuritySoftwareCheck,
    UsersCheck,
)
from cybershieldx.scanner.commands import CommandError
from cybershieldx.scanner.parsers import ParseError
from cybershieldx.scanner.parsers import windows as parsers

logger = logging.getLogger(__name__)


def _powershell(ctx: PipelineContext, script: str):
    return ctx.run(["powershell", "-NoProfile", "-NonInteractive", "-Command", script])


class WindowsUsersCheck(UsersCheck):

    def is_admin(self, ctx: PipelineContext, username: str) -> bool:
        result = ctx.run(["net", "localgroup", "administrators"])
        wanted = username.lower()
        members = [line.strip().lower() for line in result.lines()]
        return any(m == wanted or m.endswith("\\" + wanted) for m in members)


class WindowsAuthenticationCheck(SecurityCheck):
    name = "authentication"

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        policy = parsers.parse_net_accounts(ctx.run(["net", "accounts"]).stdout)

        score = 0
        if policy.min_password_length >= 12:
            score += 40
        elif policy.min_password_length >= 8:
            score += 20
        else:
            score += 10

        if 0 < policy.max_password_age <= 90:
            score += 30
        elif policy.max_password_age <= 180:
            score += 15
        else:
            score += 5

        if policy.password_history_size >= 10:
            score += 30
        elif policy.password_history_size >= 5:
            score += 15
        else:
            score += 5

        return {"passwordPolicy": policy.to_dict(), "score": score}


class WindowsUpdatesCheck(SecurityCheck):
    name = "updates"

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        result = _powershell(
            ctx,
            "Get-HotFix | Sort-Object -Property InstalledOn -Descending | "
            "Select-Object -First 1 | Select-Object HotFixID, InstalledOn | ConvertTo-Json",
        )
        hotfix = parsers.parse_latest_hotfix(result.stdout)
        days = math.ceil(abs((ctx.clock() - hotfix.installed_on).total_seconds()) / 86400)

        if days <= 30:
            score = 100
        elif days <= 90:
            score = 75
        elif days <= 180:
            score = 50
        else:
            score = 25

        return {
            "updateStatus": {
                "latestUpdate": hotfix.hotfix_id,
                "installedOn": hotfix.installed_on.isoformat(),
                "daysSinceLastUpdate": days,
            },
            "score": score,
        }


class WindowsEncryptionCheck(SecurityCheck):
    name = "encryption"

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        result = _powershell(
            ctx,
            "Get-BitLockerVolume | Select-Object MountPoint, VolumeStatus, EncryptionPercentage | ConvertTo-Json",
        )
        system_volumes = [
            v for v in parsers.parse_bitlocker_volumes(result.stdout)
            if v.mount_point.upper() == "C:"
        ]
        enabled = bool(system_volumes) and all(v.status == "FullyEncrypted" for v in system_volumes)
        return {
            "encryptionStatus": {
                "enabled": enabled,
                "type": "BitLocker",
                "volumes": [v.to_dict() for v in system_volumes],
            },
            "score": 100 if enabled else 0,
        }


class WindowsNetworkConfigCheck(NetworkConfigCheck):

    def promiscuous_interfaces(self, ctx: PipelineContext, interfaces: List[str]) -> List[str]:
        found = []
        for iface in interfaces:
            try:
                out = _powershell(
                    ctx, f"Get-NetAdapter -Name '{iface}' | Select-Object -ExpandProperty PromiscuousMode"
                )
            except CommandError as e:
                logger.debug(f"Promiscuous mode query failed for {iface}: {e}")
                continue
            if parsers.parse_promiscuous_flag(out.stdout):
                found.append(iface)
        return found


class WindowsFirewallCheck(SecurityCheck):
    name = "firewallConfig"

    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        out = ctx.run(["netsh", "advfirewall", "show", "allprofiles"])
        profiles = parsers.parse_netsh_profiles(out.stdout)

        if profiles.all_enabled:
            score = 100
        elif profiles.any_enabled:
            score = 50
        else:
            score = 0

        return {
            "firewallStatus": {
                "enabled": profiles.any_enabled,
                "allProfilesEnabled": profiles.all_enabled,
                "profiles": {
                    "domain": profiles.domain,
                    "private": profiles.private,
                    "public": profiles.public,
                },
                "type": "Windows Firewall",
            },
            "score": score,
        }


class WindowsSecuritySoftwareCheck(SecuritySoftwareCheck):

    def detect(self, ctx: PipelineContext) -> List[Dict[str, str]]:
        products: List[Dict[str, str]] = []
        failures: List[str] = []

        try:
            out = _powershell(ctx, "Get-MpComputerStatus | ConvertTo-Json")
            enabled = parsers.parse_defender_status(out.stdout)
            # Defender counts only while real-time protection is on
            if enabled:
                products.append({"name": "Windows Defender", "status": "enabled", "type": "antivirus"})
        except (CommandError, ParseError) as e:
            failures.append(str(e))

        try:
            out = _powershell(
                ctx,
                "Get-CimInstance -Namespace 'root\\SecurityCenter2' -ClassName AntiVirusProduct | "
                "Select-Object displayName | ConvertTo-Json",
            )
            for name in parsers.parse_antivirus_products(out.stdout):
                if "Windows Defender" not in name and "Microsoft Defender" not in name:
                    products.append({"name": name, "status": "installed", "type": "antivirus"})
        except (CommandError, ParseError) as e:
            failures.append(str(e))

        if len(failures) == 2:
            raise CommandError(["powershell"], "; ".join(failures))
        return products


WINDOWS_CHECKS = [
    WindowsUsersCheck,
    WindowsAuthenticationCheck,
    WindowsUpdatesCheck,
    WindowsEncryptionCheck,
    WindowsNetworkConfigCheck,
    WindowsFirewallCheck,
    WindowsSecuritySoftwareCheck,
]
