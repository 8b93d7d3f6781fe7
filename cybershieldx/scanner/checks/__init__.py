# cybershieldx/scanner/checks/__init__.py
"""
Security-configuration checks.
One strategy class per (check, platform). The platform is resolved once,
when the SystemCollector is built, never per call.
"""
from typing import List

from cybershieldx.scanner.base import SecurityCheck
from cybershieldx.scanner.checks.common import (
    NetworkConfigCheck,
    SecuritySoftwareCheck,
    UnsupportedCheck,
    UsersCheck,
)
from cybershieldx.scanner.checks.linux import LINUX_CHECKS
from cybershieldx.scanner.checks.macos import MACOS_CHECKS
from cybershieldx.scanner.checks.windows import WINDOWS_CHECKS

# Registry of check strategies per platform family.
PLATFORM_CHECKS = {
    "windows": WINDOWS_CHECKS,
    "darwin": MACOS_CHECKS,
    "linux": LINUX_CHECKS,
}

CHECK_NAMES = (
    "users",
    "authentication",
    "updates",
    "encryption",
    "networkConfig",
    "firewallConfig",
    "securitySoftware",
)


def platform_family(platform: str) -> str:
    if platform.startswith("win"):
        return "windows"
    if platform == "darwin":
        return "darwin"
    if platform.startswith("linux"):
        return "linux"
    return "other"


def select_checks(platform: str) -> List[SecurityCheck]:
    """Instantiate the seven checks for a sys.platform value."""
    classes = PLATFORM_CHECKS.get(platform_family(platform))
    if classes:
        return [cls() for cls in classes]

    return [
        UsersCheck(),
        UnsupportedCheck("authentication", "passwordPolicy"),
        UnsupportedCheck("updates", "updateStatus"),
        UnsupportedCheck("encryption", "encryptionStatus"),
        NetworkConfigCheck(),
        UnsupportedCheck("firewallConfig", "firewallStatus"),
        SecuritySoftwareCheck(),
    ]


__all__ = [
    "PLATFORM_CHECKS", "CHECK_NAMES",
    "platform_family", "select_checks",
]
