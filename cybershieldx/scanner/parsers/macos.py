# cybershieldx/scanner/parsers/macos.py
"""
macOS tool output parsers.

Tools covered:
    fdesetup status                                    → FileVault on/off
    defaults read com.apple.screensaver askForPassword → bool
    softwareupdate -l                                  → updates available
    socketfilterfw --getglobalstate / --listapps       → firewall state, allow count
    spctl --status                                     → Gatekeeper enabled
    ls /Applications                                   → app names
"""

from __future__ import annotations

from typing import Dict, List

from cybershieldx.scanner.parsers import ParseError


def parse_fdesetup_status(text: str) -> bool:
    text = text or ""
    if "FileVault is On" in text:
        return True
    if "FileVault is Off" in text:
        return False
    raise ParseError("fdesetup", "no FileVault status line")


def parse_screensaver_password(text: str) -> bool:
    return (text or "").strip() == "1"


def parse_softwareupdate(text: str) -> bool:
    """True when updates are pending."""
    return "No new software available" not in (text or "")


def parse_socketfilterfw_state(text: str) -> bool:
    text = (text or "").lower()
    if "enabled" in text:
        return True
    if "disabled" in text:
        return False
    raise ParseError("socketfilterfw", "no global state in output")


def count_socketfilterfw_allowed(text: str) -> int:
    return sum(1 for line in (text or "").splitlines() if "Allow" in line)


def parse_spctl_status(text: str) -> bool:
    return "disabled" not in (text or "")


def parse_applications(names: List[str]) -> List[Dict[str, str]]:
    """Directory entries of /Applications → software records."""
    return [
        {"name": name[: -len(".app")], "version": "Unknown", "publisher": "Unknown"}
        for name in sorted(names)
        if name.endswith(".app")
    ]

