# cybershieldx/scanner/parsers/linux.py
"""
Linux tool output parsers.

Tools covered:
    /etc/pam.d/*                  → complexity module / lockout flags
    apt-get -s upgrade            → pending upgrade count
    yum check-update -q           → pending update count
    lsblk -f, /proc/mounts        → LUKS / eCryptfs presence
    ufw status                    → active flag, rule count
    iptables -L -n                → rule count
    dpkg-query / rpm / apt list   → installed software
    ip -o link show               → promiscuous interfaces
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List

from cybershieldx.scanner.parsers import ParseError


def pam_has_complexity(text: str) -> bool:
    return "pam_pwquality.so" in (text or "") or "pam_cracklib.so" in (text or "")


def pam_has_lockout(text: str) -> bool:
    return any(
        "deny=" in line.lower()
        for line in (text or "").splitlines()
        if not line.lstrip().startswith("#")
    )


_APT_UPGRADED_RE = re.compile(r"(\d+) upgraded,")


def parse_apt_upgrade(text: str) -> int:
    m = _APT_UPGRADED_RE.search(text or "")
    if not m:
        raise ParseError("apt-get", "no 'N upgraded' summary line")
    return int(m.group(1))


def parse_yum_check_update(text: str) -> int:
    """
    Package lines look like "name.arch  version  repo"; blank lines and the
    "Obsoleting Packages" section header are not updates.
    """
    count = 0
    for line in (text or "").splitlines():
        parts = line.split()
        if len(parts) >= 3 and "." in parts[0]:
            count += 1
        elif line.strip().startswith("Obsoleting"):
            break
    return count


def lsblk_has_luks(text: str) -> bool:
    return "crypto_luks" in (text or "").lower()


def mounts_have_ecryptfs(text: str) -> bool:
    return "ecryptfs" in (text or "").lower()


@dataclass
class UfwStatus:
    active: bool
    rules_count: int


def parse_ufw_status(text: str) -> UfwStatus:
    text = text or ""
    if "Status:" not in text:
        raise ParseError("ufw", "no Status line")
    rules = [line for line in text.splitlines() if "ALLOW" in line or "DENY" in line]
    return UfwStatus(active="Status: active" in text, rules_count=len(rules))


def count_iptables_rules(text: str) -> int:
    return sum(
        1 for line in (text or "").splitlines()
        if line.startswith(("ACCEPT", "DROP", "REJECT"))
    )


def parse_package_list(text: str) -> List[Dict[str, str]]:
    """
    "name version maintainer..." per line (dpkg-query / rpm formats used by
    the collector). `apt list --installed` lines "name/suite version arch"
    are accepted too.
    """
    packages = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not line or line.startswith("Listing..."):
            continue
        parts = line.split(" ", 2)
        packages.append({
            "name": parts[0].split("/", 1)[0],
            "version": parts[1] if len(parts) > 1 and parts[1] else "Unknown",
            "publisher": parts[2] if len(parts) > 2 and parts[2] else "Unknown",
        })
    return packages


_IP_LINK_RE = re.compile(r"^\d+:\s+([^:@\s]+)[^<]*<([^>]*)>")


def parse_promiscuous_links(text: str) -> List[str]:
    """Interfaces whose `ip -o link` flag list contains PROMISC."""
    names = []
    for line in (text or "").splitlines():
        m = _IP_LINK_RE.match(line)
        if m and "PROMISC" in m.group(2).split(","):
            names.append(m.group(1))
    return names
