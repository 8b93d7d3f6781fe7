# cybershieldx/scanner/parsers/windows.py
"""
Windows tool output parsers.

Tools covered:
    net accounts                                  → PasswordPolicy
    netsh advfirewall show allprofiles            → FirewallProfiles
    netsh advfirewall firewall show rule name=all → rule count
    Get-HotFix | ConvertTo-Json                   → HotFix
    Get-BitLockerVolume | ConvertTo-Json          → BitLockerVolume list
    Get-MpComputerStatus | ConvertTo-Json         → Defender real-time flag
    SecurityCenter2 AntiVirusProduct              → product names
    Uninstall registry | ConvertTo-Json           → installed software
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from cybershieldx.scanner.parsers import ParseError, parse_json_records


# ---------------------------------------------------------------------------
# net accounts
# ---------------------------------------------------------------------------

@dataclass
class PasswordPolicy:
    max_password_age: int = 0
    min_password_age: int = 0
    min_password_length: int = 0
    password_history_size: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "maxPasswordAge": self.max_password_age,
            "minPasswordAge": self.min_password_age,
            "minPasswordLength": self.min_password_length,
            "passwordHistorySize": self.password_history_size,
        }


_NET_ACCOUNTS_FIELDS = {
    "max_password_age": re.compile(r"Maximum password age \(days\):\s+(\d+|Unlimited)", re.I),
    "min_password_age": re.compile(r"Minimum password age \(days\):\s+(\d+)", re.I),
    "min_password_length": re.compile(r"Minimum password length:\s+(\d+)", re.I),
    "password_history_size": re.compile(r"Length of password history maintained:\s+(\d+|None)", re.I),
}


def parse_net_accounts(text: str) -> PasswordPolicy:
    """
    Missing lines count as 0. "Unlimited" max age becomes 0 (never expires)
    and "None" history becomes 0. Output with none of the known lines is
    not `net accounts` output at all.
    """
    values: Dict[str, int] = {}
    for attr, pattern in _NET_ACCOUNTS_FIELDS.items():
        m = pattern.search(text or "")
        if m:
            raw = m.group(1)
            values[attr] = int(raw) if raw.isdigit() else 0

    if not values:
        raise ParseError("net accounts", "no password policy lines found")
    return PasswordPolicy(**values)


# ---------------------------------------------------------------------------
# netsh advfirewall
# ---------------------------------------------------------------------------

@dataclass
class FirewallProfiles:
    domain: bool = False
    private: bool = False
    public: bool = False

    @property
    def all_enabled(self) -> bool:
        return self.domain and self.private and self.public

    @property
    def any_enabled(self) -> bool:
        return self.domain or self.private or self.public


def _profile_state(text: str, profile: str) -> Optional[bool]:
    m = re.search(rf"{profile} Profile Settings:\s*-+\s*State\s*(ON|OFF)", text, re.I)
    if not m:
        return None
    return m.group(1).upper() == "ON"


def parse_netsh_profiles(text: str) -> FirewallProfiles:
    states = {p: _profile_state(text or "", p) for p in ("Domain", "Private", "Public")}
    if all(v is None for v in states.values()):
        raise ParseError("netsh advfirewall", "no profile state found")
    return FirewallProfiles(
        domain=bool(states["Domain"]),
        private=bool(states["Private"]),
        public=bool(states["Public"]),
    )


def parse_netsh_state(text: str) -> str:
    """First profile State line → "on" / "off"."""
    m = re.search(r"State\s+(ON|OFF)", text or "", re.I)
    if not m:
        raise ParseError("netsh advfirewall", "no State line found")
    return m.group(1).lower()


def count_netsh_rules(text: str) -> int:
    return sum(1 for line in (text or "").splitlines() if line.strip().startswith("Rule Name"))


# ---------------------------------------------------------------------------
# PowerShell JSON
# ---------------------------------------------------------------------------

_MS_DATE_RE = re.compile(r"/Date\((-?\d+)\)/")


def parse_ps_datetime(value: Any) -> datetime:
    """
    PowerShell serializes DateTime as "/Date(1700000000000)/" (5.1), as an
    object with a "value" member, or as an ISO string (7.x).
    """
    if isinstance(value, dict):
        value = value.get("value") or value.get("DateTime")
    if not isinstance(value, str) or not value:
        raise ParseError("Get-HotFix", f"unrecognized date value {value!r}")

    m = _MS_DATE_RE.search(value)
    if m:
        return datetime.fromtimestamp(int(m.group(1)) / 1000, tz=timezone.utc)

    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ParseError("Get-HotFix", f"unrecognized date value {value!r}")
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


@dataclass
class HotFix:
    hotfix_id: str
    installed_on: datetime


def parse_latest_hotfix(text: str) -> HotFix:
    records = parse_json_records("Get-HotFix", text)
    if not records:
        raise ParseError("Get-HotFix", "no hotfix records")
    first = records[0]
    return HotFix(
        hotfix_id=str(first.get("HotFixID") or "Unknown"),
        installed_on=parse_ps_datetime(first.get("InstalledOn")),
    )


@dataclass
class BitLockerVolume:
    mount_point: str
    status: str
    encryption_percentage: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mountPoint": self.mount_point,
            "status": self.status,
            "encryptionPercentage": self.encryption_percentage,
        }


# VolumeStatus is an enum; ConvertTo-Json emits its integer value
_VOLUME_STATUS = {0: "FullyDecrypted", 1: "FullyEncrypted", 2: "EncryptionInProgress",
                  3: "DecryptionInProgress", 4: "EncryptionPaused", 5: "DecryptionPaused"}


def parse_bitlocker_volumes(text: str) -> List[BitLockerVolume]:
    volumes = []
    for rec in parse_json_records("Get-BitLockerVolume", text):
        status = rec.get("VolumeStatus")
        if isinstance(status, int):
            status = _VOLUME_STATUS.get(status, str(status))
        volumes.append(BitLockerVolume(
            mount_point=str(rec.get("MountPoint") or ""),
            status=str(status or "Unknown"),
            encryption_percentage=rec.get("EncryptionPercentage"),
        ))
    return volumes


def parse_defender_status(text: str) -> bool:
    records = parse_json_records("Get-MpComputerStatus", text)
    if not records:
        raise ParseError("Get-MpComputerStatus", "empty output")
    return bool(records[0].get("RealTimeProtectionEnabled"))


def parse_antivirus_products(text: str) -> List[str]:
    return [
        str(rec["displayName"])
        for rec in parse_json_records("AntiVirusProduct", text)
        if rec.get("displayName")
    ]


def parse_installed_software(text: str) -> List[Dict[str, str]]:
    return [
        {
            "name": rec["DisplayName"],
            "version": rec.get("DisplayVersion") or "Unknown",
            "publisher": rec.get("Publisher") or "Unknown",
        }
        for rec in parse_json_records("Uninstall registry", text)
        if rec.get("DisplayName")
    ]


def parse_promiscuous_flag(text: str) -> bool:
    return (text or "").strip() == "True"

