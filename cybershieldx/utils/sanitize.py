# cybershieldx/utils/sanitize.py
"""
Irreversible redaction of identifying network data.

Only the Reporter calls sanitize_scan_data() and redact(); every other stage
works on the raw, unredacted structures.

Rules:
    - IPv4  A.B.C.D            → A.B.C.xxx
    - MAC   AA:BB:CC:DD:EE:FF  → AA:BB:CC:XX:XX:XX   (dash-separated MACs keep dashes)
    - Single-digit MAC octets ("0:1c:42:a:b:c", BSD arp) are masked the same way.
    - Applied to every string value AND every dict key at any depth. When two
      keys mask to the same text (two hosts on one /24), later ones get a
      "#2", "#3" suffix so no entry is lost.
    - List-valued "users" keys (logged-in user lists) are removed.
    - "defaultCredentials" is removed wherever it appears.
    - system.software.list entries are reduced to name + version.

The output never contains a pattern the rules would change again, so
sanitizing twice equals sanitizing once.
"""

from __future__ import annotations

import re
from typing import Any, Dict

IPV4_RE = re.compile(r"\b(\d{1,3}\.\d{1,3}\.\d{1,3}\.)\d{1,3}\b")
MAC_RE = re.compile(
    r"\b([0-9A-Fa-f]{1,2}([:-])[0-9A-Fa-f]{1,2}\2[0-9A-Fa-f]{1,2})"
    r"\2[0-9A-Fa-f]{1,2}\2[0-9A-Fa-f]{1,2}\2[0-9A-Fa-f]{1,2}\b"
)

STRIPPED_KEYS = {"defaultCredentials"}


def mask_ip(text: str) -> str:
    return IPV4_RE.sub(r"\1xxx", text)


def mask_mac(text: str) -> str:
    return MAC_RE.sub(lambda m: m.group(1) + (m.group(2) + "XX") * 3, text)


def mask_text(text: str) -> str:
    # MAC first: a MAC never looks like an IPv4, but keep the order stable
    return mask_ip(mask_mac(text))


def mask_sensitive_data(data: str | None, kind: str = "ip") -> str | None:
    """Mask a single IP ("ip") or MAC ("mac") value; other kinds pass through."""
    if not data:
        return data
    if kind == "ip":
        return mask_ip(data)
    if kind == "mac":
        return mask_mac(data)
    return data


def _unique_key(key: str, taken: Dict[str, Any]) -> str:
    if key not in taken:
        return key
    n = 2
    while f"{key}#{n}" in taken:
        n += 1
    return f"{key}#{n}"


def redact(value: Any) -> Any:
    """Masked deep copy of any JSON-like value (strings, keys, lists, dicts)."""
    if isinstance(value, str):
        return mask_text(value)

    if isinstance(value, dict):
        out: Dict[str, Any] = {}
        for key, item in value.items():
            if key in STRIPPED_KEYS:
                continue
            if key == "users" and isinstance(item, list):
                continue
            new_key = mask_text(key) if isinstance(key, str) else key
            out[_unique_key(new_key, out)] = redact(item)
        return out

    if isinstance(value, (list, tuple)):
        return [redact(v) for v in value]

    return value


def sanitize_scan_data(scan_results: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-copied, redacted view of a RawScanResult. The input is untouched."""
    sanitized = redact(scan_results)

    system = sanitized.get("system")
    if isinstance(system, dict):
        system.pop("users", None)
        software = system.get("software")
        if isinstance(software, dict) and isinstance(software.get("list"), list):
            software["list"] = [
                {"name": sw.get("name"), "version": sw.get("version")}
                for sw in software["list"]
                if isinstance(sw, dict)
            ]

    return sanitized
