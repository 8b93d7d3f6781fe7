# cybershieldx/scanner/parsers/arp.py
"""
`arp -a` parsers.

Windows prints "  192.168.1.1    aa-bb-cc-dd-ee-ff   dynamic";
macOS and Linux print "host (192.168.1.1) at aa:bb:cc:dd:ee:ff on en0".
Both yield (ip, mac) pairs with lower-case, zero-padded, ":"-separated MACs.
"""

from __future__ import annotations

import re
from typing import List, Tuple

_WINDOWS_RE = re.compile(r"^\s*(\d+\.\d+\.\d+\.\d+)\s+([0-9a-f-]+)\s+", re.I)
_UNIX_RE = re.compile(r"^\S+\s+\((\d+\.\d+\.\d+\.\d+)\)\s+at\s+([0-9a-f:]+)", re.I)


def _normalize_mac(mac: str) -> str:
    # BSD arp drops leading zeros: 0:1c:42:a:b:c
    return ":".join(octet.zfill(2) for octet in mac.lower().split(":"))


def parse_windows_arp(text: str) -> List[Tuple[str, str]]:
    entries = []
    for line in (text or "").splitlines():
        m = _WINDOWS_RE.match(line)
        if m:
            entries.append((m.group(1), _normalize_mac(m.group(2).replace("-", ":"))))
    return entries


def parse_unix_arp(text: str) -> List[Tuple[str, str]]:
    entries = []
    for line in (text or "").splitlines():
        m = _UNIX_RE.match(line)
        if m:
            entries.append((m.group(1), _normalize_mac(m.group(2))))
    return entries
