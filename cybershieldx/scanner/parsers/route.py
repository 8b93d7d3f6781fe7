# cybershieldx/scanner/parsers/route.py
"""
Default gateway parsers.

Sources:
    /proc/net/route        Linux, little-endian hex gateway column
    route -n get default   macOS, "gateway: 192.168.1.1"
    route print 0.0.0.0    Windows, "0.0.0.0  0.0.0.0  192.168.1.1  ..."
"""

from __future__ import annotations

import re
import socket
import struct
from typing import Optional


def parse_proc_net_route(text: str) -> Optional[str]:
    for line in (text or "").splitlines()[1:]:
        fields = line.split()
        if len(fields) < 3 or fields[1] != "00000000":
            continue
        try:
            return socket.inet_ntoa(struct.pack("<L", int(fields[2], 16)))
        except (ValueError, struct.error):
            continue
    return None


_ROUTE_GET_RE = re.compile(r"^\s*gateway:\s*(\S+)", re.M)


def parse_route_get(text: str) -> Optional[str]:
    m = _ROUTE_GET_RE.search(text or "")
    return m.group(1) if m else None


_ROUTE_PRINT_RE = re.compile(r"^\s*0\.0\.0\.0\s+0\.0\.0\.0\s+(\d+\.\d+\.\d+\.\d+)", re.M)


def parse_route_print(text: str) -> Optional[str]:
    m = _ROUTE_PRINT_RE.search(text or "")
    return m.group(1) if m else None
