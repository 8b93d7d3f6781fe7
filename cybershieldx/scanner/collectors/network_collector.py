# cybershieldx/scanner/collectors/network_collector.py
"""
Network collector.

Wraps python-nmap and psutil to describe the local network segment the
agent sits on.

Requirements:
    - nmap binary on PATH (apt install nmap / brew install nmap / nmap.org)
    - python-nmap pip package

What this collector gathers:
    - Local network range (last non-loopback IPv4 interface)
    - Live devices via an nmap ping sweep, falling back to the ARP cache
    - Reverse DNS and (optionally) MAC vendor names for each device
    - Open ports on localhost (quick scan) or on the whole segment
    - Host firewall state and rule count

Output shapes:
    discover_devices()  [{"ip", "mac", "hostname", "vendor", "status"}]
    quick_scan()        {"interfaces", "defaultGateway", "localPorts"[, "error"]}
    scan_services()     {"services": {ip: {"hostname", "ports": [...]}}, "timestamp"[, "error"]}
    check_firewall()    {"status": on|off|unknown, "rulesCount", "timestamp"[, "error"]}

No tool failure escapes a public method: each degrades to the documented
partial shape with an "error" string.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional

import nmap
import psutil
import requests

from cybershieldx.scanner.base import PipelineContext
from cybershieldx.scanner.commands import CommandError
from cybershieldx.scanner.parsers import ParseError
from cybershieldx.scanner.parsers import arp as arp_parsers
from cybershieldx.scanner.parsers import linux as linux_parsers
from cybershieldx.scanner.parsers import macos as macos_parsers
from cybershieldx.scanner.parsers import route as route_parsers
from cybershieldx.scanner.parsers import windows as windows_parsers

logger = logging.getLogger(__name__)

# nmap argument presets
PING_SWEEP_ARGS = "-sn"
FAST_SCAN_ARGS = "-F"
DEEP_SCAN_ARGS = "-sV -p 1-1000"

SOCKETFILTERFW = "/usr/libexec/ApplicationFirewall/socketfilterfw"


class NetworkRangeError(RuntimeError):
    """No non-loopback IPv4 interface to derive a scan range from."""


# ---------------------------------------------------------------------------
# Interface helpers (shared with the system collector)
# ---------------------------------------------------------------------------

def _is_loopback(name: str, ip4: Optional[str]) -> bool:
    if ip4 and ip4.startswith("127."):
        return True
    return name.lower().startswith(("lo", "loopback"))


def interface_inventory(include_internal: bool = False) -> List[Dict[str, Any]]:
    """
    psutil interface list in the report's shape:
    {"iface", "mac", "ip4", "ip6", "netmask", "speed", "operstate", "internal"}
    """
    addrs = psutil.net_if_addrs()
    stats = psutil.net_if_stats()

    interfaces = []
    for name, entries in addrs.items():
        record: Dict[str, Any] = {"iface": name, "mac": "", "ip4": "", "ip6": "", "netmask": ""}
        for entry in entries:
            if entry.family == socket.AF_INET and not record["ip4"]:
                record["ip4"] = entry.address
                record["netmask"] = entry.netmask or ""
            elif entry.family == socket.AF_INET6 and not record["ip6"]:
                record["ip6"] = entry.address.split("%", 1)[0]
            elif entry.family == psutil.AF_LINK:
                record["mac"] = entry.address.replace("-", ":").lower()

        st = stats.get(name)
        record["speed"] = st.speed if st else 0
        record["operstate"] = "up" if st and st.isup else "down"
        record["internal"] = _is_loopback(name, record["ip4"])

        if include_internal or not record["internal"]:
            interfaces.append(record)
    return interfaces


def netmask_to_cidr(netmask: str) -> int:
    """Count of set bits, e.g. 255.255.255.0 → 24."""
    return bin(int(ipaddress.IPv4Address(netmask))).count("1")


def _normalize_hostname(name: str) -> str:
    return (name or "").strip().rstrip(".")


def _reverse_dns(ip: str) -> str:
    try:
        return _normalize_hostname(socket.gethostbyaddr(ip)[0])
    except (socket.herror, socket.gaierror, OSError):
        return ""


class NetworkCollector:
    """
    Local network discovery and port scanning.

    Every nmap run goes through _scan(), which applies the configured
    timeout and turns a missing binary into nmap.PortScannerError, so the
    public methods only have one failure type to degrade on.
    """

    def __init__(self, ctx: PipelineContext):
        self.ctx = ctx
        self.config = ctx.config

    # ------------------------------------------------------------------
    # Range
    # ------------------------------------------------------------------

    def get_local_network_range(self) -> str:
        """A.B.C.0/<cidr> of the last non-loopback IPv4 interface."""
        ip4, netmask = None, None
        for name, entries in psutil.net_if_addrs().items():
            for entry in entries:
                if entry.family != socket.AF_INET or not entry.netmask:
                    continue
                if _is_loopback(name, entry.address):
                    continue
                ip4, netmask = entry.address, entry.netmask

        if not ip4 or not netmask:
            raise NetworkRangeError("Could not determine local network address")

        a, b, c, _ = ip4.split(".")
        return f"{a}.{b}.{c}.0/{netmask_to_cidr(netmask)}"

    # ------------------------------------------------------------------
    # nmap
    # ------------------------------------------------------------------

    def _scan(self, hosts: str, arguments: str) -> "nmap.PortScanner":
        scanner = nmap.PortScanner()
        logger.info(f"Nmap scanning {hosts} with args: {arguments}")
        scanner.scan(hosts=hosts, arguments=arguments, timeout=self.config.nmap_timeout)
        return scanner

    @staticmethod
    def _host_ports(host_data) -> List[Dict[str, Any]]:
        ports = []
        for proto in host_data.all_protocols():
            for port in sorted(host_data[proto].keys()):
                info = host_data[proto][port]
                if info.get("state") != "open":
                    continue
                ports.append({
                    "port": int(port),
                    "protocol": proto,
                    "service": info.get("name", "") or "unknown",
                    "state": info.get("state", "unknown"),
                    "product": info.get("product", "") or None,
                    "version": info.get("version", "") or None,
                })
        return ports

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def discover_devices(self) -> List[Dict[str, Any]]:
        """Ping sweep of the local range; ARP cache when nmap is unusable."""
        logger.info("Discovering network devices")
        try:
            network_range = self.get_local_network_range()
            logger.info(f"Scanning network range: {network_range}")
            scanner = self._scan(network_range, PING_SWEEP_ARGS)
        except (NetworkRangeError, nmap.PortScannerError, nmap.PortScannerTimeout, OSError) as e:
            logger.warning(f"Device discovery failed: {e}")
            return self.enrich_devices(self.discover_devices_arp())

        devices = []
        for host in scanner.all_hosts():
            host_data = scanner[host]
            mac = host_data.get("addresses", {}).get("mac", "")
            vendor = host_data.get("vendor", {}).get(mac, "") if mac else ""
            devices.append({
                "ip": host,
                "mac": mac.lower(),
                "hostname": _normalize_hostname(host_data.hostname()),
                "vendor": vendor or "Unknown",
                "status": host_data.state(),
            })

        logger.info(f"Discovered {len(devices)} devices on the network")
        return self.enrich_devices(devices)

    def discover_devices_arp(self) -> List[Dict[str, Any]]:
        logger.info("Using ARP cache for device discovery")
        try:
            out = self.ctx.run(["arp", "-a"])
        except CommandError as e:
            logger.error(f"Failed to read ARP table: {e}")
            return []

        parse = arp_parsers.parse_windows_arp if self.ctx.is_windows else arp_parsers.parse_unix_arp
        devices = [
            {"ip": ip, "mac": mac.lower(), "hostname": "", "vendor": "Unknown", "status": "up"}
            for ip, mac in parse(out.stdout)
        ]
        logger.info(f"Discovered {len(devices)} devices using the ARP cache")
        return devices

    def lookup_vendor(self, mac: str) -> Optional[str]:
        oui = mac.upper()[:8]
        r = requests.get(
            self.config.vendor_lookup_url.format(oui=oui),
            timeout=self.config.vendor_lookup_timeout,
        )
        if r.status_code != 200:
            logger.debug(f"Vendor lookup: {r.status_code} for {oui}")
            return None
        return r.text.strip() or None

    def _enrich_one(self, device: Dict[str, Any]) -> Dict[str, Any]:
        enriched = dict(device)
        try:
            if not enriched.get("hostname"):
                enriched["hostname"] = _reverse_dns(enriched["ip"])
            if self.config.vendor_lookup and enriched.get("mac") and enriched.get("vendor") in ("", "Unknown"):
                enriched["vendor"] = self.lookup_vendor(enriched["mac"]) or "Unknown"
        except Exception as e:
            logger.debug(f"Could not enrich device {device.get('ip')}: {e}")
        return enriched

    def enrich_devices(self, devices: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Reverse DNS and vendor names, one worker per device. Order is kept."""
        if not devices:
            return []

        enriched: List[Dict[str, Any]] = list(devices)
        with ThreadPoolExecutor(max_workers=min(len(devices), self.config.max_workers)) as executor:
            future_to_index = {
                executor.submit(self._enrich_one, device): i
                for i, device in enumerate(devices)
            }
            for future in as_completed(future_to_index):
                enriched[future_to_index[future]] = future.result()
        return enriched

    # ------------------------------------------------------------------
    # Ports
    # ------------------------------------------------------------------

    def default_gateway(self) -> Optional[str]:
        try:
            if self.ctx.is_linux:
                route = Path("/proc/net/route")
                return route_parsers.parse_proc_net_route(route.read_text()) if route.is_file() else None
            if self.ctx.is_macos:
                return route_parsers.parse_route_get(self.ctx.run(["route", "-n", "get", "default"]).stdout)
            if self.ctx.is_windows:
                return route_parsers.parse_route_print(self.ctx.run(["route", "print", "0.0.0.0"]).stdout)
        except (CommandError, OSError) as e:
            logger.debug(f"Default gateway lookup failed: {e}")
        return None

    def quick_scan(self) -> Dict[str, Any]:
        """Interfaces, gateway and a fast nmap scan of localhost."""
        logger.info("Running quick network scan")
        result: Dict[str, Any] = {
            "interfaces": interface_inventory(include_internal=True),
            "defaultGateway": self.default_gateway(),
            "localPorts": [],
        }
        try:
            scanner = self._scan("127.0.0.1", FAST_SCAN_ARGS)
        except (nmap.PortScannerError, nmap.PortScannerTimeout, OSError) as e:
            logger.error(f"Quick scan error: {e}")
            result["error"] = str(e)
            return result

        for host in scanner.all_hosts():
            result["localPorts"].extend(
                {k: p[k] for k in ("port", "protocol", "service", "state")}
                for p in self._host_ports(scanner[host])
            )
        logger.info(f"Quick network scan completed: {len(result['localPorts'])} open ports")
        return result

    def scan_services(self, deep: bool = False) -> Dict[str, Any]:
        """Open ports per host on the local range; deep adds version detection."""
        logger.info(f"Scanning network services (deep={deep})")
        try:
            network_range = self.get_local_network_range()
            scanner = self._scan(network_range, DEEP_SCAN_ARGS if deep else FAST_SCAN_ARGS)
        except (NetworkRangeError, nmap.PortScannerError, nmap.PortScannerTimeout, OSError) as e:
            logger.error(f"Service scan failed: {e}")
            return {"services": {}, "timestamp": self.ctx.timestamp(), "error": str(e)}

        services = {}
        for host in scanner.all_hosts():
            host_data = scanner[host]
            services[host] = {
                "hostname": _normalize_hostname(host_data.hostname()),
                "ports": self._host_ports(host_data),
            }
        logger.info(f"Network service scan completed: {len(services)} hosts")
        return {"services": services, "timestamp": self.ctx.timestamp()}

    # ------------------------------------------------------------------
    # Firewall
    # ------------------------------------------------------------------

    def _firewall_state(self) -> Dict[str, Any]:
        if self.ctx.is_windows:
            out = self.ctx.run(["netsh", "advfirewall", "show", "allprofiles"])
            status = windows_parsers.parse_netsh_state(out.stdout)
            rules = self.ctx.run(["netsh", "advfirewall", "firewall", "show", "rule", "name=all"])
            return {"status": status, "rulesCount": windows_parsers.count_netsh_rules(rules.stdout)}

        if self.ctx.is_macos:
            out = self.ctx.run([SOCKETFILTERFW, "--getglobalstate"])
            status = "on" if macos_parsers.parse_socketfilterfw_state(out.stdout) else "off"
            apps = self.ctx.run([SOCKETFILTERFW, "--listapps"])
            return {"status": status, "rulesCount": macos_parsers.count_socketfilterfw_allowed(apps.stdout)}

        if self.ctx.is_linux:
            try:
                ufw = linux_parsers.parse_ufw_status(self.ctx.run(["ufw", "status"]).stdout)
                return {"status": "on" if ufw.active else "off", "rulesCount": ufw.rules_count}
            except (CommandError, ParseError) as e:
                logger.debug(f"ufw unavailable, trying iptables: {e}")
            rules = linux_parsers.count_iptables_rules(self.ctx.run(["iptables", "-L", "-n"]).stdout)
            return {"status": "on" if rules > 0 else "unknown", "rulesCount": rules}

        return {"status": "unknown", "rulesCount": 0}

    def check_firewall(self) -> Dict[str, Any]:
        logger.info("Checking firewall configuration")
        try:
            result = self._firewall_state()
        except (CommandError, ParseError, OSError) as e:
            logger.error(f"Firewall check failed: {e}")
            return {"status": "unknown", "error": str(e), "timestamp": self.ctx.timestamp()}

        logger.info(f"Firewall status: {result['status']}")
        result["timestamp"] = self.ctx.timestamp()
        return result
