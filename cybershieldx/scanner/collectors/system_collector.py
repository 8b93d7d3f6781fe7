# cybershieldx/scanner/collectors/system_collector.py
"""
System collector.

Gathers host facts with psutil and the platform module, plus the seven
security-configuration checks.

What this collector gathers:
    basic       os, cpu, memory, disks, current user (no subprocess)
    detailed    basic + kernel, uptime, swap, interfaces, sessions,
                processes, services (Windows), installed software
    checks      users, authentication, updates, encryption, networkConfig,
                firewallConfig, securitySoftware (one strategy per platform)

Output data structure of check_configuration():
    {
        "users": {"currentUser": "alice", "isAdmin": false, ..., "score": 100, "rating": "good"},
        "firewallConfig": {"error": "...", "score": 0, "rating": "unknown"},
        ...
        "overallScore": 71,
        "timestamp": "2024-05-01T10:00:00.000Z"
    }
"""

from __future__ import annotations

import getpass
import logging
import os
import platform
import shutil
import socket
import time
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import psutil

from cybershieldx.scanner.base import PipelineContext, SecurityCheck, check_failure
from cybershieldx.scanner.checks import select_checks
from cybershieldx.scanner.collectors.network_collector import interface_inventory
from cybershieldx.scanner.commands import CommandError
from cybershieldx.scanner.parsers import ParseError
from cybershieldx.scanner.parsers import linux as linux_parsers
from cybershieldx.scanner.parsers import macos as macos_parsers
from cybershieldx.scanner.parsers import windows as windows_parsers
from cybershieldx.utils.formatting import format_uptime
from cybershieldx.utils.scoring import average_score

logger = logging.getLogger(__name__)

MODES = ("basic", "detailed")

WINDOWS_SOFTWARE_SCRIPT = (
    "Get-ItemProperty HKLM:\\Software\\Microsoft\\Windows\\CurrentVersion\\Uninstall\\* | "
    "Select-Object DisplayName, DisplayVersion, Publisher | ConvertTo-Json"
)


def _percent(part: float, whole: float) -> int:
    return int(round(part / whole * 100)) if whole else 0


def _os_release(path: Path = Path("/etc/os-release")) -> Dict[str, str]:
    """KEY=value pairs of /etc/os-release, quotes stripped."""
    values: Dict[str, str] = {}
    if not path.is_file():
        return values
    for line in path.read_text(errors="replace").splitlines():
        if "=" not in line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def _manufacturer(brand: str) -> str:
    lowered = brand.lower()
    for needle, name in (("intel", "Intel"), ("amd", "AMD"), ("apple", "Apple"), ("arm", "ARM")):
        if needle in lowered:
            return name
    return "Unknown"


def _cpu_brand() -> str:
    cpuinfo = Path("/proc/cpuinfo")
    if cpuinfo.is_file():
        for line in cpuinfo.read_text(errors="replace").splitlines():
            if line.startswith("model name"):
                return line.split(":", 1)[1].strip()
    return platform.processor() or "Unknown"


class SystemCollector:
    """
    Host facts and security configuration.

    The check strategies are resolved once from ctx.platform when the
    collector is built.
    """

    def __init__(self, ctx: PipelineContext, checks: Optional[List[SecurityCheck]] = None):
        self.ctx = ctx
        self.checks = checks if checks is not None else select_checks(ctx.platform)

    # ------------------------------------------------------------------
    # Host facts
    # ------------------------------------------------------------------

    def os_info(self) -> Dict[str, str]:
        if self.ctx.is_windows:
            edition = platform.win32_edition() if hasattr(platform, "win32_edition") else ""
            distro = f"Microsoft Windows {platform.release()} {edition or ''}".strip()
            release = platform.version()
        elif self.ctx.is_macos:
            distro = "macOS"
            release = platform.mac_ver()[0]
        else:
            info = _os_release()
            distro = info.get("PRETTY_NAME") or info.get("NAME") or platform.system()
            release = info.get("VERSION_ID") or platform.release()

        return {
            "platform": self.ctx.platform,
            "distro": distro,
            "release": release,
            "arch": platform.machine(),
            "hostname": socket.gethostname(),
        }

    @staticmethod
    def cpu_info() -> Dict[str, Any]:
        brand = _cpu_brand()
        freq = psutil.cpu_freq()
        return {
            "manufacturer": _manufacturer(brand),
            "brand": brand,
            "cores": psutil.cpu_count(logical=True),
            "speed": round(freq.current / 1000, 2) if freq else None,
        }

    @staticmethod
    def memory_info() -> Dict[str, Any]:
        mem = psutil.virtual_memory()
        used = mem.total - mem.available
        return {
            "total": mem.total,
            "free": mem.available,
            "used": used,
            "usedPercentage": _percent(used, mem.total),
        }

    @staticmethod
    def disk_info() -> List[Dict[str, Any]]:
        disks = []
        for part in psutil.disk_partitions(all=False):
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except (PermissionError, OSError):
                # Empty card readers and optical drives
                continue
            disks.append({
                "fs": part.device,
                "type": part.fstype,
                "size": usage.total,
                "used": usage.used,
                "usedPercentage": _percent(usage.used, usage.total),
                "mount": part.mountpoint,
            })
        return disks

    @staticmethod
    def user_info() -> Dict[str, Any]:
        try:
            username = getpass.getuser()
        except (KeyError, OSError):
            username = "unknown"
        return {"username": username, "uid": os.getuid() if hasattr(os, "getuid") else -1}

    def get_basic_info(self) -> Dict[str, Any]:
        logger.info("Getting basic system information")
        try:
            return {
                "os": self.os_info(),
                "cpu": self.cpu_info(),
                "memory": self.memory_info(),
                "disk": self.disk_info(),
                "user": self.user_info(),
            }
        except Exception as e:
            logger.error(f"Failed to get basic system info: {e}")
            return {
                "os": {
                    "platform": self.ctx.platform,
                    "arch": platform.machine(),
                    "hostname": socket.gethostname(),
                },
                "error": str(e),
            }

    def get_detailed_info(self) -> Dict[str, Any]:
        logger.info("Getting detailed system information")
        try:
            info = self.get_basic_info()
            if "error" in info:
                return info

            info["os"]["kernel"] = platform.release()
            info["os"]["uptime"] = format_uptime(time.time() - psutil.boot_time())

            info["cpu"]["physicalCores"] = psutil.cpu_count(logical=False)

            swap = psutil.swap_memory()
            info["memory"].update({"swapTotal": swap.total, "swapUsed": swap.used, "swapFree": swap.free})

            info["network"] = [
                {k: iface[k] for k in ("iface", "mac", "ip4", "ip6", "speed", "operstate")}
                for iface in interface_inventory()
            ]
            info["users"] = [
                {
                    "user": u.name,
                    "terminal": u.terminal or "",
                    "host": u.host or "",
                    "started": datetime.fromtimestamp(u.started, tz=timezone.utc).isoformat(),
                }
                for u in psutil.users()
            ]
            info["processes"] = self.process_info()
            info["services"] = self.service_info()

            software = self.installed_software()
            info["software"] = {"count": len(software), "list": software[:30]}
            return info
        except Exception as e:
            logger.error(f"Failed to get detailed system info: {e}")
            return self.get_basic_info()

    def collect(self, mode: str = "basic") -> Dict[str, Any]:
        if mode not in MODES:
            raise ValueError(f"Unknown collection mode '{mode}'")
        return self.get_detailed_info() if mode == "detailed" else self.get_basic_info()

    @staticmethod
    def process_info() -> Dict[str, Any]:
        procs = []
        for p in psutil.process_iter(["pid", "name", "status", "cpu_percent", "memory_percent"]):
            procs.append(p.info)

        top = sorted(procs, key=lambda p: p.get("cpu_percent") or 0.0, reverse=True)[:10]
        return {
            "all": len(procs),
            "running": sum(1 for p in procs if p.get("status") == psutil.STATUS_RUNNING),
            "sleeping": sum(1 for p in procs if p.get("status") == psutil.STATUS_SLEEPING),
            "list": [
                {
                    "pid": p["pid"],
                    "name": p.get("name") or "",
                    "cpu": p.get("cpu_percent") or 0.0,
                    "mem": round(p.get("memory_percent") or 0.0, 2),
                }
                for p in top
            ],
        }

    def service_info(self) -> List[Dict[str, Any]]:
        """First 20 Windows services; other platforms have no portable listing."""
        if not self.ctx.is_windows or not hasattr(psutil, "win_service_iter"):
            return []
        services = []
        for svc in psutil.win_service_iter():
            if len(services) >= 20:
                break
            try:
                info = svc.as_dict()
            except psutil.Error:
                continue
            services.append({
                "name": info.get("name"),
                "running": info.get("status") == "running",
                "startmode": info.get("start_type"),
            })
        return services

    def installed_software(self) -> List[Dict[str, str]]:
        """Platform package inventory; empty on failure."""
        try:
            if self.ctx.is_windows:
                out = self.ctx.run(["powershell", "-NoProfile", "-NonInteractive", "-Command",
                                    WINDOWS_SOFTWARE_SCRIPT])
                return windows_parsers.parse_installed_software(out.stdout)

            if self.ctx.is_macos:
                return macos_parsers.parse_applications(os.listdir("/Applications"))

            if shutil.which("dpkg-query"):
                cmd = ["dpkg-query", "-W", "-f=${Package} ${Version} ${Maintainer}\\n"]
            elif shutil.which("rpm"):
                cmd = ["rpm", "-qa", "--queryformat", "%{NAME} %{VERSION} %{VENDOR}\\n"]
            else:
                cmd = ["apt", "list", "--installed"]
            return linux_parsers.parse_package_list(self.ctx.run(cmd).stdout)
        except (CommandError, ParseError, OSError) as e:
            logger.error(f"Failed to get installed software: {e}")
            return []

    # ------------------------------------------------------------------
    # Security configuration
    # ------------------------------------------------------------------

    def check_configuration(self) -> Dict[str, Any]:
        """
        Run every check concurrently.

        A check still running after check_timeout is reported as failed;
        its worker is abandoned (the command timeout bounds it).
        """
        logger.info(f"Running {len(self.checks)} security configuration checks")
        results: Dict[str, Any] = {}

        executor = ThreadPoolExecutor(max_workers=max(1, min(len(self.checks), self.ctx.config.max_workers)))
        try:
            future_to_check = {executor.submit(check.run, self.ctx): check for check in self.checks}
            done, pending = wait(future_to_check, timeout=self.ctx.config.check_timeout)

            for future in done:
                results[future_to_check[future].name] = future.result()
            for future in pending:
                name = future_to_check[future].name
                logger.warning(f"Security check '{name}' timed out after {self.ctx.config.check_timeout}s")
                results[name] = check_failure(f"TimeoutError: check timed out after {self.ctx.config.check_timeout}s")
        finally:
            executor.shutdown(wait=False)

        ordered = {check.name: results[check.name] for check in self.checks}
        ordered["overallScore"] = average_score(r.get("score") for r in ordered.values())
        ordered["timestamp"] = self.ctx.timestamp()

        logger.info(f"Security configuration check complete: overall score {ordered['overallScore']}")
        return ordered
