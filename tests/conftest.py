"""Shared fixtures for CyberShieldX agent tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import pytest

from cybershieldx.config import AgentConfig
from cybershieldx.scanner.base import PipelineContext
from cybershieldx.scanner.commands import CommandError, CommandNotFound, CommandResult

FIXED_NOW = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)


class FakeRunner:
    """
    Stands in for run_command().

    `outputs` maps the joined command line to stdout text, an int exit code
    (non-zero raises CommandError like the real runner), or an exception.
    Unknown commands raise CommandNotFound.
    """

    def __init__(self, outputs: Dict[str, Any] | None = None):
        self.outputs = dict(outputs or {})
        self.calls: List[List[str]] = []

    def __call__(self, cmd, timeout=30, check=True) -> CommandResult:
        cmd = list(cmd)
        self.calls.append(cmd)
        key = " ".join(cmd)
        if key not in self.outputs:
            raise CommandNotFound(cmd, "command not found")

        out = self.outputs[key]
        if isinstance(out, Exception):
            raise out
        if isinstance(out, int):
            if check and out != 0:
                raise CommandError(cmd, f"exit {out}", returncode=out)
            return CommandResult(cmd=cmd, returncode=out, stdout="", stderr="")
        return CommandResult(cmd=cmd, returncode=0, stdout=out, stderr="")


class MemorySink:
    """Collects persisted reports in a list."""

    def __init__(self):
        self.reports: List[Dict[str, Any]] = []

    def __call__(self, report: Dict[str, Any]) -> str:
        self.reports.append(report)
        return f"memory://{report.get('reportId')}"


@pytest.fixture
def fixed_clock():
    """A clock frozen at 2024-05-01T10:00:00Z."""
    return lambda: FIXED_NOW


@pytest.fixture
def agent_config(tmp_path: Path) -> AgentConfig:
    """Config rooted in tmp_path with short timeouts."""
    return AgentConfig(
        home_dir=tmp_path / "home",
        reports_dir=tmp_path / "reports",
        command_timeout=5,
        check_timeout=10,
        nmap_timeout=10,
        max_workers=4,
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def memory_sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def make_ctx(agent_config, fixed_clock, fake_runner, memory_sink):
    """Factory for a PipelineContext; keyword arguments override the defaults."""

    def _make(**kwargs) -> PipelineContext:
        values = {
            "config": agent_config,
            "clock": fixed_clock,
            "sink": memory_sink,
            "runner": fake_runner,
            "platform": "linux",
        }
        values.update(kwargs)
        return PipelineContext(**values)

    return _make


@pytest.fixture
def ctx(make_ctx) -> PipelineContext:
    """A Linux context with a fake runner, frozen clock and in-memory sink."""
    return make_ctx()


@pytest.fixture
def system_raw() -> Dict[str, Any]:
    """A system scan RawScanResult with several findings."""
    return {
        "scanType": "system",
        "timestamp": "2024-05-01T10:00:00.000Z",
        "system": {
            "os": {
                "platform": "linux",
                "distro": "Ubuntu 16.04.7 LTS",
                "release": "16.04",
                "arch": "x86_64",
                "hostname": "web-01",
                "kernel": "4.4.0-210-generic",
                "uptime": "120 days, 3 hours, 4 minutes",
            },
            "cpu": {"manufacturer": "Intel", "brand": "Xeon E5", "cores": 8, "speed": 2.4},
            "memory": {"total": 17179869184, "free": 4294967296, "used": 12884901888, "usedPercentage": 75},
            "disk": [{"fs": "/dev/sda1", "type": "ext4", "size": 107374182400,
                      "used": 53687091200, "usedPercentage": 50, "mount": "/"}],
            "network": [{"iface": "eth0", "mac": "AA:BB:CC:11:22:33", "ip4": "10.0.0.15",
                         "ip6": "", "speed": 1000, "operstate": "up"}],
            "users": [{"user": "alice", "terminal": "pts/0", "host": "10.0.0.2", "started": ""}],
        },
        "config": {
            "users": {"currentUser": "root", "isAdmin": True, "usersLoggedIn": 1,
                      "multipleUsersLoggedIn": False, "issues": [], "score": 50, "rating": "fair"},
            "encryption": {"encryptionStatus": {"enabled": False, "type": "None"}, "score": 0, "rating": "poor"},
            "firewallConfig": {"firewallStatus": {"enabled": True, "type": "ufw", "rulesCount": 4},
                               "score": 100, "rating": "good"},
            "securitySoftware": {"securitySoftware": [], "count": 0, "score": 0, "rating": "poor"},
            "overallScore": 38,
            "timestamp": "2024-05-01T10:00:00.000Z",
        },
    }


@pytest.fixture
def network_raw() -> Dict[str, Any]:
    """A network scan RawScanResult with exposed services and the firewall off."""
    return {
        "scanType": "network",
        "timestamp": "2024-05-01T10:00:00.000Z",
        "devices": [
            {"ip": "192.168.1.1", "mac": "aa:bb:cc:00:00:01", "hostname": "router", "vendor": "Netgear", "status": "up"},
            {"ip": "192.168.1.20", "mac": "aa:bb:cc:00:00:20", "hostname": "", "vendor": "Unknown", "status": "up"},
        ],
        "services": {
            "services": {
                "192.168.1.20": {
                    "hostname": "nas",
                    "ports": [
                        {"port": 21, "protocol": "tcp", "service": "ftp", "state": "open"},
                        {"port": 3389, "protocol": "tcp", "service": "ms-wbt-server", "state": "open"},
                    ],
                },
            },
            "timestamp": "2024-05-01T10:00:00.000Z",
        },
        "firewall": {"status": "off", "rulesCount": 0, "timestamp": "2024-05-01T10:00:00.000Z"},
    }
