"""Tests for the system and network collectors."""

from __future__ import annotations

import socket
import threading
from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import patch

import nmap
import pytest

from cybershieldx.scanner.base import SecurityCheck
from cybershieldx.scanner.collectors import NetworkCollector, NetworkRangeError, SystemCollector
from cybershieldx.scanner.collectors.network_collector import netmask_to_cidr

NC = "cybershieldx.scanner.collectors.network_collector"


class StaticCheck(SecurityCheck):
    def __init__(self, name, score):
        self.name = name
        self.score = score

    def execute(self, ctx):
        return {"score": self.score}


class FailingCheck(SecurityCheck):
    name = "firewallConfig"

    def execute(self, ctx):
        return {"score": ctx.run(["netsh", "advfirewall", "show", "allprofiles"]).stdout}


class HangingCheck(SecurityCheck):
    name = "updates"

    def __init__(self):
        self.release = threading.Event()

    def execute(self, ctx):
        self.release.wait(10)
        return {"score": 100}


class FakeHost(dict):
    """Mimics nmap.PortScannerHostDict."""

    def __init__(self, data, hostname="", state="up"):
        super().__init__(data)
        self._hostname = hostname
        self._state = state

    def hostname(self):
        return self._hostname

    def state(self):
        return self._state

    def all_protocols(self):
        return [p for p in ("tcp", "udp") if p in self]


class FakeScanner:
    def __init__(self, hosts):
        self.hosts = hosts
        self.calls = []

    def scan(self, hosts=None, arguments=None, timeout=0):
        self.calls.append((hosts, arguments))

    def all_hosts(self):
        return list(self.hosts)

    def __getitem__(self, host):
        return self.hosts[host]


def _addr(family, address, netmask=None):
    return SimpleNamespace(family=family, address=address, netmask=netmask)


IF_ADDRS = {
    "lo": [_addr(socket.AF_INET, "127.0.0.1", "255.0.0.0")],
    "eth0": [_addr(socket.AF_INET, "192.168.1.23", "255.255.255.0")],
}


# ---------------------------------------------------------------------------
# System collector
# ---------------------------------------------------------------------------

class TestSystemCollector:
    def test_failing_check_does_not_affect_siblings(self, ctx):
        collector = SystemCollector(ctx, checks=[
            StaticCheck("users", 100),
            FailingCheck(),
            StaticCheck("encryption", 60),
        ])
        config = collector.check_configuration()

        assert config["firewallConfig"]["score"] == 0
        assert config["firewallConfig"]["rating"] == "unknown"
        assert "error" in config["firewallConfig"]
        assert config["users"] == {"score": 100, "rating": "good"}
        assert config["encryption"] == {"score": 60, "rating": "fair"}
        # (100 + 0 + 60) / 3
        assert config["overallScore"] == 53
        assert config["timestamp"] == "2024-05-01T10:00:00.000Z"

    def test_hung_check_times_out_without_blocking_siblings(self, make_ctx, agent_config):
        ctx = make_ctx(config=replace(agent_config, check_timeout=0.2))
        hanging = HangingCheck()
        collector = SystemCollector(ctx, checks=[StaticCheck("users", 100), hanging])
        try:
            config = collector.check_configuration()
        finally:
            hanging.release.set()

        assert config["updates"]["score"] == 0
        assert config["updates"]["rating"] == "unknown"
        assert "timed out" in config["updates"]["error"]
        assert config["users"] == {"score": 100, "rating": "good"}
        assert config["overallScore"] == 50

    def test_check_order_follows_strategy_order(self, ctx):
        names = ["users", "authentication", "updates"]
        collector = SystemCollector(ctx, checks=[StaticCheck(n, 90) for n in names])
        assert list(collector.check_configuration())[:3] == names

    def test_unknown_mode(self, ctx):
        with pytest.raises(ValueError):
            SystemCollector(ctx, checks=[]).collect("exhaustive")

    def test_basic_info_shape(self, ctx):
        info = SystemCollector(ctx, checks=[]).get_basic_info()
        assert set(info) == {"os", "cpu", "memory", "disk", "user"}
        assert info["os"]["platform"] == "linux"
        assert 0 <= info["memory"]["usedPercentage"] <= 100

    def test_basic_info_failure_keeps_os(self, ctx):
        with patch("cybershieldx.scanner.collectors.system_collector.psutil.virtual_memory",
                   side_effect=RuntimeError("no /proc")):
            info = SystemCollector(ctx, checks=[]).get_basic_info()
        assert info["error"] == "no /proc"
        assert set(info["os"]) == {"platform", "arch", "hostname"}

    def test_installed_software_failure_is_empty(self, ctx):
        with patch("cybershieldx.scanner.collectors.system_collector.shutil.which", return_value=None):
            assert SystemCollector(ctx, checks=[]).installed_software() == []


# ---------------------------------------------------------------------------
# Network collector
# ---------------------------------------------------------------------------

class TestNetworkRange:
    def test_netmask_to_cidr(self):
        assert netmask_to_cidr("255.255.255.0") == 24
        assert netmask_to_cidr("255.255.240.0") == 20

    @patch(f"{NC}.psutil.net_if_addrs", return_value=IF_ADDRS)
    def test_range_from_last_non_loopback(self, _addrs, ctx):
        assert NetworkCollector(ctx).get_local_network_range() == "192.168.1.0/24"

    @patch(f"{NC}.psutil.net_if_addrs", return_value={"lo": IF_ADDRS["lo"]})
    def test_no_interface_raises(self, _addrs, ctx):
        with pytest.raises(NetworkRangeError):
            NetworkCollector(ctx).get_local_network_range()


class TestDeviceDiscovery:
    @patch(f"{NC}._reverse_dns", return_value="")
    @patch(f"{NC}.psutil.net_if_addrs", return_value=IF_ADDRS)
    def test_ping_sweep(self, _addrs, _dns, ctx):
        scanner = FakeScanner({
            "192.168.1.1": FakeHost(
                {"addresses": {"ipv4": "192.168.1.1", "mac": "AA:BB:CC:00:00:01"},
                 "vendor": {"AA:BB:CC:00:00:01": "Netgear"}},
                hostname="router.lan.",
            ),
        })
        with patch(f"{NC}.nmap.PortScanner", return_value=scanner):
            devices = NetworkCollector(ctx).discover_devices()

        assert scanner.calls == [("192.168.1.0/24", "-sn")]
        assert devices == [{
            "ip": "192.168.1.1",
            "mac": "aa:bb:cc:00:00:01",
            "hostname": "router.lan",
            "vendor": "Netgear",
            "status": "up",
        }]

    @patch(f"{NC}._reverse_dns", return_value="printer")
    @patch(f"{NC}.psutil.net_if_addrs", return_value=IF_ADDRS)
    def test_arp_fallback_when_nmap_missing(self, _addrs, _dns, ctx, fake_runner):
        fake_runner.outputs["arp -a"] = "? (192.168.1.40) at aa:bb:cc:dd:ee:40 on eth0\n"
        with patch(f"{NC}.nmap.PortScanner", side_effect=nmap.PortScannerError("nmap program was not found")):
            devices = NetworkCollector(ctx).discover_devices()

        assert devices == [{
            "ip": "192.168.1.40",
            "mac": "aa:bb:cc:dd:ee:40",
            "hostname": "printer",
            "vendor": "Unknown",
            "status": "up",
        }]

    def test_arp_failure_is_empty(self, ctx):
        assert NetworkCollector(ctx).discover_devices_arp() == []

    def test_vendor_lookup(self, make_ctx, agent_config):
        ctx = make_ctx(config=replace(agent_config, vendor_lookup=True))
        response = SimpleNamespace(status_code=200, text="Apple, Inc.\n")
        with patch(f"{NC}.requests.get", return_value=response) as get, \
                patch(f"{NC}._reverse_dns", return_value="mac-mini"):
            devices = NetworkCollector(ctx).enrich_devices(
                [{"ip": "192.168.1.9", "mac": "a4:83:e7:00:00:01", "hostname": "", "vendor": "Unknown", "status": "up"}]
            )

        assert devices[0]["vendor"] == "Apple, Inc."
        assert devices[0]["hostname"] == "mac-mini"
        assert get.call_args.args[0].endswith("/A4:83:E7")

    def test_enrichment_failure_keeps_device(self, ctx):
        device = {"ip": "192.168.1.9", "mac": "", "hostname": "", "vendor": "Unknown", "status": "up"}
        with patch(f"{NC}._reverse_dns", side_effect=RuntimeError("resolver down")):
            assert NetworkCollector(ctx).enrich_devices([device]) == [device]


class TestPortScans:
    def test_quick_scan_nmap_failure(self, ctx):
        with patch(f"{NC}.nmap.PortScanner", side_effect=nmap.PortScannerError("nmap program was not found")):
            result = NetworkCollector(ctx).quick_scan()
        assert result["localPorts"] == []
        assert "nmap program was not found" in result["error"]
        assert "interfaces" in result

    def test_quick_scan_ports(self, ctx):
        scanner = FakeScanner({
            "127.0.0.1": FakeHost({"tcp": {
                22: {"state": "open", "name": "ssh"},
                25: {"state": "closed", "name": "smtp"},
            }}),
        })
        with patch(f"{NC}.nmap.PortScanner", return_value=scanner):
            result = NetworkCollector(ctx).quick_scan()
        assert result["localPorts"] == [{"port": 22, "protocol": "tcp", "service": "ssh", "state": "open"}]
        assert "error" not in result

    @patch(f"{NC}.psutil.net_if_addrs", return_value=IF_ADDRS)
    def test_deep_service_scan(self, _addrs, ctx):
        scanner = FakeScanner({
            "192.168.1.20": FakeHost({"tcp": {
                21: {"state": "open", "name": "ftp", "product": "vsftpd", "version": "3.0.3"},
            }}, hostname="nas"),
        })
        with patch(f"{NC}.nmap.PortScanner", return_value=scanner):
            result = NetworkCollector(ctx).scan_services(deep=True)

        assert scanner.calls == [("192.168.1.0/24", "-sV -p 1-1000")]
        assert result["services"]["192.168.1.20"] == {
            "hostname": "nas",
            "ports": [{"port": 21, "protocol": "tcp", "service": "ftp", "state": "open",
                       "product": "vsftpd", "version": "3.0.3"}],
        }

    @patch(f"{NC}.psutil.net_if_addrs", return_value={})
    def test_service_scan_without_range(self, _addrs, ctx):
        result = NetworkCollector(ctx).scan_services()
        assert result["services"] == {}
        assert "error" in result


class TestFirewall:
    def test_linux_ufw(self, ctx, fake_runner):
        fake_runner.outputs["ufw status"] = "Status: active\n22 ALLOW Anywhere\n80 DENY Anywhere\n"
        result = NetworkCollector(ctx).check_firewall()
        assert result == {"status": "on", "rulesCount": 2, "timestamp": "2024-05-01T10:00:00.000Z"}

    def test_linux_iptables_without_rules_is_unknown(self, ctx, fake_runner):
        fake_runner.outputs["iptables -L -n"] = "Chain INPUT (policy ACCEPT)\n"
        assert NetworkCollector(ctx).check_firewall()["status"] == "unknown"

    def test_windows_netsh(self, make_ctx, fake_runner):
        fake_runner.outputs["netsh advfirewall show allprofiles"] = "Domain Profile Settings:\n---\nState   OFF\n"
        fake_runner.outputs["netsh advfirewall firewall show rule name=all"] = "Rule Name: A\nRule Name: B\n"
        result = NetworkCollector(make_ctx(platform="win32")).check_firewall()
        assert result["status"] == "off"
        assert result["rulesCount"] == 2

    def test_tool_failure_degrades(self, ctx):
        result = NetworkCollector(ctx).check_firewall()
        assert result["status"] == "unknown"
        assert "iptables" in result["error"]

    def test_unsupported_platform(self, make_ctx):
        ctx = make_ctx(platform="sunos5")
        assert NetworkCollector(ctx).check_firewall()["status"] == "unknown"
