# cybershieldx/scanner/orchestrator.py
"""
Scan Pipeline: runs one scan from collection to persisted Report.

Coordinates:

    1. Collect: run the collectors the scan type needs, concurrently
    2. Analyze: RiskAnalyzer (category scores, coarse issues, recommendations)
    3. Build:   DetailedIssueBuilder (full issues, remediation plan)
    4. Report:  Reporter (merge, redact, persist)

Scan types and what they collect:

    quick     system (basic) + network quick scan
    system    system (detailed) + configuration checks
              [+ local vulnerabilities, malware]
    network   devices + services (fast) + firewall
              [+ network vulnerabilities]
    full      system (detailed) + devices + services (deep) + configuration
              + firewall [+ local and network vulnerabilities, malware]

Bracketed parts come from optional providers. A provider that is not
configured, or that fails, leaves its sub-object absent ("not assessed").

Usage:
    from cybershieldx import create_pipeline

    pipeline = create_pipeline()
    report = pipeline.run("system", client_id="client-42")
"""

from __future__ import annotations

import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, Optional

from cybershieldx.scanner.analyzers import RiskAnalyzer
from cybershieldx.scanner.base import PipelineContext
from cybershieldx.scanner.collectors import NetworkCollector, SystemCollector
from cybershieldx.scanner.detailed import DetailedIssueBuilder
from cybershieldx.scanner.reporter import Reporter

SCAN_TYPES = ("quick", "system", "network", "full")

# vulnerability_provider(scope, thorough) where scope is "system" or "network"
VulnerabilityProvider = Callable[[str, bool], Dict[str, Any]]
# malware_provider(thorough)
MalwareProvider = Callable[[bool], Dict[str, Any]]
ComplianceProvider = Callable[[], Dict[str, Any]]


class ScanPipeline:
    """
    One pipeline per agent process; each run() is independent.

    Collectors, analyzer, builder and reporter are built from the
    PipelineContext and can be replaced after construction (tests swap
    in fakes).
    """

    def __init__(
        self,
        ctx: PipelineContext,
        vulnerability_provider: Optional[VulnerabilityProvider] = None,
        malware_provider: Optional[MalwareProvider] = None,
        compliance_provider: Optional[ComplianceProvider] = None,
    ):
        self.ctx = ctx
        self.system_collector = SystemCollector(ctx)
        self.network_collector = NetworkCollector(ctx)
        self.analyzer = RiskAnalyzer(clock=ctx.clock)
        self.builder = DetailedIssueBuilder(clock=ctx.clock)
        self.reporter = Reporter(ctx)

        self.vulnerability_provider = vulnerability_provider
        self.malware_provider = malware_provider
        self.compliance_provider = compliance_provider

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self, scan_type: str, client_id: str, scan_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Run a scan and return its Report.

        Raises:
            ValueError for an unknown scan type. Nothing else: collector,
            analyzer, builder and reporter failures all degrade.
        """
        if scan_type not in SCAN_TYPES:
            raise ValueError(f"Unknown scan type '{scan_type}'. Expected one of: {', '.join(SCAN_TYPES)}")

        scan_id = scan_id or str(uuid.uuid4())
        start = time.monotonic()
        self.ctx.logger.info(f"Starting {scan_type} scan {scan_id} for client {client_id}")

        raw = self.collect(scan_type)
        self.ctx.logger.info(f"Collection for scan {scan_id} finished in {time.monotonic() - start:.1f}s")

        report = self.report_from_raw(raw, client_id=client_id, scan_id=scan_id)
        self.ctx.logger.info(f"Scan {scan_id} completed in {time.monotonic() - start:.1f}s")
        return report

    def report_from_raw(self, raw: Dict[str, Any], client_id: str = "local",
                        scan_id: Optional[str] = None) -> Dict[str, Any]:
        """Analysis, detailed issues and Report for an already collected RawScanResult."""
        scan_id = scan_id or str(uuid.uuid4())
        scan_type = (raw or {}).get("scanType") or "unknown"

        analysis = self.analyzer.analyze(raw)
        detailed = self.builder.analyze_results(raw, client_id)
        return self.reporter.generate_report(scan_id, scan_type, raw, analysis, detailed)

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    def collect(self, scan_type: str) -> Dict[str, Any]:
        tasks = getattr(self, f"_{scan_type}_tasks")()
        results = self._gather(tasks)

        raw: Dict[str, Any] = {"timestamp": self.ctx.timestamp(), "scanType": scan_type}
        for name in tasks:
            if name not in results:
                continue
            if "." in name:
                parent, child = name.split(".", 1)
                raw.setdefault(parent, {})[child] = results[name]
            else:
                raw[name] = results[name]
        return raw

    def _gather(self, tasks: Dict[str, Callable[[], Any]]) -> Dict[str, Any]:
        """Run independent collection tasks concurrently. Failed tasks are left out."""
        results: Dict[str, Any] = {}
        with ThreadPoolExecutor(max_workers=max(1, min(len(tasks), self.ctx.config.max_workers))) as executor:
            future_to_name = {executor.submit(fn): name for name, fn in tasks.items()}
            for future in as_completed(future_to_name):
                name = future_to_name[future]
                try:
                    value = future.result()
                except Exception as e:
                    self.ctx.logger.warning(f"Collection task '{name}' failed: {type(e).__name__}: {e}")
                    continue
                if value is not None:
                    results[name] = value
        return results

    def _providers(self, thorough: bool, system: bool, network: bool) -> Dict[str, Callable[[], Any]]:
        tasks: Dict[str, Callable[[], Any]] = {}
        vuln = self.vulnerability_provider
        if vuln is not None:
            # Full scans nest per-scope results; single-scope scans keep them flat
            if system and network:
                tasks["vulnerabilities.system"] = lambda: vuln("system", thorough)
                tasks["vulnerabilities.network"] = lambda: vuln("network", thorough)
            elif system:
                tasks["vulnerabilities"] = lambda: vuln("system", thorough)
            elif network:
                tasks["vulnerabilities"] = lambda: vuln("network", thorough)
        if self.malware_provider is not None and system:
            malware = self.malware_provider
            tasks["malware"] = lambda: malware(thorough)
        if self.compliance_provider is not None:
            tasks["compliance"] = self.compliance_provider
        return tasks

    def _quick_tasks(self) -> Dict[str, Callable[[], Any]]:
        return {
            "system": self.system_collector.get_basic_info,
            "network": self.network_collector.quick_scan,
        }

    def _system_tasks(self) -> Dict[str, Callable[[], Any]]:
        tasks = {
            "system": self.system_collector.get_detailed_info,
            "config": self.system_collector.check_configuration,
        }
        tasks.update(self._providers(thorough=False, system=True, network=False))
        return tasks

    def _network_tasks(self) -> Dict[str, Callable[[], Any]]:
        tasks = {
            "devices": self.network_collector.discover_devices,
            "services": lambda: self.network_collector.scan_services(deep=False),
            "firewall": self.network_collector.check_firewall,
        }
        tasks.update(self._providers(thorough=False, system=False, network=True))
        return tasks

    def _full_tasks(self) -> Dict[str, Callable[[], Any]]:
        tasks = {
            "system": self.system_collector.get_detailed_info,
            "network.devices": self.network_collector.discover_devices,
            "network.services": lambda: self.network_collector.scan_services(deep=True),
            "config": self.system_collector.check_configuration,
            "firewall": self.network_collector.check_firewall,
        }
        tasks.update(self._providers(thorough=True, system=True, network=True))
        return tasks
