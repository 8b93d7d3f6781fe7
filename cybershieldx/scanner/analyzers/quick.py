# cybershieldx/scanner/analyzers/quick.py
"""
Quick scan analyzer.

Reads basic system facts and the localhost port snapshot.

Categories: system, network

    Disk > 90% used          medium  +15 system
    Disk > 80% used          low     +5  system
    Memory > 90% used        medium  +10 system
    Sensitive local ports    high    +20 network
    More than 10 open ports  medium  +15 network
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from cybershieldx.scanner.analyzers.analysis import Analysis
from cybershieldx.scanner.base import BaseAnalyzer

logger = logging.getLogger(__name__)

SENSITIVE_LOCAL_PORTS = {21, 22, 23, 25, 135, 137, 138, 139, 445, 3389, 5900}


class QuickScanAnalyzer(BaseAnalyzer):
    scan_type = "quick"
    categories = ("system", "network")

    def analyze(self, raw: Dict[str, Any], analysis: Analysis) -> None:
        analysis.init_categories(self.categories)
        self._system(raw.get("system") or {}, analysis)
        self._network(raw.get("network") or {}, analysis)
        self._recommendations(analysis)

    def _system(self, system: Dict[str, Any], analysis: Analysis) -> None:
        for disk in system.get("disk") or []:
            used = disk.get("usedPercentage") or 0
            mount = disk.get("mount", "")
            if used > 90:
                analysis.add_issue("medium", "system", f"Critical disk space on {mount}",
                                   f"Disk usage is at {used}% on {mount}")
                analysis.add_score("system", 15)
            elif used > 80:
                analysis.add_issue("low", "system", f"Low disk space on {mount}",
                                   f"Disk usage is at {used}% on {mount}")
                analysis.add_score("system", 5)

        memory = system.get("memory") or {}
        if (memory.get("usedPercentage") or 0) > 90:
            analysis.add_issue("medium", "system", "High memory usage",
                               f"Memory usage is at {memory['usedPercentage']}%")
            analysis.add_score("system", 10)

    def _network(self, network: Dict[str, Any], analysis: Analysis) -> None:
        ports = network.get("localPorts") or []
        if not ports:
            return

        sensitive = [p.get("port") for p in ports if p.get("port") in SENSITIVE_LOCAL_PORTS]
        if sensitive:
            analysis.add_issue(
                "high", "network", "Sensitive ports open",
                f"{len(sensitive)} sensitive ports are open, including {', '.join(str(p) for p in sensitive)}",
            )
            analysis.add_score("network", 20)

        if len(ports) > 10:
            analysis.add_issue("medium", "network", "Many open ports",
                               f"{len(ports)} ports are open on the local system")
            analysis.add_score("network", 15)

    @staticmethod
    def _recommendations(analysis: Analysis) -> None:
        if analysis.has_issues("high", "medium"):
            analysis.recommend(
                "high", "Run a full security scan",
                "The quick scan found potential issues. A full scan is recommended to get a complete assessment.",
            )
        if analysis.has_issues("high", category="network"):
            analysis.recommend(
                "high", "Close unnecessary open ports",
                "Reduce your attack surface by closing ports that are not needed.",
            )
        if analysis.has_issues("medium", category="system", title_contains="disk space"):
            analysis.recommend(
                "medium", "Free up disk space",
                "Low disk space can impact system performance and stability.",
            )
