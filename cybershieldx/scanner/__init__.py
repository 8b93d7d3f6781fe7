# cybershieldx/scanner/__init__.py
"""
CyberShieldX scan-to-report pipeline.

Usage:
    from cybershieldx.scanner import ScanPipeline
    from cybershieldx.scanner.base import PipelineContext

    pipeline = ScanPipeline(PipelineContext.create())
    report = pipeline.run("full", client_id="client-42")

Architecture:
    ScanPipeline
    ├── Collectors (gather raw facts)
    │   ├── SystemCollector   (psutil host facts + seven security checks)
    │   └── NetworkCollector  (nmap discovery/ports, ARP fallback, firewall)
    │
    ├── RiskAnalyzer (category scores, coarse issues, recommendations)
    │   ├── QuickScanAnalyzer
    │   ├── SystemScanAnalyzer
    │   ├── NetworkScanAnalyzer
    │   └── FullScanAnalyzer  (reuses system + network, adds correlation)
    │
    ├── DetailedIssueBuilder (full issues + remediation plan)
    │   └── network / system / vulnerability / malware / compliance processors
    │
    └── Reporter (merge, redact, atomic JSON file)
"""

from cybershieldx.scanner.orchestrator import ScanPipeline

__all__ = ["ScanPipeline"]
