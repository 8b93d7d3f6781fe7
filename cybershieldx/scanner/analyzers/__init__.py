# cybershieldx/scanner/analyzers/__init__.py
"""
Risk analyzers.
Each analyzer reads one RawScanResult shape and records issues, category
scores and recommendations into an Analysis.
Analyzers do NOT collect data: they only interpret it.
"""
from cybershieldx.scanner.analyzers.analysis import Analysis, deduplicate_recommendations
from cybershieldx.scanner.analyzers.quick import QuickScanAnalyzer
from cybershieldx.scanner.analyzers.system import SystemScanAnalyzer
from cybershieldx.scanner.analyzers.network import NetworkScanAnalyzer
from cybershieldx.scanner.analyzers.full import FullScanAnalyzer
from cybershieldx.scanner.analyzers.risk_analyzer import RiskAnalyzer

# Registry of analyzers keyed by the scanType they handle.
ALL_ANALYZERS = {
    "quick": QuickScanAnalyzer,
    "system": SystemScanAnalyzer,
    "network": NetworkScanAnalyzer,
    "full": FullScanAnalyzer,
}

__all__ = [
    "Analysis", "deduplicate_recommendations",
    "QuickScanAnalyzer", "SystemScanAnalyzer", "NetworkScanAnalyzer",
    "FullScanAnalyzer", "RiskAnalyzer", "ALL_ANALYZERS",
]
