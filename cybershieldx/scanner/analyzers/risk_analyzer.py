# cybershieldx/scanner/analyzers/risk_analyzer.py
"""
Risk Analyzer.

Dispatches a RawScanResult to the analyzer for its scanType, then derives
the overall score, risk level and summary from what the analyzer recorded.

    overall = round(Σs² / Σs) over the category scores (each capped at 100)
    level   = high ≥ 75, medium ≥ 40, else low

analyze() never raises. Any failure yields a fallback analysis that
assumes the worst (overall 100, level high) and asks for a manual look.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from cybershieldx.scanner.analyzers.analysis import Analysis, deduplicate_recommendations
from cybershieldx.scanner.base import BaseAnalyzer, iso_timestamp, now_utc

logger = logging.getLogger(__name__)


class RiskAnalyzer:

    def __init__(self, analyzers: Optional[Dict[str, BaseAnalyzer]] = None,
                 clock: Callable = now_utc):
        if analyzers is None:
            from cybershieldx.scanner.analyzers import ALL_ANALYZERS
            analyzers = {name: cls() for name, cls in ALL_ANALYZERS.items()}
        self.analyzers = analyzers
        self.clock = clock

    def analyze(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        scan_type = (raw or {}).get("scanType")
        try:
            logger.info(f"Analyzing {scan_type} scan results")
            analysis = Analysis(scan_type=scan_type, timestamp=iso_timestamp(self.clock()))

            analyzer = self.analyzers.get(scan_type)
            if analyzer is None:
                logger.warning(f"Unknown scan type: {scan_type}")
            else:
                analyzer.analyze(raw, analysis)

            analysis.recommendations = deduplicate_recommendations(analysis.recommendations)
            analysis.finalize()

            logger.info(
                f"Analysis completed: overall {analysis.risk_scores['overall']} "
                f"({analysis.risk_level}), {analysis.summary['totalIssues']} issues"
            )
            return analysis.to_dict()
        except Exception as e:
            logger.exception(f"Analysis failed: {e}")
            return self.fallback(scan_type, e)

    def fallback(self, scan_type: Optional[str], error: Exception) -> Dict[str, Any]:
        analysis = Analysis(
            scan_type=scan_type,
            timestamp=iso_timestamp(self.clock()),
            risk_scores={"overall": 100},
            risk_level="high",
            error=str(error),
        )
        analysis.recommend("high", "Analysis failed, manual investigation required", f"Error: {error}")
        analysis.summary = {
            "totalIssues": 0,
            "criticalIssues": 0,
            "highIssues": 0,
            "mediumIssues": 0,
            "lowIssues": 0,
            "overallStatus": "unknown",
        }
        return analysis.to_dict()
