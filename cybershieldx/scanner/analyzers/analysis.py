# cybershieldx/scanner/analyzers/analysis.py
"""
The Analysis accumulator shared by the per-scan-type analyzers.

Analyzers only append: issues go into severity buckets, points are added
to category scores, recommendations are appended (or put first). The
RiskAnalyzer façade derives everything else (clamped scores, overall,
level, summary) once all analyzers have run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from cybershieldx.scanner.base import Issue, SEVERITIES, empty_buckets
from cybershieldx.utils.scoring import (
    calculate_overall_risk_score,
    clamp_scores,
    overall_status,
    risk_level_from_score,
)


@dataclass
class Analysis:
    scan_type: Optional[str]
    timestamp: str
    risk_scores: Dict[str, float] = field(default_factory=dict)
    issues: Dict[str, List[Issue]] = field(default_factory=empty_buckets)
    recommendations: List[Dict[str, str]] = field(default_factory=list)
    risk_level: str = "low"
    summary: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    # ------------------------------------------------------------------
    # Accumulation
    # ------------------------------------------------------------------

    def init_categories(self, categories: Iterable[str]) -> None:
        """Declare categories at 0 without touching existing totals."""
        for category in categories:
            self.risk_scores.setdefault(category, 0)

    def add_score(self, category: str, points: float) -> None:
        self.risk_scores[category] = self.risk_scores.get(category, 0) + points

    def add_issue(self, severity: str, category: str, title: str, description: str,
                  first: bool = False) -> Issue:
        issue = Issue(title=title, severity=severity, category=category, description=description)
        if first:
            self.issues[severity].insert(0, issue)
        else:
            self.issues[severity].append(issue)
        return issue

    def recommend(self, priority: str, recommendation: str, details: str = "",
                  first: bool = False) -> None:
        rec = {"priority": priority, "recommendation": recommendation, "details": details}
        if first:
            self.recommendations.insert(0, rec)
        else:
            self.recommendations.append(rec)

    def has_issues(self, *severities: str, category: Optional[str] = None,
                   title_contains: Optional[str] = None) -> bool:
        for severity in severities:
            for issue in self.issues[severity]:
                if category and issue.category != category:
                    continue
                if title_contains and title_contains not in issue.title:
                    continue
                return True
        return False

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def issue_counts(self) -> Dict[str, int]:
        return {s: len(self.issues[s]) for s in SEVERITIES}

    def finalize(self) -> None:
        """Clamp categories, then derive overall, level and summary."""
        scores = clamp_scores({k: v for k, v in self.risk_scores.items() if k != "overall"})
        scores["overall"] = calculate_overall_risk_score(scores)
        self.risk_scores = scores
        self.risk_level = risk_level_from_score(scores["overall"])

        counts = self.issue_counts()
        self.summary = {
            "totalIssues": sum(counts.values()),
            "criticalIssues": counts["critical"],
            "highIssues": counts["high"],
            "mediumIssues": counts["medium"],
            "lowIssues": counts["low"],
            "overallStatus": overall_status(counts),
        }

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "timestamp": self.timestamp,
            "scanType": self.scan_type,
            "riskScores": dict(self.risk_scores),
            "riskLevel": self.risk_level,
            "issues": {
                severity: [{"id": i.id, **i.summary_dict()} for i in self.issues[severity]]
                for severity in SEVERITIES
            },
            "recommendations": [dict(r) for r in self.recommendations],
            "summary": dict(self.summary),
        }
        if self.error:
            result["error"] = self.error
        return result


def deduplicate_recommendations(recommendations: List[Dict[str, str]]) -> List[Dict[str, str]]:
    """Case-insensitive on the recommendation text; first occurrence wins."""
    seen = set()
    unique = []
    for rec in recommendations:
        key = str(rec.get("recommendation", "")).lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(rec)
    return unique


def add_vulnerability_group(analysis: Analysis, group: Optional[Dict[str, Any]]) -> None:
    """One issue per entry of a {"high": [...], "medium": [...], "low": [...]} group."""
    if not isinstance(group, dict):
        return
    for severity in ("high", "medium", "low"):
        for vuln in group.get(severity) or []:
            analysis.add_issue(severity, "vulnerabilities",
                               str(vuln.get("name", "Unnamed vulnerability")),
                               str(vuln.get("description", "")))


def carry_recommendations(analysis: Analysis, source: Dict[str, Any], details_key: str) -> None:
    """Append recommendations produced by an upstream scanner."""
    for rec in source.get("recommendations") or []:
        analysis.recommend(
            rec.get("priority", "medium"),
            rec.get("recommendation", ""),
            rec.get(details_key) or "",
        )
