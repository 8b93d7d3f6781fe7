# File: cybershieldx/utils/scoring.py
# =============================================================================
# Centralized Risk Score Calculator
# =============================================================================
# Single source of truth for every number the pipeline reports.
# Used by: scanner/analyzers (category + overall), scanner/detailed (linear
# issue score), scanner/reporter (summary).
#
# Two models coexist and are reported side by side:
#
#   Self-weighted overall  round(Σs² / Σs) over category scores.
#                          The worst category dominates. 0 when every
#                          category is 0 or the map is empty.
#
#   Linear issue score     min(100, 25·critical + 10·high + 5·medium + 1·low)
#                          Used by the detailed issue builder.
#
# Scale (both): 0 = no risk detected, 100 = maximum risk.
# =============================================================================

from __future__ import annotations

from typing import Dict, Iterable, Mapping


def calculate_overall_risk_score(risk_scores: Mapping[str, float]) -> int:
    """
    Self-weighted average of category scores, biased toward the highest.

    The "overall" key, if present, is ignored: overall is always derived,
    never an input to itself.
    """
    scores = [float(v) for k, v in risk_scores.items() if k != "overall"]
    if not scores:
        return 0

    total_weight = sum(scores)
    if total_weight == 0:
        return 0

    # Round half up, matching how the dashboard has always displayed it
    return int(sum(s * s for s in scores) / total_weight + 0.5)


def risk_level_from_score(score: float) -> str:
    """
    Map an overall score to a level.
      >= 75 → high
      >= 40 → medium
      else  → low
    """
    if score >= 75:
        return "high"
    elif score >= 40:
        return "medium"
    else:
        return "low"


def overall_status(issue_counts: Mapping[str, int]) -> str:
    """Status label from the highest non-empty severity bucket."""
    if issue_counts.get("critical", 0) > 0:
        return "critical"
    elif issue_counts.get("high", 0) > 0:
        return "at risk"
    elif issue_counts.get("medium", 0) > 0:
        return "warning"
    elif issue_counts.get("low", 0) > 0:
        return "good"
    else:
        return "excellent"


def linear_risk_score(critical: int = 0, high: int = 0, medium: int = 0, low: int = 0) -> int:
    """Issue-count score used by the detailed builder. Capped at 100."""
    return min(100, critical * 25 + high * 10 + medium * 5 + low)


def weighted_vulnerability_score(counts: Mapping[str, int]) -> int:
    """Analyzer vulnerability category: 25 per high, 10 per medium, 2 per low."""
    return min(
        100,
        int(counts.get("high", 0) or 0) * 25
        + int(counts.get("medium", 0) or 0) * 10
        + int(counts.get("low", 0) or 0) * 2,
    )


def malware_score(findings: Mapping[str, int]) -> int:
    """Analyzer malware category from finding counts."""
    return min(
        100,
        int(findings.get("suspiciousProcesses", 0) or 0) * 25
        + int(findings.get("suspiciousStartupItems", 0) or 0) * 25
        + int(findings.get("possibleMalwareFound", 0) or 0) * 20
        + int(findings.get("suspiciousConnections", 0) or 0) * 15,
    )


def average_score(scores: Iterable[float]) -> int:
    """Rounded mean; 0 for no scores."""
    values = list(scores)
    if not values:
        return 0
    return int(sum(values) / len(values) + 0.5)


def clamp_scores(risk_scores: Dict[str, float]) -> Dict[str, int]:
    """Cap every category into the integer range 0..100."""
    return {k: int(max(0, min(100, v))) for k, v in risk_scores.items()}
