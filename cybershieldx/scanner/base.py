# cybershieldx/scanner/base.py
"""
Base classes for the CyberShieldX scan-to-report pipeline.

Architecture:
    PipelineContext flows through:  Collectors → RiskAnalyzer / IssueBuilder → Reporter

Collectors:     Gather raw facts from the host and the local network segment
                (psutil, nmap, OS inspection commands). Collectors NEVER
                classify severity; they only gather facts.

SecurityCheck:  One platform-specific configuration check (firewall, updates,
                encryption, ...). Returns a uniform {..., score, rating} dict
                on every platform. A failing check degrades to
                {error, score: 0, rating: "unknown"} and never aborts siblings.

BaseAnalyzer:   Interprets a RawScanResult and produces Issues, category risk
                scores and recommendations. Analyzers NEVER collect data.

Issue:          The normalized finding. Created once, never mutated.

This separation means:
  - Platform differences live in one strategy class per check and platform
  - Scoring rules can be tuned without touching how data is collected
  - Each component can fail independently without crashing the whole scan
"""

from __future__ import annotations

import logging
import sys
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from cybershieldx.config import AgentConfig
from cybershieldx.scanner.commands import CommandResult, run_command

logger = logging.getLogger(__name__)

SEVERITIES = ("critical", "high", "medium", "low")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_utc() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def iso_timestamp(dt: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def rating_for(score: int) -> str:
    """Fixed thresholds shared by every security check."""
    if score >= 80:
        return "good"
    if score >= 50:
        return "fair"
    return "poor"


def check_failure(error: Exception | str) -> Dict[str, Any]:
    """The uniform shape of a security check that could not run."""
    message = error if isinstance(error, str) else f"{type(error).__name__}: {error}"
    return {"error": message, "score": 0, "rating": "unknown"}


def short_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


# ---------------------------------------------------------------------------
# Data structures that flow through the entire pipeline
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Issue:
    """
    A normalized security finding.

    Produced either by the RiskAnalyzer (coarse: title, description,
    category, severity) or by the DetailedIssueBuilder (full remediation
    content). Frozen: nothing downstream may alter an issue once created.

    Fields:
        id:                     "ISS-" + 8 hex chars of a UUID4
        severity:               One of: critical, high, medium, low
        category:               Analyzer categories are lowercase buckets
                                (system, network, configuration, ...);
                                builder categories are remediation families
                                ("Perimeter Security", "Account Security", ...)
        remediation_steps:      Ordered, human-readable steps
        remediation_difficulty: Derived from severity by the builder
        cve_ids:                CVE identifiers; each yields an NVD reference
    """
    title: str
    severity: str
    category: str
    description: str = ""
    id: str = field(default_factory=lambda: short_id("ISS"))
    impact: str = ""
    location: str = ""
    evidence: str = ""
    recommendation: str = ""
    remediation_steps: tuple = ()
    remediation_difficulty: str = ""
    references: tuple = ()
    cve_ids: tuple = ()

    def __post_init__(self):
        if self.severity not in SEVERITIES:
            raise ValueError(f"Invalid severity '{self.severity}' for issue '{self.title}'")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "impact": self.impact,
            "severity": self.severity,
            "category": self.category,
            "location": self.location,
            "evidence": self.evidence,
            "recommendation": self.recommendation,
            "remediationSteps": list(self.remediation_steps),
            "remediationDifficulty": self.remediation_difficulty,
            "references": list(self.references),
            "cveIds": list(self.cve_ids),
        }

    def summary_dict(self) -> Dict[str, Any]:
        """The compact form the Reporter embeds in details.issues."""
        return {
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "severity": self.severity,
        }


def empty_buckets() -> Dict[str, List[Any]]:
    return {s: [] for s in SEVERITIES}


@dataclass
class PipelineContext:
    """
    The explicit environment every stage receives.

    Replaces module-level singletons: tests build a context with a fake
    runner, a frozen clock and an in-memory sink, and nothing leaks between
    test cases.

    Fields:
        config:   AgentConfig (timeouts, reports dir, feature toggles)
        clock:    Returns "now" as an aware datetime
        logger:   Scan lifecycle log (start, failed collection tasks, completion);
                  callers may hand in a per-client logger
        sink:     Callable(report_dict) -> Optional[str]; persists a Report
        runner:   Callable(cmd, timeout=..., check=...) -> CommandResult
        platform: sys.platform value used to pick the security check strategies
    """
    config: AgentConfig
    clock: Callable[[], datetime] = now_utc
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("cybershieldx.pipeline"))
    sink: Optional[Callable[[Dict[str, Any]], Optional[str]]] = None
    runner: Callable[..., CommandResult] = run_command
    platform: str = sys.platform

    @classmethod
    def create(cls, config: AgentConfig | None = None, **kwargs) -> "PipelineContext":
        from cybershieldx.scanner.reporter import JsonFileSink

        config = config or AgentConfig.from_env()
        ctx = cls(config=config, **kwargs)
        if ctx.sink is None:
            ctx.sink = JsonFileSink(config.effective_reports_dir)
        return ctx

    def run(self, cmd: List[str], timeout: int | None = None, check: bool = True) -> CommandResult:
        """Run an OS command with the configured timeout."""
        return self.runner(cmd, timeout=timeout or self.config.command_timeout, check=check)

    def timestamp(self) -> str:
        return iso_timestamp(self.clock())

    @property
    def is_windows(self) -> bool:
        return self.platform.startswith("win")

    @property
    def is_macos(self) -> bool:
        return self.platform == "darwin"

    @property
    def is_linux(self) -> bool:
        return self.platform.startswith("linux")


# ---------------------------------------------------------------------------
# Abstract base classes
# ---------------------------------------------------------------------------

class SecurityCheck(ABC):
    """
    Abstract base for one security-configuration check on one platform.

    To create a new check:
        1. Subclass SecurityCheck
        2. Set `name` to the config key it fills (e.g. "firewallConfig")
        3. Implement `execute(ctx) -> dict` returning the check's facts and
           an integer `score`

    The base class handles automatically:
        - Rating derivation from the score
        - Error catching (any exception becomes {error, score: 0, rating: "unknown"})
        - Timing (duration logged at debug)
    """

    #: Config key this check fills, e.g. "users", "firewallConfig"
    name: str = ""

    def run(self, ctx: PipelineContext) -> Dict[str, Any]:
        """
        Execute the check with error handling.

        DO NOT OVERRIDE THIS METHOD. Override `execute()` instead.
        """
        start = time.monotonic()
        try:
            result = self.execute(ctx)
            score = int(max(0, min(100, result.get("score", 0))))
            result["score"] = score
            result["rating"] = rating_for(score)
            return result
        except Exception as e:
            logger.warning(f"Security check '{self.name}' failed: {type(e).__name__}: {e}")
            return check_failure(e)
        finally:
            logger.debug(f"Security check '{self.name}' took {time.monotonic() - start:.2f}s")

    @abstractmethod
    def execute(self, ctx: PipelineContext) -> Dict[str, Any]:
        ...


class BaseAnalyzer(ABC):
    """
    Abstract base for the per-scan-type risk analyzers.

    Each analyzer reads one RawScanResult shape and writes into a shared
    Analysis: issues by severity, category scores, recommendations. The
    RiskAnalyzer façade owns the error boundary; analyzers just raise.
    """

    #: The scanType this analyzer handles
    scan_type: str = ""

    @abstractmethod
    def analyze(self, raw: Dict[str, Any], analysis: "Any") -> None:
        """Populate `analysis` from `raw`. Mutates only the analysis."""
        ...
