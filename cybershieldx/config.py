# cybershieldx/config.py
"""
Agent configuration.

Everything is read from environment variables once, when the pipeline is
built. Nothing here is mutated afterwards: the AgentConfig instance is
carried inside the PipelineContext to every stage that needs it.

Environment variables:
    CYBERSHIELDX_HOME               Agent data directory (default: ~/.cybershieldx)
    CYBERSHIELDX_REPORTS_DIR        Where JSON reports land (default: <home>/reports)
    CYBERSHIELDX_COMMAND_TIMEOUT    Seconds per OS command (default: 30)
    CYBERSHIELDX_CHECK_TIMEOUT      Seconds per security check (default: 60)
    CYBERSHIELDX_NMAP_TIMEOUT       Seconds per nmap run (default: 300)
    CYBERSHIELDX_MAX_WORKERS        Thread pool size for checks/enrichment (default: 7)
    CYBERSHIELDX_VENDOR_LOOKUP      "true" to resolve MAC vendors over HTTP (default: false)
    CYBERSHIELDX_VENDOR_LOOKUP_URL  Lookup endpoint, "{oui}" is replaced by the MAC prefix
    CYBERSHIELDX_LOG_LEVEL          Logging level name (default: INFO)
    AGENT_VERSION                   Overrides the version stamped into reports
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from cybershieldx import __version__

DEFAULT_VENDOR_LOOKUP_URL = "https://api.macvendors.com/{oui}"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AgentConfig:
    home_dir: Path = field(default_factory=lambda: Path.home() / ".cybershieldx")
    reports_dir: Optional[Path] = None

    command_timeout: int = 30
    check_timeout: int = 60
    nmap_timeout: int = 300
    max_workers: int = 7

    vendor_lookup: bool = False
    vendor_lookup_url: str = DEFAULT_VENDOR_LOOKUP_URL
    vendor_lookup_timeout: int = 5

    log_level: str = "INFO"
    agent_version: str = __version__

    @property
    def effective_reports_dir(self) -> Path:
        return self.reports_dir or (self.home_dir / "reports")

    @classmethod
    def from_env(cls, **overrides: Any) -> "AgentConfig":
        """Build a config from the environment, then apply explicit overrides."""
        home = os.getenv("CYBERSHIELDX_HOME")
        reports = os.getenv("CYBERSHIELDX_REPORTS_DIR")

        values: Dict[str, Any] = {
            "home_dir": Path(home).expanduser() if home else Path.home() / ".cybershieldx",
            "reports_dir": Path(reports).expanduser() if reports else None,
            "command_timeout": _env_int("CYBERSHIELDX_COMMAND_TIMEOUT", 30),
            "check_timeout": _env_int("CYBERSHIELDX_CHECK_TIMEOUT", 60),
            "nmap_timeout": _env_int("CYBERSHIELDX_NMAP_TIMEOUT", 300),
            "max_workers": max(1, _env_int("CYBERSHIELDX_MAX_WORKERS", 7)),
            "vendor_lookup": _env_bool("CYBERSHIELDX_VENDOR_LOOKUP"),
            "vendor_lookup_url": os.getenv("CYBERSHIELDX_VENDOR_LOOKUP_URL", DEFAULT_VENDOR_LOOKUP_URL),
            "log_level": os.getenv("CYBERSHIELDX_LOG_LEVEL", "INFO").upper(),
            "agent_version": os.getenv("AGENT_VERSION", __version__),
        }
        config = cls(**values)

        overrides = {k: v for k, v in overrides.items() if v is not None}
        if "reports_dir" in overrides:
            overrides["reports_dir"] = Path(overrides["reports_dir"]).expanduser()
        return replace(config, **overrides) if overrides else config
