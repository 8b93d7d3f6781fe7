# cybershieldx/__init__.py
"""
CyberShieldX agent: pipeline factory.

Builds a ready-to-run ScanPipeline from environment configuration:
    - AgentConfig read from CYBERSHIELDX_* env vars (overridable per call)
    - Logging configured once, level from CYBERSHIELDX_LOG_LEVEL
    - PipelineContext carries config, clock, logger and the report sink,
      so no stage reaches for process-wide state
"""

from __future__ import annotations

import logging

__version__ = "1.4.0"

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup. Safe to call more than once."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    # nmap/urllib3 chatter is not useful at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def create_pipeline(**overrides):
    """
    App-factory style entry point.

    Keyword overrides are applied on top of the environment config,
    e.g. create_pipeline(reports_dir="/tmp/reports", vendor_lookup=True).
    """
    from cybershieldx.config import AgentConfig
    from cybershieldx.scanner.base import PipelineContext
    from cybershieldx.scanner.orchestrator import ScanPipeline

    config = AgentConfig.from_env(**overrides)
    configure_logging(config.log_level)
    ctx = PipelineContext.create(config)
    return ScanPipeline(ctx)
