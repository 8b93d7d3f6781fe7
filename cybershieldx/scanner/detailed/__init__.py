# cybershieldx/scanner/detailed/__init__.py
"""
Detailed issue builder.
Processors turn raw sections into fully described Issues; the builder
assembles them with a remediation plan into a DetailedReport.
"""
from cybershieldx.scanner.detailed.processors import (
    ComplianceCheckProcessor,
    MalwareScanProcessor,
    NetworkScanProcessor,
    SectionProcessor,
    SystemScanProcessor,
    VulnerabilityScanProcessor,
    create_issue,
)
from cybershieldx.scanner.detailed.remediation import RemediationAction
from cybershieldx.scanner.detailed.builder import DetailedIssueBuilder, build_remediation_plan

__all__ = [
    "SectionProcessor", "NetworkScanProcessor", "SystemScanProcessor",
    "VulnerabilityScanProcessor", "MalwareScanProcessor", "ComplianceCheckProcessor",
    "create_issue", "RemediationAction", "DetailedIssueBuilder",
    "build_remediation_plan",
]
