# cybershieldx/scanner/detailed/remediation.py
"""
Remediation Guidance Registry.

Static source of truth for everything the remediation plan attaches to an
issue that is not specific to the finding itself. Keyed by issue category
(e.g. "Perimeter Security", "Account Security").

Used by:
    - Processors:   Difficulty derived from severity, web/database step
                    catalogues for findings reported by type name
    - Plan builder: Reference links, additional notes and estimated effort
                    for each RemediationAction

Each guidance entry defines the DEFAULTS for one category. CVE-tagged
issues additionally get one NVD link per CVE ID.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from cybershieldx.scanner.base import Issue, short_id

DEFAULT_NOTES = "Document all remediation steps taken for future reference and compliance purposes."

NVD_URL = "https://nvd.nist.gov/vuln/detail/{cve}"

DIFFICULTY_BY_SEVERITY = {
    "critical": "High",
    "high": "Medium to High",
    "medium": "Medium",
    "low": "Low to Medium",
}

ESTIMATED_TIME_BY_SEVERITY = {
    "critical": "Immediate - 1 day",
    "high": "1-3 days",
    "medium": "1-2 weeks",
    "low": "2-4 weeks",
}

VERIFICATION_STEPS = (
    "Scan the system again after remediation.",
    "Verify that the issue has been resolved.",
    "Check for any new issues that may have been introduced during remediation.",
)


def remediation_difficulty(severity: str) -> str:
    return DIFFICULTY_BY_SEVERITY.get(severity, "Medium")


def estimated_time(severity: str) -> str:
    return ESTIMATED_TIME_BY_SEVERITY.get(severity, "Varies")


@dataclass(frozen=True)
class CategoryGuidance:
    category: str
    resources: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    # Substring of issue.location → extra link (compliance frameworks)
    location_resources: Dict[str, str] = field(default_factory=dict)

    @property
    def effective_notes(self) -> str:
        return self.notes or DEFAULT_NOTES


# ═══════════════════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════════════════

_GUIDANCE: Dict[str, CategoryGuidance] = {}


def _r(guidance: CategoryGuidance) -> CategoryGuidance:
    """Register guidance for a category."""
    _GUIDANCE[guidance.category] = guidance
    return guidance


# ───────────────────────────────────────────────────────────────────────────
# Network
# ───────────────────────────────────────────────────────────────────────────

_r(CategoryGuidance(
    category="Insecure Services",
    resources=[
        "https://www.cisecurity.org/insights/white-papers/security-primer-ports-protocols-and-services",
        "https://www.sans.org/security-resources/policies/general/pdf/service-hardening-guidelines",
    ],
    notes="Consider implementing network segmentation to further protect sensitive services.",
))

_r(CategoryGuidance(
    category="Network Access Control",
    resources=[
        "https://www.nist.gov/publications/guide-network-security-monitoring",
        "https://www.cisecurity.org/insights/white-papers/security-primer-zero-trust",
    ],
))

_r(CategoryGuidance(
    category="Wireless Security",
    resources=[
        "https://www.wi-fi.org/security",
        "https://www.nist.gov/publications/guide-enterprise-wireless-local-area-network-security",
    ],
))

_r(CategoryGuidance(
    category="Perimeter Security",
    resources=[
        "https://www.sans.org/security-resources/policies/firewall/pdf/firewall-configuration-guidelines",
    ],
))

# ───────────────────────────────────────────────────────────────────────────
# Host
# ───────────────────────────────────────────────────────────────────────────

_r(CategoryGuidance(
    category="System Updates",
    resources=[
        "https://www.cisa.gov/known-exploited-vulnerabilities-catalog",
        "https://www.cisecurity.org/insights/white-papers/security-primer-patching",
    ],
    notes="Always test critical updates in a non-production environment when possible.",
))

_r(CategoryGuidance(
    category="Account Security",
    resources=[
        "https://pages.nist.gov/800-63-3/sp800-63b.html",
        "https://www.sans.org/security-resources/policies/general/pdf/password-construction-guidelines",
    ],
    notes="Consider implementing multi-factor authentication for additional security.",
))

_r(CategoryGuidance(
    category="File System Security",
    resources=["https://www.nist.gov/publications/guide-securing-file-system-volumes"],
))

_r(CategoryGuidance(
    category="Endpoint Protection",
    resources=["https://www.nist.gov/publications/guide-endpoint-security"],
))

_r(CategoryGuidance(
    category="Data Protection",
    resources=["https://www.nist.gov/publications/guide-storage-encryption-technologies-end-user-devices"],
))

# ───────────────────────────────────────────────────────────────────────────
# Vulnerabilities
# ───────────────────────────────────────────────────────────────────────────

_r(CategoryGuidance(
    category="Software Vulnerabilities",
    resources=["https://owasp.org/www-project-top-ten/"],
    notes="Establish a vulnerability management program to regularly identify and address vulnerabilities.",
))

_r(CategoryGuidance(
    category="Web Application Security",
    resources=["https://owasp.org/www-project-top-ten/", "https://cheatsheetseries.owasp.org/"],
))

_r(CategoryGuidance(
    category="Database Security",
    resources=["https://www.cisecurity.org/benchmark/database_benchmarks"],
))

# ───────────────────────────────────────────────────────────────────────────
# Malware
# ───────────────────────────────────────────────────────────────────────────

MALWARE_RESOURCES = ["https://www.cisa.gov/topics/malware-detection-and-prevention"]

_r(CategoryGuidance(
    category="Malware",
    resources=MALWARE_RESOURCES,
    notes="After malware removal, consider changing passwords for critical accounts as they may have been compromised.",
))
_r(CategoryGuidance(category="Potential Malware", resources=MALWARE_RESOURCES))
_r(CategoryGuidance(category="Malware Persistence", resources=MALWARE_RESOURCES))

# ───────────────────────────────────────────────────────────────────────────
# Compliance
# ───────────────────────────────────────────────────────────────────────────

_r(CategoryGuidance(
    category="Compliance",
    notes="Consider consulting with a compliance specialist to ensure all requirements are properly addressed.",
    location_resources={
        "GDPR": "https://gdpr.eu/checklist/",
        "ISO 27001": "https://www.iso.org/isoiec-27001-information-security.html",
        "PCI DSS": "https://www.pcisecuritystandards.org/document_library/",
        "HIPAA": "https://www.hhs.gov/hipaa/for-professionals/security/guidance/index.html",
    },
))


# ═══════════════════════════════════════════════════════════════════════════
# LOOKUP API
# ═══════════════════════════════════════════════════════════════════════════

def get_guidance(category: str) -> Optional[CategoryGuidance]:
    return _GUIDANCE.get(category)


def resources_for_issue(issue: Issue) -> List[str]:
    """Category links, the first matching location link, then one NVD link per CVE."""
    resources: List[str] = []
    guidance = get_guidance(issue.category)
    if guidance:
        resources.extend(guidance.resources)
        for needle, url in guidance.location_resources.items():
            if needle in (issue.location or ""):
                resources.append(url)
                break

    for cve in issue.cve_ids:
        resources.append(NVD_URL.format(cve=cve))
    return resources


def notes_for_issue(issue: Issue) -> str:
    guidance = get_guidance(issue.category)
    return guidance.effective_notes if guidance else DEFAULT_NOTES


# ═══════════════════════════════════════════════════════════════════════════
# REMEDIATION ACTIONS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RemediationAction:
    """One plan entry per issue; priority is the issue's severity."""
    issue_id: str
    title: str
    description: str
    priority: str
    steps: Tuple[str, ...]
    resources: Tuple[str, ...]
    estimated_time: str
    additional_notes: str
    verification_steps: Tuple[str, ...] = VERIFICATION_STEPS
    id: str = field(default_factory=lambda: short_id("REM"))

    @classmethod
    def from_issue(cls, issue: Issue) -> "RemediationAction":
        return cls(
            issue_id=issue.id,
            title=f"Remediate: {issue.title}",
            description=issue.recommendation,
            priority=issue.severity,
            steps=tuple(issue.remediation_steps),
            resources=tuple(resources_for_issue(issue)),
            estimated_time=estimated_time(issue.severity),
            additional_notes=notes_for_issue(issue),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "issueId": self.issue_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "steps": list(self.steps),
            "resources": list(self.resources),
            "estimatedTime": self.estimated_time,
            "verificationSteps": list(self.verification_steps),
            "additionalNotes": self.additional_notes,
        }


# ═══════════════════════════════════════════════════════════════════════════
# STEP CATALOGUES
# ═══════════════════════════════════════════════════════════════════════════
# Findings reported only by type name ("SQL Injection", "Weak Password")
# get steps from the first entry whose keyword occurs in the lowercased
# type. Order matters: "authorization" must be tried before "auth".

StepCatalogue = List[Tuple[Tuple[str, ...], List[str]]]

WEB_VULNERABILITY_STEPS: StepCatalogue = [
    (("sql injection",), [
        "Use parameterized queries or prepared statements instead of string concatenation.",
        "Apply input validation and sanitization.",
        "Implement least privilege database accounts.",
        "Use stored procedures when possible.",
        "Implement a web application firewall (WAF).",
    ]),
    (("xss", "cross-site scripting"), [
        "Implement context-appropriate output encoding.",
        "Use Content Security Policy (CSP) headers.",
        "Apply input validation.",
        "Use modern frameworks that automatically escape output.",
        "Implement a web application firewall (WAF).",
    ]),
    (("csrf", "cross-site request forgery"), [
        "Implement anti-CSRF tokens in all forms.",
        "Verify the origin with standard headers.",
        "Implement SameSite cookie attribute.",
        "Require re-authentication for sensitive operations.",
    ]),
    (("insecure deserialization",), [
        "Implement integrity checks on serialized objects.",
        "Avoid deserializing data from untrusted sources.",
        "Use safer data formats like JSON with schema validation.",
        "Implement deserialization monitoring and alerting.",
    ]),
    (("authorization",), [
        "Implement proper access control checks on all sensitive operations.",
        "Use role-based access control (RBAC).",
        "Apply the principle of least privilege.",
        "Validate authorization on server-side for every request.",
        "Implement proper session management.",
    ]),
    (("authentication", "auth"), [
        "Implement strong password policies.",
        "Add multi-factor authentication.",
        "Use secure session management.",
        "Implement proper account lockout policies.",
        "Ensure secure credential storage with modern hashing algorithms.",
    ]),
    (("sensitive data",), [
        "Encrypt sensitive data both in transit and at rest.",
        "Implement proper key management.",
        "Apply data minimization principles.",
        "Use secure TLS configurations.",
        "Implement proper access controls for sensitive data.",
    ]),
    (("xxe", "xml"), [
        "Disable XML external entity processing.",
        "Use less complex data formats like JSON when possible.",
        "Patch or update XML processors and libraries.",
        "Validate, filter, and sanitize all XML input.",
    ]),
    (("misconfig",), [
        "Follow security hardening guidelines for your web server and framework.",
        "Remove unnecessary features, components, and documentation.",
        "Update and patch systems regularly.",
        "Implement proper security headers.",
        "Perform regular security audits and penetration testing.",
    ]),
]

GENERIC_WEB_STEPS = [
    "Review the application code related to this vulnerability.",
    "Apply input validation and output encoding.",
    "Follow secure coding practices specific to this vulnerability.",
    "Implement proper error handling that doesn't expose sensitive information.",
    "Conduct security testing after remediation to verify the fix.",
]

DATABASE_VULNERABILITY_STEPS: StepCatalogue = [
    (("authentication", "weak password"), [
        "Implement strong password policies for database accounts.",
        "Remove or disable default credentials.",
        "Implement role-based access control.",
        "Use authentication methods beyond just passwords when available.",
        "Regularly audit database users and permissions.",
    ]),
    (("authorization", "privilege"), [
        "Apply the principle of least privilege for all database accounts.",
        "Revoke unnecessary permissions from users and roles.",
        "Implement schema-level security.",
        "Use database proxies or connection pooling with controlled access.",
        "Regularly audit user privileges and access patterns.",
    ]),
    (("encryption", "sensitive data"), [
        "Enable Transparent Data Encryption (TDE) or equivalent.",
        "Implement column-level encryption for sensitive data.",
        "Use secure TLS/SSL configurations for database connections.",
        "Implement proper key management for encryption keys.",
        "Apply data masking for non-production environments.",
    ]),
    (("injection", "sql"), [
        "Use parameterized queries or prepared statements in application code.",
        "Implement input validation at the application level.",
        "Apply the principle of least privilege for database accounts.",
        "Use stored procedures when possible.",
        "Consider implementing a database firewall.",
    ]),
    (("patch", "update", "outdated"), [
        "Apply all security patches to the database software.",
        "Upgrade to a supported database version if using an EOL version.",
        "Implement a regular patching schedule.",
        "Test patches in non-production environments before applying.",
        "Document all patch applications for compliance purposes.",
    ]),
    (("audit", "logging"), [
        "Enable comprehensive audit logging for the database.",
        "Configure logging of authentication attempts, privilege changes, and data access.",
        "Ensure logs are stored securely and cannot be modified by regular users.",
        "Implement log monitoring and alerting for suspicious activities.",
        "Establish log retention policies.",
    ]),
    (("backup", "recovery"), [
        "Implement regular database backups.",
        "Test recovery procedures to ensure backups are usable.",
        "Encrypt backup files.",
        "Store backups securely, with offline or immutable copies.",
        "Document and regularly test the disaster recovery plan.",
    ]),
]

GENERIC_DATABASE_STEPS = [
    "Consult the database vendor's security best practices.",
    "Apply principle of least privilege for all database operations.",
    "Implement regular security audits and vulnerability assessments.",
    "Keep the database software updated with security patches.",
    "Maintain proper documentation of security configurations and changes.",
]


def _match_steps(catalogue: StepCatalogue, vuln_type: str, default: List[str]) -> List[str]:
    lowered = (vuln_type or "").lower()
    for keywords, steps in catalogue:
        if any(k in lowered for k in keywords):
            return list(steps)
    return list(default)


def web_vulnerability_steps(vuln_type: str) -> List[str]:
    return _match_steps(WEB_VULNERABILITY_STEPS, vuln_type, GENERIC_WEB_STEPS)


def database_vulnerability_steps(vuln_type: str) -> List[str]:
    return _match_steps(DATABASE_VULNERABILITY_STEPS, vuln_type, GENERIC_DATABASE_STEPS)
