# cybershieldx/cli.py
"""CyberShieldX agent command line.

    cybershieldx scan --type full --client-id client-42
    cybershieldx analyze saved-raw-result.json
"""

from __future__ import annotations

import json
from pathlib import Path

import click

from cybershieldx.scanner.orchestrator import SCAN_TYPES


def _echo_report(report: dict, print_json: bool) -> None:
    if print_json:
        click.echo(json.dumps(report, indent=2, default=str))
        return
    summary = report.get("summary") or {}
    counts = summary.get("issueCount") or {}
    click.echo(f"Report {report.get('reportId')} ({report.get('scanType')})")
    click.echo(
        f"  risk: {summary.get('riskLevel')} "
        f"(analyzer {summary.get('analyzerRiskScore', summary.get('riskScore'))}, "
        f"issue builder {summary.get('issueBuilderRiskScore', 'n/a')})"
    )
    click.echo(
        f"  issues: {counts.get('total', 0)} "
        f"(critical {counts.get('critical', 0)}, high {counts.get('high', 0)}, "
        f"medium {counts.get('medium', 0)}, low {counts.get('low', 0)})"
    )
    click.echo(f"  status: {summary.get('overallStatus')}")


@click.group(name="cybershieldx")
@click.version_option(package_name="cybershieldx-agent")
def cli() -> None:
    """CyberShieldX security scanning agent."""


@cli.command()
@click.option("--type", "scan_type", type=click.Choice(list(SCAN_TYPES)), default="quick", show_default=True)
@click.option("--client-id", default="local", show_default=True, help="Client identifier stamped into the report")
@click.option("--scan-id", default=None, help="Scan ID (default: random UUID)")
@click.option("--reports-dir", type=click.Path(file_okay=False), default=None, help="Where JSON reports are written")
@click.option("--print/--no-print", "print_json", default=False, help="Print the full report as JSON")
def scan(scan_type: str, client_id: str, scan_id: str | None, reports_dir: str | None, print_json: bool) -> None:
    """Run a scan and write its report."""
    from cybershieldx import create_pipeline

    pipeline = create_pipeline(reports_dir=reports_dir)
    report = pipeline.run(scan_type, client_id=client_id, scan_id=scan_id)
    _echo_report(report, print_json)


@cli.command()
@click.argument("raw_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--scan-id", default=None, help="Scan ID (default: random UUID)")
@click.option("--client-id", default="local", show_default=True)
@click.option("--reports-dir", type=click.Path(file_okay=False), default=None)
@click.option("--print/--no-print", "print_json", default=False, help="Print the full report as JSON")
def analyze(raw_json: str, scan_id: str | None, client_id: str, reports_dir: str | None, print_json: bool) -> None:
    """Analyze a saved RawScanResult and write its report."""
    from cybershieldx import create_pipeline

    try:
        raw = json.loads(Path(raw_json).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{raw_json} is not valid JSON: {e}")
    if not isinstance(raw, dict) or "scanType" not in raw:
        raise click.ClickException(f"{raw_json} does not look like a raw scan result (no scanType)")

    pipeline = create_pipeline(reports_dir=reports_dir)
    report = pipeline.report_from_raw(raw, client_id=client_id, scan_id=scan_id)
    _echo_report(report, print_json)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
