"""Command-line interface for CI gating.

    workload-compliance evaluate --manifest deploy.yaml --context cluster.yaml \\
        --trivy reports/trivy.json --sarif reports/semgrep.sarif

Exit codes:
- 0: the report passed
- 1: the report failed the compliance threshold
- 2: invalid input or configuration
"""

import dataclasses
from pathlib import Path

import click
from pydantic import ValidationError
from pydantic_settings import SettingsError
from rich.console import Console
from rich.table import Table

from workload_compliance.compliance.engine import ComplianceEngine
from workload_compliance.compliance.registry import create_baseline_registry
from workload_compliance.compliance.reporting import (
    exit_code,
    render_json,
    render_markdown,
    render_text,
)
from workload_compliance.core.models import ComplianceReport, WorkloadDescriptor, merge_descriptors
from workload_compliance.errors import ConfigurationError, IngestError
from workload_compliance.ingest.documents import load_descriptor_document
from workload_compliance.ingest.kubernetes import descriptor_from_documents, load_manifest_file
from workload_compliance.ingest.scanners import load_scan_report, merge_scans
from workload_compliance.observability import configure_logging
from workload_compliance.settings import Settings

console = Console()

_EXISTING_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


class InputError(click.ClickException):
    """Invalid input files or configuration."""

    exit_code = 2


def _load_settings() -> Settings:
    try:
        return Settings()
    except (ValidationError, SettingsError) as exc:
        raise InputError(f"Invalid configuration: {exc}") from exc


def _build_engine(settings: Settings, threshold: float | None) -> ComplianceEngine:
    registry = create_baseline_registry(settings.trusted_registries)
    try:
        return ComplianceEngine(
            registry=registry,
            threshold=settings.compliance_threshold if threshold is None else threshold,
        )
    except ConfigurationError as exc:
        raise InputError(str(exc)) from exc


def _print_table(report: ComplianceReport) -> None:
    table = Table(title="Compliance Report")
    table.add_column("Rule", style="bold", no_wrap=True)
    table.add_column("Status")
    table.add_column("Reason")
    for result in report.results:
        status = "[green]PASS[/green]" if result.passed else "[red]FAIL[/red]"
        table.add_row(result.rule_name, status, result.reason)
    console.print(table)

    colour = "green" if report.passed else "red"
    verdict = "PASSED" if report.passed else "FAILED"
    console.print(
        f"[bold {colour}]Compliance {verdict}[/bold {colour}]: "
        f"{report.score}/{report.total} rules passed "
        f"({report.ratio:.0%}, threshold {report.threshold:.0%})"
    )


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    show_default=True,
    help="Log level for diagnostics written to stderr.",
)
def main(log_level: str) -> None:
    """Workload compliance engine: evaluate workloads against security rules."""
    configure_logging(log_level)


@main.command()
@click.option("--descriptor", type=_EXISTING_FILE, help="Descriptor document (JSON or YAML).")
@click.option("--manifest", type=_EXISTING_FILE, help="Kubernetes manifest file (YAML, multi-document).")
@click.option("--container", "container_name", default=None, help="Container to evaluate in the manifest.")
@click.option(
    "--context",
    "context_path",
    type=_EXISTING_FILE,
    help="Descriptor document with cluster-level sections (audit, storage, network).",
)
@click.option("--trivy", type=_EXISTING_FILE, multiple=True, help="Trivy JSON report.")
@click.option("--sarif", type=_EXISTING_FILE, multiple=True, help="SARIF report (SAST, dependency scanning).")
@click.option("--zap", type=_EXISTING_FILE, multiple=True, help="OWASP ZAP JSON report.")
@click.option(
    "--dependency-check",
    "dependency_check",
    type=_EXISTING_FILE,
    multiple=True,
    help="OWASP Dependency-Check JSON report.",
)
@click.option("--threshold", type=float, default=None, help="Override the compliance threshold (0-1).")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "text", "json", "markdown"]),
    default="table",
    show_default=True,
    help="Report format.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the report to a file instead of stdout.",
)
@click.pass_context
def evaluate(
    ctx: click.Context,
    descriptor: Path | None,
    manifest: Path | None,
    container_name: str | None,
    context_path: Path | None,
    trivy: tuple[Path, ...],
    sarif: tuple[Path, ...],
    zap: tuple[Path, ...],
    dependency_check: tuple[Path, ...],
    threshold: float | None,
    output_format: str,
    output: Path | None,
) -> None:
    """Evaluate a workload and exit non-zero when it fails the threshold.

    Sections are combined in order: manifest, then --descriptor, then
    --context; scanner reports replace the security_scan section.
    """
    if descriptor is None and manifest is None:
        raise click.UsageError("Provide --descriptor and/or --manifest.")

    settings = _load_settings()
    engine = _build_engine(settings, threshold)

    try:
        workload = WorkloadDescriptor()
        if manifest is not None:
            documents = load_manifest_file(manifest)
            workload = descriptor_from_documents(documents, container_name)
        if descriptor is not None:
            workload = merge_descriptors(workload, load_descriptor_document(descriptor))
        if context_path is not None:
            workload = merge_descriptors(workload, load_descriptor_document(context_path))

        scans = [
            load_scan_report(path, kind)
            for kind, paths in (
                ("trivy", trivy),
                ("sarif", sarif),
                ("zap", zap),
                ("dependency-check", dependency_check),
            )
            for path in paths
        ]
    except IngestError as exc:
        raise InputError(str(exc)) from exc

    if scans:
        workload = dataclasses.replace(workload, security_scan=merge_scans(scans))

    report = engine.evaluate(workload)

    if output_format == "table" and output is None:
        _print_table(report)
    else:
        rendered = {
            "json": render_json,
            "markdown": render_markdown,
        }.get(output_format, render_text)(report)
        if output is not None:
            output.write_text(rendered if rendered.endswith("\n") else rendered + "\n", encoding="utf-8")
            console.print(f"[bold cyan]Report saved to:[/bold cyan] {output}")
        else:
            click.echo(rendered)

    ctx.exit(exit_code(report))


@main.command()
def rules() -> None:
    """List the baseline rules in evaluation order."""
    settings = _load_settings()
    registry = create_baseline_registry(settings.trusted_registries)

    table = Table(title=f"Rules (threshold {settings.compliance_threshold:.0%})")
    table.add_column("#", justify="right")
    table.add_column("Rule", style="bold", no_wrap=True)
    table.add_column("Description")
    for index, rule in enumerate(registry.rules(), start=1):
        table.add_row(str(index), rule.name, rule.description)
    console.print(table)


if __name__ == "__main__":
    main()
