"""Report rendering for CI gates, logs and humans.

Formats:
- report_to_dict / render_json: machine-readable document for CI tooling
- render_text: one line per rule, in registration order
- render_markdown: security report document with a findings table

exit_code maps a report to a process exit status (non-zero when it failed).
"""

import json
from typing import Any

from workload_compliance.core.models import ComplianceReport

EXIT_PASSED = 0
EXIT_FAILED = 1


def report_to_dict(report: ComplianceReport) -> dict[str, Any]:
    """Convert a report to a JSON-compatible dictionary.

    Args:
        report: The compliance report.

    Returns:
        Dictionary with summary fields and per-rule results.
    """
    return {
        "evaluation_id": str(report.evaluation_id),
        "generated_at": report.generated_at.isoformat(),
        "passed": report.passed,
        "score": report.score,
        "total": report.total,
        "ratio": round(report.ratio, 4),
        "threshold": report.threshold,
        "evaluation_duration_ms": report.evaluation_duration_ms,
        "results": [
            {"rule": r.rule_name, "passed": r.passed, "reason": r.reason}
            for r in report.results
        ],
    }


def render_json(report: ComplianceReport, indent: int | None = 2) -> str:
    """Render a report as a JSON document."""
    return json.dumps(report_to_dict(report), indent=indent)


def render_text(report: ComplianceReport) -> str:
    """Render a plain-text summary.

    Args:
        report: The compliance report.

    Returns:
        Multi-line string: one line per rule followed by the verdict.
    """
    width = max((len(r.rule_name) for r in report.results), default=0)
    lines = [
        f"{'PASS' if r.passed else 'FAIL'}  {r.rule_name.ljust(width)}  {r.reason}"
        for r in report.results
    ]
    verdict = "PASSED" if report.passed else "FAILED"
    lines.append(
        f"Compliance {verdict}: {report.score}/{report.total} rules passed "
        f"({report.ratio:.0%}, threshold {report.threshold:.0%})"
    )
    return "\n".join(lines)


def render_markdown(report: ComplianceReport) -> str:
    """Render a Markdown compliance report.

    Args:
        report: The compliance report.

    Returns:
        Markdown document with a summary section and a findings table.
    """
    verdict = "PASSED" if report.passed else "FAILED"
    lines = [
        "# Compliance Report",
        "",
        "## Summary",
        f"- **Generated**: {report.generated_at.isoformat()}",
        f"- **Evaluation**: `{report.evaluation_id}`",
        f"- **Verdict**: {verdict}",
        f"- **Score**: {report.score}/{report.total} ({report.ratio:.0%})",
        f"- **Threshold**: {report.threshold:.0%}",
        "",
        "## Findings",
        "",
        "| Rule | Status | Reason |",
        "| --- | --- | --- |",
    ]
    for result in report.results:
        status = "PASS" if result.passed else "FAIL"
        reason = result.reason.replace("|", "\\|")
        lines.append(f"| {result.rule_name} | {status} | {reason} |")

    failed = report.failed_results
    if failed:
        lines.extend(["", "## Remediation", ""])
        lines.extend(f"- **{r.rule_name}**: {r.reason}" for r in failed)
    return "\n".join(lines) + "\n"


def exit_code(report: ComplianceReport) -> int:
    """Return the CI exit status for a report: 0 when passed, 1 otherwise."""
    return EXIT_PASSED if report.passed else EXIT_FAILED
