"""Tests for the command-line interface."""

import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner

from workload_compliance.cli import main


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def manifest_file(
    tmp_path: Path,
    deployment_manifest: dict[str, Any],
    network_policy_manifest: dict[str, Any],
) -> Path:
    """Write the Deployment and its NetworkPolicy as a multi-document YAML file."""
    path = tmp_path / "deploy.yaml"
    path.write_text(yaml.safe_dump_all([deployment_manifest, network_policy_manifest]), encoding="utf-8")
    return path


@pytest.fixture()
def context_file(tmp_path: Path) -> Path:
    """Write the cluster-level sections a manifest cannot express."""
    path = tmp_path / "cluster.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "audit": {"enabled": True, "policy_configured": True},
                "storage": {"encryption_at_rest": True},
                "network": {"tls_in_transit": True},
                "security_scan": {"status": "passed", "critical_count": 0, "high_count": 0},
            }
        ),
        encoding="utf-8",
    )
    return path


def _write_json(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Test 1: evaluate
# ---------------------------------------------------------------------------


def test_compliant_manifest_exits_zero(
    runner: CliRunner,
    manifest_file: Path,
    context_file: Path,
    tmp_path: Path,
) -> None:
    output = tmp_path / "report.json"
    result = runner.invoke(
        main,
        ["evaluate", "--manifest", str(manifest_file), "--context", str(context_file), "--format", "json", "--output", str(output)],
    )

    assert result.exit_code == 0, result.output
    report = json.loads(output.read_text(encoding="utf-8"))
    assert report["score"] == 10
    assert report["passed"] is True


def test_failing_workload_exits_one(runner: CliRunner, manifest_file: Path) -> None:
    """Without cluster context three rules fail: 7/10 is below the threshold."""
    result = runner.invoke(main, ["evaluate", "--manifest", str(manifest_file), "--format", "text"])

    assert result.exit_code == 1
    assert "Compliance FAILED: 7/10 rules passed" in result.output
    assert "audit configuration not provided" in result.output


def test_sidecar_container_is_selectable(runner: CliRunner, manifest_file: Path, context_file: Path) -> None:
    result = runner.invoke(
        main,
        [
            "evaluate",
            "--manifest",
            str(manifest_file),
            "--context",
            str(context_file),
            "--container",
            "sidecar",
            "--format",
            "text",
        ],
    )

    assert result.exit_code == 1
    assert "environment variable 'LOG_LEVEL' has a hardcoded value" in result.output


def test_scanner_reports_replace_scan_section(
    runner: CliRunner,
    manifest_file: Path,
    context_file: Path,
    tmp_path: Path,
) -> None:
    """A Trivy report with a critical finding fails vulnerability_scanning but still passes overall."""
    trivy = _write_json(
        tmp_path / "trivy.json",
        {"Results": [{"Target": "api", "Vulnerabilities": [{"Severity": "CRITICAL"}]}]},
    )
    sarif = _write_json(tmp_path / "semgrep.sarif", {"version": "2.1.0", "runs": [{"results": []}]})

    result = runner.invoke(
        main,
        [
            "evaluate",
            "--manifest",
            str(manifest_file),
            "--context",
            str(context_file),
            "--trivy",
            str(trivy),
            "--sarif",
            str(sarif),
            "--format",
            "text",
        ],
    )

    assert result.exit_code == 0
    assert "1 critical findings" in result.output
    assert "Compliance PASSED: 9/10" in result.output


def test_descriptor_document_with_threshold_override(
    runner: CliRunner,
    tmp_path: Path,
    trusted_image: str,
) -> None:
    descriptor = _write_json(
        tmp_path / "descriptor.json",
        {"container": {"image": trusted_image}},
    )
    lenient = runner.invoke(main, ["evaluate", "--descriptor", str(descriptor), "--threshold", "0.1", "--format", "text"])
    strict = runner.invoke(main, ["evaluate", "--descriptor", str(descriptor), "--format", "text"])

    assert lenient.exit_code == 0
    assert "Compliance PASSED: 2/10" in lenient.output
    assert strict.exit_code == 1


def test_markdown_report_written_to_file(runner: CliRunner, manifest_file: Path, tmp_path: Path) -> None:
    output = tmp_path / "security-report.md"
    result = runner.invoke(
        main,
        ["evaluate", "--manifest", str(manifest_file), "--format", "markdown", "--output", str(output)],
    )

    assert result.exit_code == 1
    assert "Report saved to" in result.output
    markdown = output.read_text(encoding="utf-8")
    assert markdown.startswith("# Compliance Report")
    assert "## Remediation" in markdown


def test_table_output(runner: CliRunner, manifest_file: Path, context_file: Path) -> None:
    result = runner.invoke(main, ["evaluate", "--manifest", str(manifest_file), "--context", str(context_file)])

    assert result.exit_code == 0
    assert "container_security" in result.output
    assert "Compliance PASSED" in result.output


def test_threshold_from_environment(
    runner: CliRunner,
    manifest_file: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("WORKLOAD_COMPLIANCE_COMPLIANCE_THRESHOLD", "0.6")
    result = runner.invoke(main, ["evaluate", "--manifest", str(manifest_file), "--format", "text"])

    assert result.exit_code == 0
    assert "threshold 60%" in result.output


# ---------------------------------------------------------------------------
# Test 2: input errors
# ---------------------------------------------------------------------------


def test_missing_input_is_usage_error(runner: CliRunner) -> None:
    result = runner.invoke(main, ["evaluate"])
    assert result.exit_code == 2
    assert "--descriptor" in result.output


def test_invalid_threshold_exits_two(runner: CliRunner, manifest_file: Path) -> None:
    result = runner.invoke(main, ["evaluate", "--manifest", str(manifest_file), "--threshold", "1.5"])
    assert result.exit_code == 2
    assert "threshold" in result.output


def test_malformed_scan_report_exits_two(runner: CliRunner, manifest_file: Path, tmp_path: Path) -> None:
    zap = tmp_path / "zap.json"
    zap.write_text("not json", encoding="utf-8")
    result = runner.invoke(main, ["evaluate", "--manifest", str(manifest_file), "--zap", str(zap)])
    assert result.exit_code == 2
    assert "Invalid JSON" in result.output


def test_invalid_descriptor_exits_two(runner: CliRunner, tmp_path: Path) -> None:
    descriptor = _write_json(tmp_path / "bad.json", {"container": {"imagee": "nginx"}})
    result = runner.invoke(main, ["evaluate", "--descriptor", str(descriptor)])
    assert result.exit_code == 2
    assert "Invalid descriptor" in result.output


@pytest.mark.parametrize("option", ["--descriptor", "--manifest", "--context"])
def test_non_utf8_document_exits_two(
    runner: CliRunner,
    manifest_file: Path,
    tmp_path: Path,
    option: str,
) -> None:
    """Undecodable descriptor, manifest or context files are input errors, not failed gates."""
    path = tmp_path / "latin1.yaml"
    path.write_bytes(b"name: caf\xe9\xff\n")
    args = ["evaluate", option, str(path)]
    if option == "--context":
        args = [*args, "--manifest", str(manifest_file)]

    result = runner.invoke(main, args)

    assert result.exit_code == 2
    assert "not valid UTF-8" in result.output


@pytest.mark.parametrize("option", ["--trivy", "--sarif", "--zap", "--dependency-check"])
def test_non_utf8_scan_report_exits_two(
    runner: CliRunner,
    manifest_file: Path,
    tmp_path: Path,
    option: str,
) -> None:
    report = tmp_path / "report.json"
    report.write_bytes(b"\xff\xfe{}")
    result = runner.invoke(main, ["evaluate", "--manifest", str(manifest_file), option, str(report)])

    assert result.exit_code == 2
    assert "not valid UTF-8" in result.output


@pytest.mark.parametrize(
    ("variable", "value"),
    [
        ("WORKLOAD_COMPLIANCE_COMPLIANCE_THRESHOLD", "1.5"),
        ("WORKLOAD_COMPLIANCE_TRUSTED_REGISTRIES", "not-a-json-list"),
    ],
)
@pytest.mark.parametrize("command", ["evaluate", "rules"])
def test_invalid_environment_configuration_exits_two(
    runner: CliRunner,
    manifest_file: Path,
    monkeypatch: pytest.MonkeyPatch,
    variable: str,
    value: str,
    command: str,
) -> None:
    """Bad settings from the environment are configuration errors (exit 2), not compliance failures."""
    monkeypatch.setenv(variable, value)
    args = ["evaluate", "--manifest", str(manifest_file)] if command == "evaluate" else ["rules"]

    result = runner.invoke(main, args)

    assert result.exit_code == 2
    assert "Invalid configuration" in result.output


def test_invalid_log_level_is_usage_error(runner: CliRunner) -> None:
    result = runner.invoke(main, ["--log-level", "LOUD", "rules"])
    assert result.exit_code == 2


def test_unknown_container_exits_two(runner: CliRunner, manifest_file: Path) -> None:
    result = runner.invoke(main, ["evaluate", "--manifest", str(manifest_file), "--container", "worker"])
    assert result.exit_code == 2
    assert "worker" in result.output


# ---------------------------------------------------------------------------
# Test 3: rules
# ---------------------------------------------------------------------------


def test_rules_lists_baseline(runner: CliRunner) -> None:
    result = runner.invoke(main, ["rules"])
    assert result.exit_code == 0
    for name in ("container_security", "image_security", "vulnerability_scanning"):
        assert name in result.output
