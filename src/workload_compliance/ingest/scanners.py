"""Scanner report ingestion.

Reduces the structured output of external security scanners to the
security_scan section of a WorkloadDescriptor: a status plus critical and high
finding counts. The scanners themselves are never executed here.

Supported report formats:
- trivy: Trivy JSON (container image scanning)
- sarif: SARIF 2.1.0 (SAST tools, Dependency-Check SARIF output)
- zap: OWASP ZAP JSON (DAST)
- dependency-check: OWASP Dependency-Check JSON (dependency scanning)
"""

import json
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from workload_compliance.core.models import ScanStatus, SecurityScan
from workload_compliance.errors import ScanReportError
from workload_compliance.observability import get_logger

logger = get_logger(__name__)

# CVSS v3 thresholds used by GitHub code scanning for security-severity
_CVSS_CRITICAL = 9.0
_CVSS_HIGH = 7.0

# OWASP ZAP riskcode values: 0 informational, 1 low, 2 medium, 3 high
_ZAP_HIGH_RISK = "3"


def _scan(source: str, critical: int, high: int) -> SecurityScan:
    status = ScanStatus.FAILED if critical or high else ScanStatus.PASSED
    logger.debug("Scanner report reduced", source=source, critical=critical, high=high)
    return SecurityScan(status=status, critical_count=critical, high_count=high, sources=(source,))


def _require_list(value: Any, path: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ScanReportError(f"Expected a list at '{path}', got {type(value).__name__}")
    return value


def _require_mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ScanReportError(f"Expected an object at '{path}', got {type(value).__name__}")
    return value


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------


def scan_from_trivy(report: Mapping[str, Any]) -> SecurityScan:
    """Count CRITICAL and HIGH vulnerabilities in a Trivy JSON report.

    Args:
        report: Parsed `trivy image --format json` output.

    Returns:
        SecurityScan for the report.

    Raises:
        ScanReportError: If the report structure is not recognized.
    """
    report = _require_mapping(report, "$")
    critical = high = 0
    for index, result in enumerate(_require_list(report.get("Results"), "Results")):
        result = _require_mapping(result, f"Results[{index}]")
        for vuln in _require_list(result.get("Vulnerabilities"), f"Results[{index}].Vulnerabilities"):
            severity = str(_require_mapping(vuln, "Vulnerability").get("Severity", "")).upper()
            if severity == "CRITICAL":
                critical += 1
            elif severity == "HIGH":
                high += 1
    return _scan("trivy", critical, high)


def scan_from_sarif(report: Mapping[str, Any]) -> SecurityScan:
    """Count critical and high results in a SARIF log.

    A result's severity comes from the ``security-severity`` property (CVSS
    score) on the result or on its rule. Results without one count as high
    when their level is "error".

    Args:
        report: Parsed SARIF 2.1.0 document.

    Returns:
        SecurityScan for the report.

    Raises:
        ScanReportError: If the document has no runs list.
    """
    report = _require_mapping(report, "$")
    if "runs" not in report:
        raise ScanReportError("SARIF document has no 'runs'")

    critical = high = 0
    for run_index, run in enumerate(_require_list(report["runs"], "runs")):
        run = _require_mapping(run, f"runs[{run_index}]")
        rules = _sarif_rules(run)
        for result in _require_list(run.get("results"), f"runs[{run_index}].results"):
            result = _require_mapping(result, "result")
            severity = _sarif_security_severity(result, rules)
            if severity is not None:
                if severity >= _CVSS_CRITICAL:
                    critical += 1
                elif severity >= _CVSS_HIGH:
                    high += 1
            elif result.get("level") == "error":
                high += 1
    return _scan("sarif", critical, high)


def _sarif_rules(run: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    tool = run.get("tool")
    driver = tool.get("driver") if isinstance(tool, Mapping) else None
    rules = driver.get("rules") if isinstance(driver, Mapping) else None
    if not isinstance(rules, list):
        return []
    return [r for r in rules if isinstance(r, Mapping)]


def _sarif_security_severity(
    result: Mapping[str, Any],
    rules: list[Mapping[str, Any]],
) -> float | None:
    candidates = [result.get("properties")]

    rule_index = result.get("ruleIndex")
    if isinstance(rule_index, int) and 0 <= rule_index < len(rules):
        candidates.append(rules[rule_index].get("properties"))
    else:
        rule_id = result.get("ruleId")
        rule = next((r for r in rules if rule_id is not None and r.get("id") == rule_id), None)
        if rule is not None:
            candidates.append(rule.get("properties"))

    for properties in candidates:
        if isinstance(properties, Mapping) and "security-severity" in properties:
            try:
                return float(properties["security-severity"])
            except (TypeError, ValueError):
                continue
    return None


def scan_from_zap(report: Mapping[str, Any]) -> SecurityScan:
    """Count high-risk alerts in an OWASP ZAP JSON report.

    ZAP has no critical level, so critical_count is always zero.

    Args:
        report: Parsed ZAP JSON report (``-J`` output).

    Returns:
        SecurityScan for the report.

    Raises:
        ScanReportError: If the report has no site list.
    """
    report = _require_mapping(report, "$")
    if "site" not in report:
        raise ScanReportError("ZAP report has no 'site'")

    high = 0
    sites = report["site"]
    if isinstance(sites, Mapping):
        sites = [sites]
    for site_index, site in enumerate(_require_list(sites, "site")):
        site = _require_mapping(site, f"site[{site_index}]")
        for alert in _require_list(site.get("alerts"), f"site[{site_index}].alerts"):
            if str(_require_mapping(alert, "alert").get("riskcode")) == _ZAP_HIGH_RISK:
                high += 1
    return _scan("zap", 0, high)


def scan_from_dependency_check(report: Mapping[str, Any]) -> SecurityScan:
    """Count CRITICAL and HIGH vulnerabilities in a Dependency-Check JSON report.

    Args:
        report: Parsed ``dependency-check-report.json``.

    Returns:
        SecurityScan for the report.

    Raises:
        ScanReportError: If the report has no dependencies list.
    """
    report = _require_mapping(report, "$")
    if "dependencies" not in report:
        raise ScanReportError("Dependency-Check report has no 'dependencies'")

    critical = high = 0
    for index, dependency in enumerate(_require_list(report["dependencies"], "dependencies")):
        dependency = _require_mapping(dependency, f"dependencies[{index}]")
        for vuln in _require_list(dependency.get("vulnerabilities"), f"dependencies[{index}].vulnerabilities"):
            severity = str(_require_mapping(vuln, "vulnerability").get("severity", "")).upper()
            if severity == "CRITICAL":
                critical += 1
            elif severity == "HIGH":
                high += 1
    return _scan("dependency-check", critical, high)


SCAN_PARSERS: dict[str, Callable[[Mapping[str, Any]], SecurityScan]] = {
    "trivy": scan_from_trivy,
    "sarif": scan_from_sarif,
    "zap": scan_from_zap,
    "dependency-check": scan_from_dependency_check,
}


# ---------------------------------------------------------------------------
# Aggregation and loading
# ---------------------------------------------------------------------------


def merge_scans(scans: Iterable[SecurityScan]) -> SecurityScan:
    """Combine several scan results into one.

    Counts and sources are summed. The status is FAILED if any scan failed or
    any critical/high finding exists, UNKNOWN if any scan is unknown or there
    are no scans, and PASSED otherwise.

    Args:
        scans: Individual scan results.

    Returns:
        The merged SecurityScan.
    """
    scans = list(scans)
    if not scans:
        return SecurityScan(status=ScanStatus.UNKNOWN)

    critical = sum(s.critical_count or 0 for s in scans)
    high = sum(s.high_count or 0 for s in scans)
    sources = tuple(source for s in scans for source in s.sources)
    statuses = {s.status for s in scans}

    if ScanStatus.FAILED in statuses or critical or high:
        status = ScanStatus.FAILED
    elif ScanStatus.UNKNOWN in statuses:
        status = ScanStatus.UNKNOWN
    else:
        status = ScanStatus.PASSED

    # A count is only reported if every scan reported it
    critical_count = critical if all(s.critical_count is not None for s in scans) else None
    high_count = high if all(s.high_count is not None for s in scans) else None
    return SecurityScan(status=status, critical_count=critical_count, high_count=high_count, sources=sources)


def load_scan_report(path: Path | str, kind: str) -> SecurityScan:
    """Read a scanner report from disk and reduce it.

    Args:
        path: Path to the JSON report.
        kind: One of trivy, sarif, zap, dependency-check.

    Returns:
        SecurityScan whose sources name the report file.

    Raises:
        ScanReportError: If the kind is unknown or the file is unreadable or malformed.
    """
    parser = SCAN_PARSERS.get(kind)
    if parser is None:
        raise ScanReportError(f"Unknown scanner report kind '{kind}'. Supported: {sorted(SCAN_PARSERS)}")

    path = Path(path)
    try:
        report = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ScanReportError(f"Cannot read {kind} report {path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ScanReportError(f"{kind} report {path} is not valid UTF-8: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ScanReportError(f"Invalid JSON in {kind} report {path}: {exc}") from exc

    scan = parser(report)
    logger.info(
        "Scanner report loaded",
        kind=kind,
        path=str(path),
        status=scan.status.value,
        critical=scan.critical_count,
        high=scan.high_count,
    )
    return SecurityScan(
        status=scan.status,
        critical_count=scan.critical_count,
        high_count=scan.high_count,
        sources=(f"{kind}:{path.name}",),
    )
