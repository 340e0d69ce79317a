"""Report output formats: JSON, SARIF 2.1.0, markdown and console text."""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import click
from rich.markup import escape

from containerguard import __version__
from containerguard.pipeline.ui import console, severity_tag
from containerguard.rules.base import Finding, Severity
from containerguard.rules.deployment.cis_controls import get_control
from containerguard.utils.logging import logger

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
SARIF_VERSION = "2.1.0"

SARIF_LEVELS = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFO: "note",
}


def to_json(data: dict[str, Any]) -> str:
    return json.dumps(data, indent=2)


def _sarif_rule(finding: Finding) -> dict[str, Any]:
    rule: dict[str, Any] = {
        "id": finding.rule,
        "shortDescription": {"text": finding.message},
        "defaultConfiguration": {"level": SARIF_LEVELS[finding.severity]},
        "properties": {"severity": finding.severity.value},
    }
    if finding.fix:
        rule["help"] = {"text": finding.fix}
    control = get_control(finding.cis)
    if control:
        rule["properties"]["cis"] = control.id
        rule["properties"]["cisLevel"] = control.level
        rule["fullDescription"] = {"text": f"CIS {control.id}: {control.title}"}
    return rule


def _sarif_result(finding: Finding, artifacts: dict[str, str]) -> dict[str, Any]:
    result: dict[str, Any] = {
        "ruleId": finding.rule,
        "level": SARIF_LEVELS[finding.severity],
        "message": {"text": finding.message},
    }

    if finding.service is not None:
        uri = artifacts.get("compose")
        location: dict[str, Any] = {
            "logicalLocations": [{"name": finding.service, "kind": "module"}],
        }
    else:
        uri = artifacts.get("dockerfile")
        location = {}
        if finding.line is not None:
            location["physicalLocation"] = {"region": {"startLine": finding.line}}

    if uri:
        location.setdefault("physicalLocation", {})["artifactLocation"] = {"uri": uri}
    if location:
        result["locations"] = [location]
    if finding.fix:
        result["properties"] = {"fix": finding.fix}
    return result


def to_sarif(findings: list[Finding], artifacts: dict[str, str] | None = None) -> dict[str, Any]:
    """
    Convert findings into a single-run SARIF 2.1.0 log.

    Args:
        findings: Findings in report order
        artifacts: Optional ``{"dockerfile": uri, "compose": uri}`` used for
                   result locations

    Returns:
        SARIF log as a plain dict
    """
    artifacts = artifacts or {}
    rules: dict[str, dict[str, Any]] = {}
    for finding in findings:
        rules.setdefault(finding.rule, _sarif_rule(finding))

    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "containerguard",
                        "version": __version__,
                        "rules": list(rules.values()),
                    }
                },
                "results": [_sarif_result(f, artifacts) for f in findings],
            }
        ],
    }


SOURCE_TITLES = {"dockerfile": "Dockerfile Analysis", "compose": "Compose Analysis"}

# Component scores shown under each source heading
SOURCE_COMPONENTS = {"dockerfile": ("dockerfile",), "compose": ("compose", "runtime", "hardening")}

GENERAL_GUIDANCE = (
    "Address all critical and high severity issues before deployment",
    "Use multi-stage builds to minimize image size",
    "Run containers as non-root users",
    "Drop all capabilities and add only what is needed",
    "Use read-only filesystems where possible",
    "Set resource limits on all containers",
    "Use Docker secrets for sensitive data",
)


def _markdown_finding(finding: Finding) -> list[str]:
    cis = f" [CIS {finding.cis}]" if finding.cis else ""
    if finding.line is not None:
        where = f" (line {finding.line})"
    elif finding.service is not None:
        where = f" (service `{finding.service}`)"
    else:
        where = ""
    lines = [f"- **{finding.severity.value.upper()}**{cis} `{finding.rule}`{where}: {finding.message}"]
    if finding.fix:
        lines.append(f"  - *Remediation:* {finding.fix}")
    return lines


def to_markdown(
    payload: dict[str, Any],
    summary: dict[str, int],
    sources: dict[str, list[Finding]],
    artifacts: dict[str, str] | None = None,
) -> str:
    """
    Render a report as a markdown document.

    Args:
        payload: The JSON payload of the command (score, components,
                 level1Score, passed, recommendations when present)
        summary: Severity counts
        sources: Findings keyed by input, "dockerfile" and/or "compose"
        artifacts: Optional input paths, keyed like ``sources``
    """
    artifacts = artifacts or {}
    components = payload.get("components") or {}

    content = [
        "# Container Security Report",
        "",
        f"**Generated**: {datetime.now(UTC).strftime('%Y-%m-%d %H:%M:%S UTC')}",
        "",
        "## Summary",
    ]
    if "score" in payload:
        content.append(f"- **Overall Score**: {payload['score']}/100")
    if "passed" in payload:
        verdict = "PASSED" if payload["passed"] else "FAILED"
        content.append(f"- **Level-1 Compliance**: {payload['level1Score']}/100 ({verdict})")
    for sev in ("critical", "high", "medium", "low"):
        content.append(f"- **{sev.capitalize()} Issues**: {summary.get(sev, 0)}")
    content.append("")

    for source, findings in sources.items():
        heading = SOURCE_TITLES.get(source, "Findings")
        if artifacts.get(source):
            heading += f" (`{artifacts[source]}`)"
        content.extend([f"## {heading}", ""])
        scores = [f"{name} {components[name]}/100" for name in SOURCE_COMPONENTS.get(source, ()) if name in components]
        if scores:
            content.extend([f"Score: {', '.join(scores)}", ""])
        if not findings:
            content.extend(["No issues found.", ""])
            continue
        for finding in findings:
            content.extend(_markdown_finding(finding))
        content.append("")

    content.extend(["## Recommendations", ""])
    recommendations = payload.get("recommendations") or []
    if recommendations:
        for number, rec in enumerate(recommendations, 1):
            content.append(f"{number}. **{rec['severity'].upper()}** `{rec['rule']}`: {rec['fix']}")
    else:
        content.extend(f"{number}. {text}" for number, text in enumerate(GENERAL_GUIDANCE, 1))
    content.append("")

    return "\n".join(content)


def print_findings(findings: list[Finding], summary: dict[str, int]) -> None:
    """Print a severity summary followed by one block per finding."""
    if not findings:
        console.print("No container security issues found")
        return

    console.print(f"\nFound {summary['total']} container security issues:", highlight=False)
    for sev in ("critical", "high", "medium", "low"):
        if summary.get(sev):
            console.print(f"  {severity_tag(sev)} {summary[sev]}", highlight=False)

    console.print("\nFindings:")
    for finding in findings:
        cis = f" [CIS {finding.cis}]" if finding.cis else ""
        console.print(
            f"\n{severity_tag(finding.severity.value)} {escape(finding.rule)}{escape(cis)}",
            highlight=False,
        )
        if finding.line is not None:
            console.print(f"  Line: {finding.line}", highlight=False)
        if finding.service is not None:
            console.print(f"  Service: {escape(finding.service)}", highlight=False)
        console.print(f"  {escape(finding.message)}", highlight=False)
        if finding.fix:
            console.print(f"  Fix: {escape(finding.fix)}", highlight=False)


def emit_report(
    payload: dict[str, Any],
    findings: list[Finding],
    summary: dict[str, int],
    output_format: str,
    output: Path | None = None,
    artifacts: dict[str, str] | None = None,
    sources: dict[str, list[Finding]] | None = None,
) -> None:
    """
    Render a command result in the requested format.

    Text goes to the console; json, sarif and markdown go to stdout, or to
    ``output`` when given. A text run with ``output`` also saves the JSON
    payload. ``sources`` splits findings per input for markdown headings.
    """
    if output_format == "sarif":
        rendered = to_json(to_sarif(findings, artifacts))
    elif output_format == "markdown":
        rendered = to_markdown(payload, summary, sources or {"findings": findings}, artifacts)
    else:
        rendered = to_json(payload)

    if output_format == "text":
        print_findings(findings, summary)
        if "score" in payload:
            console.print(f"\nScore: {payload['score']}/100", highlight=False)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(rendered + "\n", encoding="utf-8")
        logger.info(f"Results saved to: {output}")
    elif output_format != "text":
        click.echo(rendered)
