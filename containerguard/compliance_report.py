"""Compliance report aggregation.

Merges findings from the Dockerfile linter and the Compose/runtime checkers,
groups them by CIS section, and computes the Level-1 compliance score used
as the audit pass/fail gate.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from containerguard.rules.base import Finding, RuleConfig, Severity, summarize
from containerguard.rules.deployment.cis_controls import (
    LEVEL1_CONTROL_IDS,
    is_level1,
    section_of,
)
from containerguard.rules.deployment.compose_analyze import check_compose_compliance
from containerguard.rules.deployment.docker_analyze import DockerfileLinter
from containerguard.rules.deployment.runtime_analyze import check_runtime_compliance
from containerguard.rules.deployment.service_hardening import check_service_hardening
from containerguard.utils.constants import DEFAULT_PASS_THRESHOLD
from containerguard.utils.logging import logger


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ComplianceReport:
    findings: list[Finding]
    by_section: dict[str, list[Finding]]
    summary: dict[str, int]
    score: int
    level1_score: int

    components: dict[str, int] = field(default_factory=dict)
    recommendations: list[dict[str, Any]] = field(default_factory=list)
    passed: bool | None = None
    # Findings per input ("dockerfile", "compose"); not part of to_dict()
    by_source: dict[str, list[Finding]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serialisable view; finding order is preserved."""
        result: dict[str, Any] = {
            "findings": [f.to_dict() for f in self.findings],
            "bySection": {
                section: [f.to_dict() for f in findings]
                for section, findings in self.by_section.items()
            },
            "summary": dict(self.summary),
            "score": self.score,
            "level1Score": self.level1_score,
            "components": dict(self.components),
            "recommendations": list(self.recommendations),
        }
        if self.passed is not None:
            result["passed"] = self.passed
        return result


def group_by_section(findings: Iterable[Finding]) -> dict[str, list[Finding]]:
    """Bucket findings by CIS section; findings without a CIS id are skipped."""
    sections: dict[str, list[Finding]] = {}
    for finding in findings:
        if not finding.cis:
            continue
        sections.setdefault(section_of(finding.cis), []).append(finding)
    return sections


def level1_score(findings: Iterable[Finding]) -> int:
    """Share of level-1 controls not failed, as a 0-100 integer.

    Failures count findings, not distinct controls, so several failing
    services can drive the score to the floor.
    """
    total = len(LEVEL1_CONTROL_IDS)
    failures = sum(1 for f in findings if is_level1(f.cis))
    score = _round_half_up(((total - failures) / total) * 100)
    return max(0, min(100, score))


def build_recommendations(findings: Iterable[Finding]) -> list[dict[str, Any]]:
    """One recommendation per rule that carries a fix, most severe first."""
    recommendations = []
    seen: set[str] = set()
    for finding in findings:
        if finding.rule in seen or not finding.fix:
            continue
        seen.add(finding.rule)
        recommendations.append(
            {
                "rule": finding.rule,
                "severity": finding.severity.value,
                "message": finding.message,
                "fix": finding.fix,
            }
        )

    return sorted(recommendations, key=lambda rec: -Severity(rec["severity"]).rank)


class ComplianceReportAggregator:
    """Runs every checker whose input was supplied and merges the results.

    With ``service_hardening`` set, Compose input also goes through the
    hardening checks (component "hardening"). Those findings carry no CIS
    id, so the Level-1 gate is the same either way.
    """

    def __init__(
        self,
        pass_threshold: int = DEFAULT_PASS_THRESHOLD,
        rule_config: RuleConfig | dict | None = None,
        service_hardening: bool = False,
    ):
        self.pass_threshold = pass_threshold
        self.linter = DockerfileLinter(rule_config)
        self.service_hardening = service_hardening

    def build_report(
        self,
        dockerfile: str | None = None,
        compose: dict[str, Any] | None = None,
    ) -> ComplianceReport:
        """
        Build a report from whichever inputs are present.

        Args:
            dockerfile: Dockerfile text, or None to skip the linter
            compose: Parsed Compose mapping, or None to skip both Compose checkers

        Returns:
            ComplianceReport with findings in linter, compose, runtime
            (then hardening) order
        """
        findings: list[Finding] = []
        components: dict[str, int] = {}
        by_source: dict[str, list[Finding]] = {}

        if dockerfile is not None:
            lint = self.linter.lint(dockerfile)
            findings.extend(lint.findings)
            by_source["dockerfile"] = list(lint.findings)
            components["dockerfile"] = lint.score

        if compose is not None:
            compose_result = check_compose_compliance(compose)
            runtime_result = check_runtime_compliance(compose)
            compose_findings = compose_result.findings + runtime_result.findings
            components["compose"] = compose_result.score
            components["runtime"] = runtime_result.score

            if self.service_hardening:
                hardening = check_service_hardening(compose, self.linter.config)
                compose_findings += hardening.findings
                components["hardening"] = hardening.score

            findings.extend(compose_findings)
            by_source["compose"] = compose_findings

        if components:
            score = _round_half_up(sum(components.values()) / len(components))
        else:
            score = 100

        report = ComplianceReport(
            findings=findings,
            by_section=group_by_section(findings),
            summary=summarize(findings),
            score=score,
            level1_score=level1_score(findings),
            components=components,
            recommendations=build_recommendations(findings),
            by_source=by_source,
        )
        logger.debug(
            f"Compliance report: {len(findings)} findings, score {report.score}, "
            f"level-1 {report.level1_score}"
        )
        return report

    def audit(
        self,
        dockerfile: str | None = None,
        compose: dict[str, Any] | None = None,
        pass_threshold: int | None = None,
    ) -> ComplianceReport:
        """Report scored by the Level-1 gate, with a pass/fail decision."""
        threshold = self.pass_threshold if pass_threshold is None else pass_threshold
        report = self.build_report(dockerfile=dockerfile, compose=compose)
        return replace(
            report,
            score=report.level1_score,
            passed=report.level1_score >= threshold,
        )


def audit(
    dockerfile: str | None = None,
    compose: dict[str, Any] | None = None,
    pass_threshold: int = DEFAULT_PASS_THRESHOLD,
    rule_config: RuleConfig | dict | None = None,
    service_hardening: bool = False,
) -> ComplianceReport:
    """One-shot audit with a fresh aggregator."""
    aggregator = ComplianceReportAggregator(
        pass_threshold=pass_threshold,
        rule_config=rule_config,
        service_hardening=service_hardening,
    )
    return aggregator.audit(dockerfile=dockerfile, compose=compose)
