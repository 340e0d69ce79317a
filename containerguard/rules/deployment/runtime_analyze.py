"""Container runtime compliance checks for Compose services.

- 5.11 No PIDs limit (fork-bomb protection)
- 5.13 Host network namespace shared
- 5.14 restart: always instead of on-failure:N
"""

from typing import Any

from containerguard.rules.base import CheckResult, Finding, Severity, summarize
from containerguard.rules.deployment.compose_analyze import iter_services
from containerguard.utils.logging import logger


def _check_service(name: str, service: dict[str, Any]) -> list[Finding]:
    findings = []

    if service.get("pids_limit") is None:
        findings.append(
            Finding(
                rule="recommend-pids-limit",
                severity=Severity.LOW,
                service=name,
                cis="5.11",
                message=f"Service '{name}' has no PID limit.",
                fix="Add 'pids_limit: 100' (or a value sized for the workload).",
            )
        )

    if service.get("network_mode") == "host":
        findings.append(
            Finding(
                rule="no-host-network",
                severity=Severity.HIGH,
                service=name,
                cis="5.13",
                message=f"Service '{name}' uses host network mode. This bypasses network isolation.",
                fix="Use custom bridge networks instead of host network.",
            )
        )

    if service.get("restart") == "always":
        findings.append(
            Finding(
                rule="restart-on-failure",
                severity=Severity.LOW,
                service=name,
                cis="5.14",
                message=f"Service '{name}' restarts always; crash loops go unbounded.",
                fix="Use 'restart: on-failure:5' to cap restart attempts.",
            )
        )

    return findings


def check_runtime_compliance(compose: dict[str, Any] | None) -> CheckResult:
    """Evaluate process/runtime controls for every Compose service."""
    findings: list[Finding] = []
    for name, service in iter_services(compose):
        findings.extend(_check_service(name, service))

    score = max(0, 100 - 10 * len(findings))
    logger.debug(f"Runtime compliance: {len(findings)} findings, score {score}")
    return CheckResult(findings=findings, score=score, summary=summarize(findings))
