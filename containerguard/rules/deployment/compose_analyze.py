"""Docker Compose CIS Compliance Checker.

Evaluates CIS Docker Benchmark section 5 controls against an already-parsed
Compose mapping (``{"services": {name: service}}``):
- 5.4  Privileged containers
- 5.3  Capabilities not dropped (cap_drop: [ALL])
- 5.10 No memory limit
- 5.12 Writable root filesystem (database services exempt)
- 5.25 Privilege escalation not blocked (no-new-privileges)

The checker never parses YAML; see containerguard.parsers.compose_parser.
"""

import re
from collections.abc import Iterator
from typing import Any

from containerguard.rules.base import CheckResult, Finding, Severity, summarize
from containerguard.utils.logging import logger

# Stateful stores need a writable root filesystem
DATABASE_SERVICE_RE = re.compile(r"db|postgres|mysql|mongo|redis", re.IGNORECASE)


def iter_services(compose: dict[str, Any] | None) -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield (name, service) for every well-formed service, in file order."""
    services = (compose or {}).get("services") or {}
    if not isinstance(services, dict):
        return
    for name, service in services.items():
        if isinstance(service, dict):
            yield str(name), service


def as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def has_memory_limit(service: dict[str, Any]) -> bool:
    limits: Any = service.get("deploy")
    for key in ("resources", "limits"):
        limits = limits.get(key) if isinstance(limits, dict) else None
    if isinstance(limits, dict) and limits.get("memory"):
        return True
    return bool(service.get("mem_limit"))


def _check_service(name: str, service: dict[str, Any]) -> list[Finding]:
    findings = []

    if service.get("privileged") is True:
        findings.append(
            Finding(
                rule="no-privileged",
                severity=Severity.CRITICAL,
                service=name,
                cis="5.4",
                message=f"Service '{name}' uses privileged mode. This grants full root access.",
                fix="Remove privileged: true. Use specific capabilities instead.",
            )
        )

    if "ALL" not in as_list(service.get("cap_drop")):
        findings.append(
            Finding(
                rule="require-cap-drop-all",
                severity=Severity.HIGH,
                service=name,
                cis="5.3",
                message=f"Service '{name}' should drop all capabilities and add only required ones.",
                fix="Add 'cap_drop: [ALL]' to the service.",
            )
        )

    if not has_memory_limit(service):
        findings.append(
            Finding(
                rule="recommend-memory-limit",
                severity=Severity.MEDIUM,
                service=name,
                cis="5.10",
                message=f"Service '{name}' has no memory limit.",
                fix="Add deploy.resources.limits.memory or mem_limit to prevent resource exhaustion.",
            )
        )

    if service.get("read_only") is not True and not DATABASE_SERVICE_RE.search(name):
        findings.append(
            Finding(
                rule="recommend-read-only",
                severity=Severity.MEDIUM,
                service=name,
                cis="5.12",
                message=f"Service '{name}' should use read-only root filesystem.",
                fix="Add 'read_only: true' and mount writable volumes for needed paths.",
            )
        )

    security_opt = as_list(service.get("security_opt"))
    if not any("no-new-privileges" in str(opt) for opt in security_opt):
        findings.append(
            Finding(
                rule="recommend-no-new-privileges",
                severity=Severity.MEDIUM,
                service=name,
                cis="5.25",
                message=f"Service '{name}' should prevent privilege escalation.",
                fix="Add 'security_opt: [no-new-privileges:true]'.",
            )
        )

    return findings


def compose_score(findings: list[Finding]) -> int:
    """Only critical and high findings move the Compose score."""
    critical = sum(1 for f in findings if f.severity is Severity.CRITICAL)
    high = sum(1 for f in findings if f.severity is Severity.HIGH)
    return max(0, 100 - 30 * critical - 15 * high)


def check_compose_compliance(compose: dict[str, Any] | None) -> CheckResult:
    """Evaluate CIS container controls for every Compose service."""
    findings: list[Finding] = []
    for name, service in iter_services(compose):
        findings.extend(_check_service(name, service))

    score = compose_score(findings)
    logger.debug(f"Compose compliance: {len(findings)} findings, score {score}")
    return CheckResult(findings=findings, score=score, summary=summarize(findings))
