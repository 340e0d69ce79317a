"""Compose service hardening checks beyond the CIS section 5 controls.

Opt-in companion to compose_analyze/runtime_analyze. These findings carry no
CIS id, so they never move the Level-1 score; they count toward the report
summary and contribute a "hardening" component score.

Per service:
- dangerous-capabilities       cap_add grants SYS_ADMIN, NET_ADMIN, ...
- recommend-user / no-root-user
- recommend-seccomp            no seccomp entry in security_opt
- database-internal-network    database attached only to non-internal networks
- no-secrets-in-env            literal password/secret/api key/token values

Per file:
- use-custom-networks          every service sits on the default bridge
- recommend-docker-secrets     sensitive variable names without top-level secrets
"""

import re
from typing import Any

from containerguard.rules.base import CheckResult, Finding, RuleConfig, Severity, calculate_score, summarize
from containerguard.rules.deployment.compose_analyze import iter_services
from containerguard.utils.logging import logger

DANGEROUS_CAPABILITIES = frozenset(
    {
        "SYS_ADMIN",
        "NET_ADMIN",
        "SYS_PTRACE",
        "SYS_MODULE",
        "DAC_READ_SEARCH",
        "SYS_RAWIO",
        "SYS_BOOT",
        "SYS_TIME",
        "MKNOD",
    }
)

ROOT_USERS = frozenset({"root", "0", "0:0"})

DATABASE_IMAGE_RE = re.compile(r"postgres|mysql|mariadb|mongo|redis|elasticsearch|memcached", re.IGNORECASE)
DATABASE_NAME_RE = re.compile(r"db|database|postgres|mysql|mongo|redis", re.IGNORECASE)

# Literal values only: "${VAR}", "$VAR" and "{...}" are references
ENV_SECRET_PATTERNS = tuple(
    re.compile(rf"{key}\s*[=:]\s*[^$\s{{]\S*", re.IGNORECASE)
    for key in ("password", "secret", r"api[_-]?key", "token")
)
SENSITIVE_NAME_RE = re.compile(r"password|secret|key|token", re.IGNORECASE)


def is_database(name: str, service: dict[str, Any]) -> bool:
    """Database by image or by service name."""
    if DATABASE_IMAGE_RE.search(str(service.get("image") or "")):
        return True
    return bool(DATABASE_NAME_RE.search(name))


def _names(value: Any) -> list[str]:
    """Network or capability names from list or mapping syntax."""
    if isinstance(value, dict):
        return [str(key) for key in value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return []


def env_entries(service: dict[str, Any]) -> list[str]:
    """``environment`` as KEY=VALUE strings, whichever syntax the file uses."""
    env = service.get("environment")
    if isinstance(env, dict):
        return [f"{key}={'' if value is None else value}" for key, value in env.items()]
    if isinstance(env, (list, tuple)):
        return [str(entry) for entry in env]
    return []


def _check_service(name: str, service: dict[str, Any]) -> list[Finding]:
    findings = []

    added = [cap.upper().removeprefix("CAP_") for cap in _names(service.get("cap_add"))]
    dangerous = [cap for cap in added if cap in DANGEROUS_CAPABILITIES]
    if dangerous:
        findings.append(
            Finding(
                rule="dangerous-capabilities",
                severity=Severity.HIGH,
                service=name,
                message=f"Service '{name}' adds dangerous capabilities: {', '.join(dangerous)}",
                fix="Remove dangerous capabilities or document why they are required.",
            )
        )

    user = service.get("user")
    if user is None or str(user).strip() == "":
        findings.append(
            Finding(
                rule="recommend-user",
                severity=Severity.MEDIUM,
                service=name,
                message=f"Service '{name}' should specify a non-root user.",
                fix="Add 'user: \"1000:1000\"' or similar non-root user.",
            )
        )
    elif str(user).strip() in ROOT_USERS:
        findings.append(
            Finding(
                rule="no-root-user",
                severity=Severity.HIGH,
                service=name,
                message=f"Service '{name}' runs as root user.",
                fix="Change to a non-root user.",
            )
        )

    security_opt = _names(service.get("security_opt"))
    if not any("seccomp" in opt for opt in security_opt):
        findings.append(
            Finding(
                rule="recommend-seccomp",
                severity=Severity.LOW,
                service=name,
                message=f"Service '{name}' should use seccomp profile.",
                fix="Add 'security_opt: [seccomp:default]' or custom profile.",
            )
        )

    return findings


def _check_networks(services: list[tuple[str, dict[str, Any]]], networks: dict[str, Any]) -> list[Finding]:
    findings = []

    if not networks and not any(service.get("networks") for _, service in services):
        findings.append(
            Finding(
                rule="use-custom-networks",
                severity=Severity.MEDIUM,
                message="No custom networks defined. Services will use default bridge network.",
                fix="Define custom networks for network segmentation.",
            )
        )

    for name, service in services:
        if not is_database(name, service):
            continue
        attached = _names(service.get("networks"))
        internal = any(
            isinstance(networks.get(net), dict) and networks[net].get("internal") is True
            for net in attached
        )
        # No networks at all is covered by use-custom-networks
        if attached and not internal:
            findings.append(
                Finding(
                    rule="database-internal-network",
                    severity=Severity.MEDIUM,
                    service=name,
                    message=f"Database '{name}' should use internal network (not externally accessible).",
                    fix='Add "internal: true" to database network configuration.',
                )
            )

    return findings


def _check_secrets(services: list[tuple[str, dict[str, Any]]], has_secrets: bool) -> list[Finding]:
    findings = []
    hinted = False

    for name, service in services:
        entries = env_entries(service)
        for entry in entries:
            if any(pattern.search(entry) for pattern in ENV_SECRET_PATTERNS):
                findings.append(
                    Finding(
                        rule="no-secrets-in-env",
                        severity=Severity.CRITICAL,
                        service=name,
                        message=f"Service '{name}' has possible hardcoded secret in environment.",
                        fix="Use Docker secrets or external secret management.",
                    )
                )

        if not hinted and not has_secrets and any(SENSITIVE_NAME_RE.search(e) for e in entries):
            hinted = True
            findings.append(
                Finding(
                    rule="recommend-docker-secrets",
                    severity=Severity.LOW,
                    message="Sensitive environment variables detected. Consider using Docker secrets.",
                    fix="Define secrets in docker-compose and mount them in services.",
                )
            )

    return findings


def check_service_hardening(
    compose: dict[str, Any] | None,
    rule_config: RuleConfig | None = None,
) -> CheckResult:
    """
    Run the hardening checks over a parsed Compose mapping.

    Findings come per service first, then network layout, then environment
    secrets. Rules switched off in ``rule_config`` are dropped before
    scoring. The score uses the lint weights (25/15/10/5).
    """
    compose = compose or {}
    services = list(iter_services(compose))
    networks = compose.get("networks") if isinstance(compose.get("networks"), dict) else {}

    findings: list[Finding] = []
    for name, service in services:
        findings.extend(_check_service(name, service))
    findings.extend(_check_networks(services, networks))
    findings.extend(_check_secrets(services, bool(compose.get("secrets"))))

    if rule_config is not None:
        findings = [f for f in findings if not rule_config.is_disabled(f.rule)]

    score = calculate_score(findings)
    logger.debug(f"Service hardening: {len(findings)} findings, score {score}")
    return CheckResult(findings=findings, score=score, summary=summarize(findings))
