"""Suggested fixes for Dockerfiles and Compose files.

Nothing here edits files on disk. Each suggestion carries the original text,
the patched text and a list of the changes applied, so callers can show a
diff or write the result wherever they choose.

Dockerfile (driven by the lint findings):
- no-root-user           root USER replaced, or a USER line added before CMD/ENTRYPOINT
- recommend-healthcheck  HEALTHCHECK added before CMD/ENTRYPOINT
- no-latest-tag          reminder comment above the FROM line (no version is guessed)

Compose (per service):
- cap_drop [ALL], no-new-privileges, read_only (databases exempt),
  a memory limit, a PIDs limit, and restart on-failure:5 instead of always
"""

import copy
from dataclasses import dataclass, field
from typing import Any

import yaml

from containerguard.rules.base import RuleConfig
from containerguard.rules.deployment.compose_analyze import (
    DATABASE_SERVICE_RE,
    as_list,
    check_compose_compliance,
    has_memory_limit,
    iter_services,
)
from containerguard.rules.deployment.docker_analyze import DockerfileLinter
from containerguard.rules.deployment.runtime_analyze import check_runtime_compliance
from containerguard.utils.logging import logger

NON_ROOT_USER = "10001:10001"
HEALTHCHECK_LINE = "HEALTHCHECK --interval=30s --timeout=10s CMD curl -f http://localhost/ || exit 1"
DEFAULT_MEMORY_LIMIT = "512M"
DEFAULT_PIDS_LIMIT = 100
DEFAULT_RESTART = "on-failure:5"


@dataclass
class FixSuggestion:
    """Original and patched text for one input file."""

    original: str
    suggested: str
    changes: list[str] = field(default_factory=list)
    findings: int = 0
    remaining: int = 0

    @property
    def changed(self) -> bool:
        return self.original != self.suggested

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "suggested": self.suggested,
            "changes": list(self.changes),
            "findings": self.findings,
            "remaining": self.remaining,
        }


def _final_stage_line(parsed) -> int:
    return parsed.stages[-1].line if parsed.stages else 0


def _launch_index(parsed) -> int | None:
    """0-based line of the first CMD/ENTRYPOINT in the final stage."""
    start = _final_stage_line(parsed)
    for instruction in parsed.instructions:
        if instruction.line >= start and instruction.keyword in ("CMD", "ENTRYPOINT"):
            return instruction.line - 1
    return None


def suggest_dockerfile_fixes(content: str, linter: DockerfileLinter | None = None) -> FixSuggestion:
    """Patch the Dockerfile findings that have a mechanical fix."""
    linter = linter or DockerfileLinter()
    result = linter.lint(content)
    rules = {finding.rule for finding in result.findings}
    lines = content.split("\n")

    insert_before: dict[int, list[str]] = {}
    replace: dict[int, str] = {}
    changes: list[str] = []

    launch = _launch_index(result.parsed)
    if launch is None:
        # Append after the last non-blank line
        launch = len(lines)
        while launch > 0 and not lines[launch - 1].strip():
            launch -= 1

    for finding in result.findings:
        if finding.rule == "no-latest-tag" and finding.line is not None:
            insert_before.setdefault(finding.line - 1, []).append(
                "# Pin an explicit version tag here instead of latest"
            )
            changes.append(f"Line {finding.line}: flagged unpinned base image")

    if "recommend-healthcheck" in rules:
        insert_before.setdefault(launch, []).extend(["", "# Health check", HEALTHCHECK_LINE])
        changes.append("Added HEALTHCHECK")

    if "no-root-user" in rules:
        users = [i for i in result.parsed.instructions if i.keyword == "USER"]
        # A root USER in a build stage is left alone; the final stage gets its own
        if users and users[-1].line >= _final_stage_line(result.parsed):
            last = users[-1]
            replace[last.line - 1] = f"USER {NON_ROOT_USER}"
            changes.append(f"Line {last.line}: replaced root USER with {NON_ROOT_USER}")
        else:
            insert_before.setdefault(launch, []).extend(["", "# Run as non-root user", f"USER {NON_ROOT_USER}"])
            changes.append(f"Added USER {NON_ROOT_USER}")

    patched: list[str] = []
    for index, line in enumerate(lines):
        patched.extend(insert_before.pop(index, []))
        patched.append(replace.get(index, line))
    patched.extend(insert_before.pop(len(lines), []))

    suggested = "\n".join(patched)
    remaining = len(linter.lint(suggested).findings) if changes else len(result.findings)
    logger.debug(f"Dockerfile fixes: {len(changes)} changes, {len(result.findings)} -> {remaining} findings")
    return FixSuggestion(
        original=content,
        suggested=suggested,
        changes=changes,
        findings=len(result.findings),
        remaining=remaining,
    )


def _harden_service(name: str, service: dict[str, Any]) -> list[str]:
    changes = []

    if "ALL" not in as_list(service.get("cap_drop")):
        service["cap_drop"] = ["ALL"]
        changes.append(f"{name}: cap_drop [ALL]")

    security_opt = as_list(service.get("security_opt"))
    if not any("no-new-privileges" in str(opt) for opt in security_opt):
        service["security_opt"] = security_opt + ["no-new-privileges:true"]
        changes.append(f"{name}: security_opt no-new-privileges:true")

    if "read_only" not in service and not DATABASE_SERVICE_RE.search(name):
        service["read_only"] = True
        changes.append(f"{name}: read_only true")

    if not has_memory_limit(service):
        node = service
        for key in ("deploy", "resources", "limits"):
            if not isinstance(node.get(key), dict):
                node[key] = {}
            node = node[key]
        node["memory"] = DEFAULT_MEMORY_LIMIT
        changes.append(f"{name}: memory limit {DEFAULT_MEMORY_LIMIT}")

    if service.get("pids_limit") is None:
        service["pids_limit"] = DEFAULT_PIDS_LIMIT
        changes.append(f"{name}: pids_limit {DEFAULT_PIDS_LIMIT}")

    if service.get("restart") == "always":
        service["restart"] = DEFAULT_RESTART
        changes.append(f"{name}: restart {DEFAULT_RESTART}")

    return changes


def _compose_findings(compose: dict[str, Any]) -> int:
    return len(check_compose_compliance(compose).findings) + len(check_runtime_compliance(compose).findings)


def dump_compose(compose: dict[str, Any]) -> str:
    return yaml.safe_dump(compose, sort_keys=False, default_flow_style=False)


def suggest_compose_fixes(compose: dict[str, Any]) -> FixSuggestion:
    """
    Apply hardened defaults to every service of a parsed Compose mapping.

    Explicit choices are respected: ``read_only: false`` stays false and an
    existing memory limit is not touched. Both texts are re-serialised with
    PyYAML so a diff between them shows only the applied defaults.
    """
    suggested = copy.deepcopy(compose)
    changes: list[str] = []
    for name, service in iter_services(suggested):
        changes.extend(_harden_service(name, service))

    findings = _compose_findings(compose)
    remaining = _compose_findings(suggested)
    logger.debug(f"Compose fixes: {len(changes)} changes, {findings} -> {remaining} findings")
    return FixSuggestion(
        original=dump_compose(compose),
        suggested=dump_compose(suggested),
        changes=changes,
        findings=findings,
        remaining=remaining,
    )


def suggest_fixes(
    dockerfile: str | None = None,
    compose: dict[str, Any] | None = None,
    rule_config: RuleConfig | dict | None = None,
) -> dict[str, FixSuggestion]:
    """Suggestions keyed "dockerfile" and/or "compose" for the inputs given."""
    suggestions: dict[str, FixSuggestion] = {}
    if dockerfile is not None:
        suggestions["dockerfile"] = suggest_dockerfile_fixes(dockerfile, DockerfileLinter(rule_config))
    if compose is not None:
        suggestions["compose"] = suggest_compose_fixes(compose)
    return suggestions
