"""Base contracts for rule standardization."""

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from containerguard.utils.logging import logger


class Severity(Enum):
    """Standardized severity levels."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Ordering key, higher is more severe."""
        return SEVERITY_RANK[self]

    @property
    def weight(self) -> int:
        """Points deducted from a 100-point score per finding."""
        return SEVERITY_WEIGHT[self]

    @classmethod
    def parse(cls, value: "Severity | str | None", default: "Severity | None" = None) -> "Severity":
        """Coerce a string or enum member into a Severity."""
        if isinstance(value, Severity):
            return value
        if value is None or value == "":
            if default is None:
                raise ValueError("severity is required")
            return default
        try:
            return cls(str(value).lower())
        except ValueError as e:
            raise ValueError(f"Unknown severity: {value!r}") from e


SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
    Severity.INFO: 0,
}

SEVERITY_WEIGHT = {
    Severity.CRITICAL: 25,
    Severity.HIGH: 15,
    Severity.MEDIUM: 10,
    Severity.LOW: 5,
    Severity.INFO: 0,
}


class RuleConfigError(ValueError):
    """Raised when a rule configuration cannot be compiled.

    Raised at configuration time, never during a scan, so one bad custom
    pattern cannot abort an audit that is already running.
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class Finding:
    """Standardized output from all rules.

    Dockerfile findings carry a ``line``; Compose findings carry a ``service``.
    """

    rule: str
    severity: Severity
    message: str

    line: int | None = None
    service: str | None = None
    cis: str | None = None
    fix: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "rule": self.rule,
            "severity": self.severity.value,
        }
        if self.line is not None:
            result["line"] = self.line
        if self.service is not None:
            result["service"] = self.service
        if self.cis is not None:
            result["cis"] = self.cis
        result["message"] = self.message
        if self.fix:
            result["fix"] = self.fix
        return result


def summarize(findings: list[Finding]) -> dict[str, int]:
    """Count findings per severity bucket."""
    summary = {"total": len(findings), "critical": 0, "high": 0, "medium": 0, "low": 0}
    for finding in findings:
        key = finding.severity.value
        if key in summary:
            summary[key] += 1
    return summary


def calculate_score(findings: list[Finding]) -> int:
    """Weighted 0-100 score; every finding can only lower it."""
    score = 100 - sum(finding.severity.weight for finding in findings)
    return max(0, min(100, score))


@dataclass
class CheckResult:
    """Findings and score from one compliance checker."""

    findings: list[Finding]
    score: int
    summary: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "score": self.score,
            "summary": dict(self.summary),
        }


@dataclass(frozen=True)
class CustomPattern:
    """Caller-supplied regex rule evaluated against instruction arguments."""

    name: str
    pattern: re.Pattern
    message: str
    fix: str | None = None
    severity: Severity = Severity.MEDIUM

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CustomPattern":
        """Build and validate a pattern from a plain mapping."""
        if not isinstance(raw, dict):
            raise RuleConfigError(
                f"Custom pattern entries must be mappings, got {type(raw).__name__}",
                {"pattern": raw},
            )
        name = raw.get("name")
        if not name or not isinstance(name, str):
            raise RuleConfigError("Custom pattern is missing a name", {"pattern": raw})

        pattern = raw.get("pattern")
        if isinstance(pattern, str):
            try:
                pattern = re.compile(pattern)
            except re.error as e:
                raise RuleConfigError(
                    f"Custom pattern '{name}' has an invalid regex: {e}",
                    {"name": name, "pattern": raw.get("pattern")},
                ) from e
        elif not isinstance(pattern, re.Pattern):
            raise RuleConfigError(
                f"Custom pattern '{name}' needs a regex string or compiled pattern",
                {"name": name},
            )

        try:
            severity = Severity.parse(raw.get("severity"), default=Severity.MEDIUM)
        except ValueError as e:
            raise RuleConfigError(f"Custom pattern '{name}': {e}", {"name": name}) from e

        return cls(
            name=name,
            pattern=pattern,
            message=raw.get("message") or f"Custom pattern '{name}' matched",
            fix=raw.get("fix"),
            severity=severity,
        )


@dataclass(frozen=True)
class RuleConfig:
    """Per-rule switches plus custom patterns, applied after the fixed rule set."""

    rules: dict[str, str | bool] = field(default_factory=dict)
    custom_patterns: tuple[CustomPattern, ...] = ()

    def is_disabled(self, rule_id: str) -> bool:
        setting = self.rules.get(rule_id)
        return setting is False or setting == "off"

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> "RuleConfig":
        """Validate a plain config mapping (``rules`` / ``customPatterns``)."""
        raw = raw or {}
        rules = raw.get("rules") or {}
        if not isinstance(rules, dict):
            raise RuleConfigError("'rules' must map rule ids to off/warn/error")
        rules = dict(rules)
        for rule_id, setting in rules.items():
            if setting not in ("off", "warn", "error", True, False):
                raise RuleConfigError(
                    f"Rule '{rule_id}' has invalid setting {setting!r} (expected off/warn/error)",
                    {"rule": rule_id},
                )

        entries = raw.get("custom_patterns", raw.get("customPatterns")) or []
        if not isinstance(entries, (list, tuple)):
            raise RuleConfigError("'customPatterns' must be a list of pattern mappings")
        patterns = []
        for entry in entries:
            if isinstance(entry, CustomPattern):
                patterns.append(entry)
            else:
                patterns.append(CustomPattern.from_dict(entry))

        logger.debug(
            f"Rule config loaded: {len(rules)} rule settings, {len(patterns)} custom patterns"
        )
        return cls(rules=rules, custom_patterns=tuple(patterns))


POST_SCAN = "post-scan"


@dataclass(frozen=True)
class Rule:
    """One entry in an ordered rule table.

    ``applies_to`` is a set of instruction keywords, or POST_SCAN for rules
    evaluated once after every instruction has been visited.
    """

    id: str
    applies_to: frozenset[str] | str
    check: Callable[[Any], list[Finding]]

    def matches(self, keyword: str) -> bool:
        return self.applies_to != POST_SCAN and keyword in self.applies_to

    @property
    def is_post_scan(self) -> bool:
        return self.applies_to == POST_SCAN
