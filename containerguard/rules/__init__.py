"""Rule contracts and rule packages for containerguard."""

from .base import (
    CheckResult,
    CustomPattern,
    Finding,
    Rule,
    RuleConfig,
    RuleConfigError,
    Severity,
)

__all__ = [
    "CheckResult",
    "CustomPattern",
    "Finding",
    "Rule",
    "RuleConfig",
    "RuleConfigError",
    "Severity",
]
