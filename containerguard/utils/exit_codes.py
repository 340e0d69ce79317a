"""Centralized exit codes for the containerguard CLI."""


class ExitCodes:
    """Standard exit codes for containerguard CLI commands."""

    SUCCESS = 0

    HIGH_SEVERITY = 1
    CRITICAL_SEVERITY = 2

    TASK_INCOMPLETE = 3

    AUDIT_FAILED = 4

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success - No blocking issues found",
            cls.HIGH_SEVERITY: "High severity findings detected",
            cls.CRITICAL_SEVERITY: "Critical security findings detected",
            cls.TASK_INCOMPLETE: "Task could not be completed due to missing or unreadable input",
            cls.AUDIT_FAILED: "Level-1 compliance score below the pass threshold",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")

    @classmethod
    def from_summary(cls, summary: dict[str, int]) -> int:
        """Pick the exit code for a severity summary."""
        if summary.get("critical", 0) > 0:
            return cls.CRITICAL_SEVERITY
        if summary.get("high", 0) > 0:
            return cls.HIGH_SEVERITY
        return cls.SUCCESS
