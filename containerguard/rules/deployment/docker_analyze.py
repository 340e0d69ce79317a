"""Dockerfile Security Analyzer.

Detects security misconfigurations in Dockerfiles (CIS Docker Benchmark
section 4, OWASP Docker Security):
- Unpinned / latest base image tags
- Non-minimal final base image
- Hardcoded secrets in ENV/ARG and RUN
- Sensitive files copied into the image (.env, keys, credentials, .git)
- ADD with remote URLs
- Root user execution (missing USER or USER root/0)
- Missing HEALTHCHECK
- Build tooling without a multi-stage build

Detection is heuristic: RUN arguments are matched with regular expressions,
never interpreted as shell. The pattern catalogues below are a behavioural
contract; false positives and negatives are expected.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from containerguard.parsers.dockerfile_parser import (
    Instruction,
    ParsedDockerfile,
    parse_dockerfile,
)
from containerguard.rules.base import (
    POST_SCAN,
    Finding,
    Rule,
    RuleConfig,
    Severity,
    calculate_score,
    summarize,
)
from containerguard.utils.logging import logger

SENSITIVE_FILES = (
    ".env",
    ".env.*",
    "*.pem",
    "*.key",
    "id_rsa",
    "id_dsa",
    "id_ecdsa",
    "id_ed25519",
    ".ssh/",
    "credentials",
    "secrets",
    ".git/",
    ".gitconfig",
    ".npmrc",
    ".docker/config.json",
    "kubeconfig",
)

SECRET_PATTERNS = (
    re.compile(r"password\s*=\s*[^$\s{][^\s]*", re.IGNORECASE),
    re.compile(r"secret[_-]?\w*\s*=\s*[^$\s{][^\s]*", re.IGNORECASE),
    re.compile(r"api[_-]?key\s*=\s*[^$\s{][^\s]*", re.IGNORECASE),
    re.compile(r"token\s*=\s*[^$\s{][^\s]*", re.IGNORECASE),
    re.compile(r"db_password\s*=\s*[^$\s{][^\s]*", re.IGNORECASE),
    re.compile(r"sk_live_[a-zA-Z0-9]+"),  # Stripe live key
    re.compile(r"sk_test_[a-zA-Z0-9]+"),  # Stripe test key
    re.compile(r"AKIA[0-9A-Z]{16}"),  # AWS Access Key ID
    re.compile(r"ghp_[a-zA-Z0-9]{36}"),  # GitHub PAT
)

MINIMAL_IMAGE_PATTERNS = (
    re.compile(r"alpine", re.IGNORECASE),
    re.compile(r"distroless", re.IGNORECASE),
    re.compile(r"slim", re.IGNORECASE),
    re.compile(r"scratch"),
    re.compile(r"busybox", re.IGNORECASE),
)

URL_RE = re.compile(r"https?://")

BUILD_MARKERS = ("npm", "build", "compile")

_SENSITIVE_GLOBS = tuple(
    re.compile(pattern.replace("*", ".*")) for pattern in SENSITIVE_FILES if "*" in pattern
)
_SENSITIVE_SUBSTRINGS = tuple(pattern.lower() for pattern in SENSITIVE_FILES if "*" not in pattern)


def looks_like_secret(value: str) -> bool:
    """Check if an instruction argument appears to contain a hardcoded secret."""
    # Variable references are injected at build/run time
    if "$" in value:
        return False
    if "=" not in value:
        return False
    return any(pattern.search(value) for pattern in SECRET_PATTERNS)


def is_sensitive_file(path: str) -> bool:
    """Check if a COPY/ADD source path names a sensitive file."""
    normalized = path.lower()
    if any(regex.search(normalized) for regex in _SENSITIVE_GLOBS):
        return True
    return any(pattern in normalized for pattern in _SENSITIVE_SUBSTRINGS)


def is_minimal_image(image: str) -> bool:
    return any(pattern.search(image) for pattern in MINIMAL_IMAGE_PATTERNS)


@dataclass
class LintContext:
    """Per-call scan state threaded through every rule."""

    parsed: ParsedDockerfile
    instruction: Instruction | None = None

    has_user: bool = False
    user_is_root: bool = False
    has_healthcheck: bool = False
    has_build_instructions: bool = False

    @property
    def last_line(self) -> int:
        """Line of the last instruction, 1 for an empty Dockerfile."""
        if self.parsed.instructions:
            return self.parsed.instructions[-1].line
        return 1


# ---------------------------------------------------------------------------
# Per-instruction rules
# ---------------------------------------------------------------------------


def _track_user(ctx: LintContext) -> list[Finding]:
    user = ctx.instruction.arguments.strip()
    ctx.has_user = True
    ctx.user_is_root = user in ("root", "0")
    return []


def _from_image(instruction: Instruction) -> str:
    tokens = instruction.arguments.split()
    return tokens[0] if tokens else ""


def _check_latest_tag(ctx: LintContext) -> list[Finding]:
    image = _from_image(ctx.instruction)
    if image.endswith(":latest") or ":" not in image:
        return [
            Finding(
                rule="no-latest-tag",
                severity=Severity.MEDIUM,
                line=ctx.instruction.line,
                message="Avoid using 'latest' tag. Pin to a specific version.",
                fix=f"Use a specific version tag (e.g., {image.split(':')[0]}:20-alpine)",
            )
        ]
    return []


def _check_minimal_base(ctx: LintContext) -> list[Finding]:
    stages = ctx.parsed.stages
    # Only the final stage ships
    if not stages or stages[-1].line != ctx.instruction.line:
        return []

    if is_minimal_image(_from_image(ctx.instruction)):
        return []

    return [
        Finding(
            rule="prefer-minimal-base",
            severity=Severity.LOW,
            line=ctx.instruction.line,
            message="Consider using a minimal base image (alpine, distroless, slim).",
            fix="Use alpine variant (e.g., node:20-alpine) or distroless",
        )
    ]


def _check_env_secrets(ctx: LintContext) -> list[Finding]:
    if not looks_like_secret(ctx.instruction.arguments):
        return []
    return [
        Finding(
            rule="no-secrets-in-env",
            severity=Severity.CRITICAL,
            line=ctx.instruction.line,
            cis="4.10",
            message=(
                f"Possible hardcoded secret in {ctx.instruction.keyword}. "
                "Use build-time secrets or runtime injection."
            ),
            fix="Remove hardcoded value. Use Docker secrets or environment injection at runtime.",
        )
    ]


def _check_run_secrets(ctx: LintContext) -> list[Finding]:
    if not looks_like_secret(ctx.instruction.arguments):
        return []
    return [
        Finding(
            rule="no-secrets-in-run",
            severity=Severity.CRITICAL,
            line=ctx.instruction.line,
            cis="4.10",
            message="Possible hardcoded secret in RUN command.",
            fix="Use Docker build secrets (--mount=type=secret) instead.",
        )
    ]


def _track_build_steps(ctx: LintContext) -> list[Finding]:
    args = ctx.instruction.arguments
    if any(marker in args for marker in BUILD_MARKERS):
        ctx.has_build_instructions = True
    return []


def _check_sensitive_files(ctx: LintContext) -> list[Finding]:
    findings = []
    # Last token is the destination
    sources = ctx.instruction.arguments.split()[:-1]
    for src in sources:
        if is_sensitive_file(src):
            findings.append(
                Finding(
                    rule="no-sensitive-files",
                    severity=Severity.CRITICAL,
                    line=ctx.instruction.line,
                    cis="4.10",
                    message=f"Copying sensitive file: {src}",
                    fix=f"Add {src} to .dockerignore and use Docker secrets or runtime mounting.",
                )
            )
    return findings


def _check_add_url(ctx: LintContext) -> list[Finding]:
    if not URL_RE.search(ctx.instruction.arguments):
        return []
    return [
        Finding(
            rule="prefer-copy-over-add",
            severity=Severity.MEDIUM,
            line=ctx.instruction.line,
            cis="4.9",
            message="Prefer COPY over ADD. ADD with URLs can be unpredictable.",
            fix="Use RUN curl/wget to download files, or COPY local files.",
        )
    ]


def _track_healthcheck(ctx: LintContext) -> list[Finding]:
    ctx.has_healthcheck = True
    return []


# ---------------------------------------------------------------------------
# Post-scan rules
# ---------------------------------------------------------------------------


def _check_root_user(ctx: LintContext) -> list[Finding]:
    if ctx.has_user and not ctx.user_is_root:
        return []
    return [
        Finding(
            rule="no-root-user",
            severity=Severity.HIGH,
            line=ctx.last_line,
            cis="4.1",
            message="Container will run as root. Add a non-root USER directive.",
            fix="Add 'RUN adduser -D appuser' and 'USER appuser' before CMD/ENTRYPOINT.",
        )
    ]


def _check_missing_healthcheck(ctx: LintContext) -> list[Finding]:
    if ctx.has_healthcheck:
        return []
    return [
        Finding(
            rule="recommend-healthcheck",
            severity=Severity.LOW,
            line=ctx.last_line,
            cis="4.6",
            message="No HEALTHCHECK defined. Container orchestrators benefit from health checks.",
            fix="Add HEALTHCHECK --interval=30s CMD curl -f http://localhost:PORT/health || exit 1",
        )
    ]


def _check_multi_stage(ctx: LintContext) -> list[Finding]:
    if not ctx.has_build_instructions or ctx.parsed.is_multi_stage:
        return []
    return [
        Finding(
            rule="recommend-multi-stage",
            severity=Severity.MEDIUM,
            line=1,
            message=(
                "Build instructions detected but no multi-stage build. "
                "Build dependencies may be in final image."
            ),
            fix="Use multi-stage build: separate builder stage from production stage.",
        )
    ]


# Order matters: findings for one instruction come out in table order.
DOCKERFILE_RULES: tuple[Rule, ...] = (
    Rule("track-user", frozenset({"USER"}), _track_user),
    Rule("no-latest-tag", frozenset({"FROM"}), _check_latest_tag),
    Rule("prefer-minimal-base", frozenset({"FROM"}), _check_minimal_base),
    Rule("no-secrets-in-env", frozenset({"ENV", "ARG"}), _check_env_secrets),
    Rule("no-secrets-in-run", frozenset({"RUN"}), _check_run_secrets),
    Rule("track-build-steps", frozenset({"RUN"}), _track_build_steps),
    Rule("no-sensitive-files", frozenset({"COPY", "ADD"}), _check_sensitive_files),
    Rule("prefer-copy-over-add", frozenset({"ADD"}), _check_add_url),
    Rule("track-healthcheck", frozenset({"HEALTHCHECK"}), _track_healthcheck),
    Rule("no-root-user", POST_SCAN, _check_root_user),
    Rule("recommend-healthcheck", POST_SCAN, _check_missing_healthcheck),
    Rule("recommend-multi-stage", POST_SCAN, _check_multi_stage),
)


@dataclass
class LintResult:
    findings: list[Finding]
    parsed: ParsedDockerfile
    score: int
    summary: dict[str, int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "findings": [f.to_dict() for f in self.findings],
            "score": self.score,
            "summary": dict(self.summary),
            "parsed": self.parsed.to_dict(),
        }


def run_rules(parsed: ParsedDockerfile, rules: tuple[Rule, ...] = DOCKERFILE_RULES) -> list[Finding]:
    """Apply an ordered rule table to a parsed Dockerfile."""
    ctx = LintContext(parsed=parsed)
    findings: list[Finding] = []

    instruction_rules = [rule for rule in rules if not rule.is_post_scan]
    post_scan_rules = [rule for rule in rules if rule.is_post_scan]

    for instruction in parsed.instructions:
        ctx.instruction = instruction
        for rule in instruction_rules:
            if rule.matches(instruction.keyword):
                findings.extend(rule.check(ctx))

    ctx.instruction = None
    for rule in post_scan_rules:
        findings.extend(rule.check(ctx))

    return findings


def lint_dockerfile(content: str) -> LintResult:
    """Lint Dockerfile text with the fixed rule set."""
    parsed = parse_dockerfile(content)
    findings = run_rules(parsed)
    score = calculate_score(findings)

    logger.debug(f"Dockerfile lint: {len(findings)} findings, score {score}")
    return LintResult(findings=findings, parsed=parsed, score=score, summary=summarize(findings))


class DockerfileLinter:
    """Configurable Dockerfile linter.

    Custom patterns are compiled here, so an invalid regex fails when the
    linter is built rather than halfway through a batch of files.
    """

    def __init__(self, config: RuleConfig | dict | None = None):
        if isinstance(config, RuleConfig):
            self.config = config
        else:
            self.config = RuleConfig.from_dict(config)

    def lint(self, content: str) -> LintResult:
        result = lint_dockerfile(content)

        findings = [f for f in result.findings if not self.config.is_disabled(f.rule)]

        for custom in self.config.custom_patterns:
            for instruction in result.parsed.instructions:
                if custom.pattern.search(instruction.arguments):
                    findings.append(
                        Finding(
                            rule=custom.name,
                            severity=custom.severity,
                            line=instruction.line,
                            message=custom.message,
                            fix=custom.fix,
                        )
                    )

        return LintResult(
            findings=findings,
            parsed=result.parsed,
            score=calculate_score(findings),
            summary=summarize(findings),
        )

    def lint_file(self, file_path: str | Path) -> LintResult:
        with open(file_path, encoding="utf-8") as f:
            return self.lint(f.read())


def create_dockerfile_linter(config: RuleConfig | dict | None = None) -> DockerfileLinter:
    """Build a configurable linter; raises RuleConfigError on bad config."""
    return DockerfileLinter(config)
