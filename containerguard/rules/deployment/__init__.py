"""Deployment configuration security rules.

- docker_analyze: Dockerfile lint engine (CIS section 4, OWASP)
- compose_analyze: Compose privilege/capability/resource controls (CIS 5.3, 5.4, 5.10, 5.12, 5.25)
- runtime_analyze: Compose runtime controls (CIS 5.11, 5.13, 5.14)
- service_hardening: opt-in Compose hardening checks (capabilities, user, seccomp, networks, env secrets)
- cis_controls: CIS Docker Benchmark catalogue
"""

from .cis_controls import CIS_CONTROLS, CisControl, level1_controls
from .compose_analyze import check_compose_compliance
from .docker_analyze import (
    DOCKERFILE_RULES,
    DockerfileLinter,
    LintResult,
    create_dockerfile_linter,
    lint_dockerfile,
)
from .runtime_analyze import check_runtime_compliance
from .service_hardening import check_service_hardening

__all__ = [
    "CIS_CONTROLS",
    "CisControl",
    "DOCKERFILE_RULES",
    "DockerfileLinter",
    "LintResult",
    "check_compose_compliance",
    "check_runtime_compliance",
    "check_service_hardening",
    "create_dockerfile_linter",
    "level1_controls",
    "lint_dockerfile",
]
