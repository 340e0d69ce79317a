"""CIS Docker Benchmark control catalogue.

Read-only table of the controls containerguard reports against. Level 1
controls are the baseline set used for the pass/fail gate; level 2 controls
are defence-in-depth and never count towards the Level-1 score.
"""

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class CisControl:
    id: str
    title: str
    level: int

    @property
    def section(self) -> str:
        return section_of(self.id)


def section_of(control_id: str) -> str:
    """Section number of a control id ("5.25" -> "5")."""
    return control_id.split(".", 1)[0]


_CONTROLS = (
    # Section 4 - Container Images and Build File
    CisControl("4.1", "Ensure that a user for the container has been created", 1),
    CisControl("4.2", "Ensure that containers use only trusted base images", 1),
    CisControl("4.3", "Ensure that unnecessary packages are not installed in the container", 1),
    CisControl("4.4", "Ensure images are scanned and rebuilt to include security patches", 1),
    CisControl("4.5", "Ensure Content trust for Docker is enabled", 2),
    CisControl("4.6", "Ensure that HEALTHCHECK instructions have been added to container images", 1),
    CisControl("4.7", "Ensure update instructions are not used alone in the Dockerfile", 1),
    CisControl("4.8", "Ensure setuid and setgid permissions are removed", 2),
    CisControl("4.9", "Ensure that COPY is used instead of ADD in Dockerfiles", 1),
    CisControl("4.10", "Ensure secrets are not stored in Dockerfiles", 2),
    CisControl("4.11", "Ensure only verified packages are installed", 2),
    # Section 5 - Container Runtime
    CisControl("5.1", "Ensure that, if applicable, an AppArmor Profile is enabled", 1),
    CisControl("5.2", "Ensure that, if applicable, SELinux security options are set", 2),
    CisControl("5.3", "Ensure that Linux kernel capabilities are restricted within containers", 1),
    CisControl("5.4", "Ensure that privileged containers are not used", 1),
    CisControl("5.5", "Ensure sensitive host system directories are not mounted on containers", 1),
    CisControl("5.6", "Ensure sshd is not run within containers", 1),
    CisControl("5.7", "Ensure privileged ports are not mapped within containers", 1),
    CisControl("5.10", "Ensure that the memory usage for containers is limited", 1),
    CisControl("5.11", "Ensure that the PIDs cgroup limit is used", 1),
    CisControl("5.12", "Ensure that the container's root filesystem is mounted as read only", 1),
    CisControl("5.13", "Ensure that the host's network namespace is not shared", 1),
    CisControl("5.14", "Ensure that the 'on-failure' container restart policy is set to '5'", 1),
    CisControl("5.21", "Ensure the default seccomp profile is not Disabled", 1),
    CisControl("5.25", "Ensure that the container is restricted from acquiring additional privileges", 1),
)

CIS_CONTROLS = MappingProxyType({control.id: control for control in _CONTROLS})

LEVEL1_CONTROL_IDS = frozenset(control.id for control in _CONTROLS if control.level == 1)


def get_control(control_id: str | None) -> CisControl | None:
    if not control_id:
        return None
    return CIS_CONTROLS.get(control_id)


def is_level1(control_id: str | None) -> bool:
    return control_id in LEVEL1_CONTROL_IDS


def level1_controls() -> tuple[CisControl, ...]:
    """All level-1 controls in catalogue order."""
    return tuple(control for control in _CONTROLS if control.level == 1)
