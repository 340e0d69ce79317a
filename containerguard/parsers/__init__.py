"""Parser modules for containerguard."""

from .compose_parser import ComposeParseError, ComposeParser
from .dockerfile_parser import (
    Comment,
    DockerfileParser,
    Instruction,
    ParsedDockerfile,
    Stage,
    parse_dockerfile,
)

__all__ = [
    "Comment",
    "ComposeParseError",
    "ComposeParser",
    "DockerfileParser",
    "Instruction",
    "ParsedDockerfile",
    "Stage",
    "parse_dockerfile",
]
