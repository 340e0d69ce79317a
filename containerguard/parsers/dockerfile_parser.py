"""Parser for Dockerfile files.

This module lexes Dockerfile text into an ordered instruction list, the build
stages declared by FROM, and the comments. Parsing is total: lines that are
not recognisable instructions are skipped, never rejected.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path

from containerguard.utils.logging import logger

INSTRUCTION_RE = re.compile(r"^([A-Z]+)\s*(.*)")
FROM_RE = re.compile(r"^(\S+?)(?:\s+AS\s+(\S+))?$", re.IGNORECASE)


@dataclass
class Instruction:
    """A parsed Dockerfile instruction (possibly multi-line)."""

    keyword: str  # FROM, RUN, COPY, ...
    arguments: str  # everything after the keyword, continuations joined
    line: int  # first line number (1-based)


@dataclass(frozen=True)
class Stage:
    """A build stage (FROM image [AS name])."""

    name: str | None
    image: str
    line: int


@dataclass(frozen=True)
class Comment:
    line: int
    text: str


@dataclass
class ParsedDockerfile:
    """Structured view of a Dockerfile, consumed once by the lint engine."""

    instructions: list[Instruction] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    base_images: list[str] = field(default_factory=list)
    stages: list[Stage] = field(default_factory=list)

    @property
    def is_multi_stage(self) -> bool:
        return len(self.stages) > 1

    def to_dict(self) -> dict:
        return {
            "instructions": [
                {"keyword": i.keyword, "arguments": i.arguments, "line": i.line}
                for i in self.instructions
            ],
            "comments": [{"line": c.line, "text": c.text} for c in self.comments],
            "baseImages": list(self.base_images),
            "stages": [{"name": s.name, "image": s.image, "line": s.line} for s in self.stages],
            "isMultiStage": self.is_multi_stage,
        }


def _strip_continuation(text: str) -> str:
    if text.endswith("\\"):
        text = text[:-1]
    return text.strip()


class DockerfileParser:
    """Parser for Dockerfile files."""

    def parse_content(self, content: str) -> ParsedDockerfile:
        """
        Parse Dockerfile content string.

        Args:
            content: Dockerfile content as string

        Returns:
            ParsedDockerfile with instructions, comments and stages
        """
        parsed = ParsedDockerfile()
        current: Instruction | None = None
        in_continuation = False

        for index, raw_line in enumerate(content.split("\n")):
            line_no = index + 1
            trimmed = raw_line.strip()

            if not trimmed and not in_continuation:
                continue

            if trimmed.startswith("#") and not in_continuation:
                parsed.comments.append(Comment(line=line_no, text=trimmed[1:].strip()))
                continue

            if in_continuation:
                clean = _strip_continuation(trimmed)
                if clean:
                    current.arguments += " " + clean
                in_continuation = trimmed.endswith("\\")
                continue

            match = INSTRUCTION_RE.match(trimmed)
            if not match:
                continue

            keyword, args = match.group(1), match.group(2)
            in_continuation = args.endswith("\\")
            current = Instruction(keyword=keyword, arguments=_strip_continuation(args), line=line_no)

            if keyword == "FROM":
                from_match = FROM_RE.match(args)
                if from_match:
                    image, stage_name = from_match.group(1), from_match.group(2)
                    parsed.base_images.append(image)
                    parsed.stages.append(Stage(name=stage_name, image=image, line=line_no))

            parsed.instructions.append(current)

        logger.debug(
            f"Parsed Dockerfile: {len(parsed.instructions)} instructions, "
            f"{len(parsed.stages)} stages, {len(parsed.comments)} comments"
        )
        return parsed

    def parse_file(self, file_path: Path) -> ParsedDockerfile:
        """Read a Dockerfile as UTF-8 and parse it. I/O errors propagate."""
        with open(file_path, encoding="utf-8") as f:
            return self.parse_content(f.read())


def parse_dockerfile(content: str) -> ParsedDockerfile:
    """Parse Dockerfile text with a fresh parser."""
    return DockerfileParser().parse_content(content)
