"""Parser for docker-compose.yml files.

Loads Compose YAML into the plain nested mapping the compliance checkers
consume. The checkers never see YAML, only the resulting dict.
"""

from pathlib import Path
from typing import Any

import yaml

from containerguard.utils.logging import logger


class ComposeParseError(ValueError):
    """Raised when Compose content is not valid YAML or not a mapping."""

    pass


class ComposeParser:
    """Parser for docker-compose.yml files."""

    def parse_file(self, file_path: Path) -> dict[str, Any]:
        """
        Parse a docker-compose.yml file.

        Args:
            file_path: Path to the docker-compose.yml file

        Returns:
            Normalized compose mapping (see parse_content)
        """
        with open(file_path, encoding="utf-8") as f:
            return self.parse_content(f.read(), str(file_path))

    def parse_content(self, content: str, file_path: str = "unknown") -> dict[str, Any]:
        """
        Parse docker-compose content string.

        Args:
            content: docker-compose.yml content as string
            file_path: Optional file path for error messages

        Returns:
            ``{"version", "services", "networks", "volumes", "secrets"}`` with
            every key present; missing sections become empty mappings.
        """
        try:
            # safe_load: compose files are untrusted input
            compose_data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ComposeParseError(f"Failed to parse docker-compose {file_path}: {e}") from e

        if compose_data is None:
            compose_data = {}
        if not isinstance(compose_data, dict):
            raise ComposeParseError(
                f"Failed to parse docker-compose {file_path}: top level is "
                f"{type(compose_data).__name__}, expected a mapping"
            )

        result = {
            "version": compose_data.get("version"),
            "services": compose_data.get("services") or {},
            "networks": compose_data.get("networks") or {},
            "volumes": compose_data.get("volumes") or {},
            "secrets": compose_data.get("secrets") or {},
        }
        logger.debug(f"Parsed compose {file_path}: {len(result['services'])} services")
        return result
