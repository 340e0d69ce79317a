"""Layered runtime configuration: defaults, then config.json, then environment.

    .containerguard/config.json
    {
      "audit": {"pass_threshold": 80, "service_hardening": true},
      "limits": {"max_file_size": 1048576},
      "rules": {"recommend-healthcheck": "off"},
      "customPatterns": [{"name": "no-sudo", "pattern": "sudo", "severity": "HIGH"}]
    }

Scalar keys can also be set as CONTAINERGUARD_<SECTION>_<KEY>, for example
CONTAINERGUARD_AUDIT_PASS_THRESHOLD=85. Environment values win.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any

from containerguard.rules.base import RuleConfig
from containerguard.utils.constants import (
    CONFIG_FILE,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_PASS_THRESHOLD,
    ENV_PREFIX,
)
from containerguard.utils.logging import logger

DEFAULTS = {
    "audit": {"pass_threshold": DEFAULT_PASS_THRESHOLD, "service_hardening": False},
    "limits": {"max_file_size": DEFAULT_MAX_FILE_SIZE},
    "rules": {},
    "custom_patterns": [],
}

SCALAR_SECTIONS = ("audit", "limits")
TRUTHY = ("1", "true", "yes", "on")


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Ignoring unreadable {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {path}: top level must be an object")
        return {}
    return data


def _merge_file(cfg: dict[str, Any], user: dict[str, Any]) -> None:
    for section in SCALAR_SECTIONS:
        overrides = user.get(section)
        if not isinstance(overrides, dict):
            continue
        current = cfg[section]
        # Known keys only, and only when the type matches the default
        current.update(
            (key, value)
            for key, value in overrides.items()
            if key in current and type(value) is type(current[key])
        )

    if isinstance(user.get("rules"), dict):
        cfg["rules"].update(user["rules"])
    patterns = user.get("custom_patterns", user.get("customPatterns"))
    if isinstance(patterns, list):
        cfg["custom_patterns"] = patterns


def _apply_env(cfg: dict[str, Any]) -> None:
    for section in SCALAR_SECTIONS:
        current = cfg[section]
        for key, previous in current.items():
            env_var = f"{ENV_PREFIX}{section}_{key}".upper()
            raw = os.environ.get(env_var)
            if raw is None:
                continue
            if isinstance(previous, bool):
                current[key] = raw.strip().lower() in TRUTHY
                continue
            try:
                current[key] = type(previous)(raw)
            except ValueError:
                logger.warning(f"{env_var}={raw!r} is not a valid {type(previous).__name__}, keeping {previous}")


def load_runtime_config(root: str = ".") -> dict[str, Any]:
    """
    Build the effective configuration for a run.

    Args:
        root: Directory holding .containerguard/config.json

    Returns:
        A fresh dict shaped like DEFAULTS. ``rules`` and ``custom_patterns``
        are returned raw; pass the dict to rule_config_from_runtime() to
        validate them.
    """
    cfg = copy.deepcopy(DEFAULTS)
    _merge_file(cfg, _read_config_file(Path(root) / CONFIG_FILE))
    _apply_env(cfg)
    logger.debug(f"Runtime config: audit={cfg['audit']} limits={cfg['limits']}")
    return cfg


def rule_config_from_runtime(cfg: dict[str, Any]) -> RuleConfig:
    """Validate the rule sections of a runtime config. Raises RuleConfigError."""
    return RuleConfig.from_dict(
        {
            "rules": cfg.get("rules") or {},
            "custom_patterns": cfg.get("custom_patterns") or [],
        }
    )
