"""Centralized constants for containerguard.

Single source of truth for paths, limits and environment variable names.
"""

from pathlib import Path

# ============================================================================
# OUTPUT DIRECTORIES
# ============================================================================

# Project-local directory for config and logs
CG_DIR = Path("./.containerguard")

CONFIG_FILE = CG_DIR / "config.json"
ERROR_LOG_FILE = CG_DIR / "error.log"

# ============================================================================
# LIMITS
# ============================================================================

# Maximum Dockerfile size the CLI will hand to the engine (default: 2MB)
DEFAULT_MAX_FILE_SIZE = 2 * 1024 * 1024

# Level-1 score needed for `audit` to pass
DEFAULT_PASS_THRESHOLD = 70

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

# Overrides take the form CONTAINERGUARD_<SECTION>_<KEY>
ENV_PREFIX = "CONTAINERGUARD_"
