"""containerguard utilities package."""

from .constants import (
    CG_DIR,
    CONFIG_FILE,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_PASS_THRESHOLD,
    ERROR_LOG_FILE,
)
from .error_handler import handle_exceptions
from .exit_codes import ExitCodes
from .helpers import InputTooLargeError, read_text_file
from .logging import logger

__all__ = [
    "CG_DIR",
    "CONFIG_FILE",
    "DEFAULT_MAX_FILE_SIZE",
    "DEFAULT_PASS_THRESHOLD",
    "ERROR_LOG_FILE",
    "handle_exceptions",
    "ExitCodes",
    "InputTooLargeError",
    "read_text_file",
    "logger",
]
