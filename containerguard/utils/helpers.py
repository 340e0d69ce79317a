"""Helper utility functions for containerguard."""

from pathlib import Path

from .constants import DEFAULT_MAX_FILE_SIZE
from .logging import logger


class InputTooLargeError(ValueError):
    """Raised when an input file exceeds the configured size limit."""

    pass


def read_text_file(file_path: str | Path, max_size: int = DEFAULT_MAX_FILE_SIZE) -> str:
    """
    Read a UTF-8 text file, refusing files above ``max_size`` bytes.

    Args:
        file_path: Path to the file
        max_size: Largest accepted size in bytes

    Returns:
        File content as string

    Raises:
        FileNotFoundError: If file doesn't exist
        InputTooLargeError: If the file is larger than max_size
    """
    path = Path(file_path)
    size = path.stat().st_size
    if size > max_size:
        raise InputTooLargeError(f"{path} is {size} bytes, limit is {max_size} bytes")

    logger.debug(f"Reading {path} ({size} bytes)")
    with open(path, encoding="utf-8") as f:
        return f.read()

