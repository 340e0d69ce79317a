"""Error boundary for cguard commands.

Every failure is appended to <root>/.containerguard/error.log with its
traceback, next to the config.json the command read. Input problems (bad
YAML, bad rule config, oversized or non-UTF-8 files) are ValueError
subclasses: they are logged as one line and exit with TASK_INCOMPLETE so CI
can tell a broken input from a finding. Anything else is logged with the
traceback because it is a bug, and exits 1.
"""

import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any

import click

from containerguard.utils.logging import logger

from .constants import ERROR_LOG_FILE
from .exit_codes import ExitCodes

_RULE = "-" * 72


class InputError(click.ClickException):
    """Unusable input file or configuration."""

    exit_code = ExitCodes.TASK_INCOMPLETE


def error_log_path(root: str | Path | None = None) -> Path:
    return Path(root or ".") / ERROR_LOG_FILE


def _write_error_log(log_file: Path, command: str, exc: BaseException) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().isoformat(timespec="seconds")
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    with open(log_file, "a", encoding="utf-8") as log:
        log.write(f"{_RULE}\n{stamp} cguard {command}\n{_RULE}\n{trace}\n")


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn uncaught exceptions into a click error pointing at error.log."""
    command = func.__name__

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.ClickException, click.Abort):
            raise
        except ValueError as e:
            logger.warning(f"cguard {command}: {type(e).__name__}: {e}")
            _write_error_log(error_log_path(kwargs.get("root")), command, e)
            raise InputError(f"{type(e).__name__}: {e}") from e
        except Exception as e:
            log_file = error_log_path(kwargs.get("root"))
            logger.opt(exception=e).error(f"cguard {command} crashed")
            _write_error_log(log_file, command, e)
            raise click.ClickException(
                f"{type(e).__name__}: {e}\nTraceback written to {log_file}"
            ) from e

    return wrapper
