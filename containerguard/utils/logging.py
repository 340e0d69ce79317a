"""Loguru setup for containerguard, with optional Pino-compatible NDJSON.

Usage:
    from containerguard.utils.logging import logger
    logger.info("Linting Dockerfile")
    logger.debug("Only shown with CONTAINERGUARD_LOG_LEVEL=DEBUG or cguard -v")

Environment Variables:
    CONTAINERGUARD_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: INFO)
    CONTAINERGUARD_LOG_JSON: 0|1 (default: 0, human-readable)
    CONTAINERGUARD_LOG_FILE: append NDJSON records to this path (optional)
    CONTAINERGUARD_REQUEST_ID: correlation ID stamped on every JSON record

Logs always go to stderr. Reports own stdout, so `--format json` output
stays parseable even with CONTAINERGUARD_LOG_JSON=1.
"""

import json
import os
import sys
import uuid

from loguru import logger

PINO_LEVELS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "SUCCESS": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

HUMAN_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

_request_id = os.environ.get("CONTAINERGUARD_REQUEST_ID") or str(uuid.uuid4())


def _pino_line(record) -> str:
    """Serialize a loguru record with Pino's field names."""
    entry = {
        "level": PINO_LEVELS.get(record["level"].name, 30),
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
        "request_id": record["extra"].get("request_id", _request_id),
        "module": record["name"],
    }
    entry.update({k: v for k, v in record["extra"].items() if k != "request_id"})

    exc = record["exception"]
    if exc:
        entry["err"] = {
            "type": exc.type.__name__ if exc.type else "Error",
            "message": str(exc.value) if exc.value else "",
        }
    return json.dumps(entry, default=str) + "\n"


def _stderr_ndjson(message) -> None:
    # Sinks must not call logger.* themselves
    sys.stderr.write(_pino_line(message.record))
    sys.stderr.flush()


def configure_logging(
    level: str | None = None,
    json_mode: bool | None = None,
    log_file: str | None = None,
) -> None:
    """(Re)install containerguard's sinks.

    Arguments left as None fall back to the CONTAINERGUARD_LOG_* variables.
    """
    if level is None:
        level = os.environ.get("CONTAINERGUARD_LOG_LEVEL", "INFO")
    if json_mode is None:
        json_mode = os.environ.get("CONTAINERGUARD_LOG_JSON", "0") == "1"
    if log_file is None:
        log_file = os.environ.get("CONTAINERGUARD_LOG_FILE")
    level = level.upper()

    logger.remove()
    if json_mode:
        logger.add(_stderr_ndjson, level=level, colorize=False)
    else:
        logger.add(sys.stderr, level=level, format=HUMAN_FORMAT, colorize=None)

    if log_file:

        def _file_sink(message):
            with open(log_file, "a", encoding="utf-8") as f:
                f.write(_pino_line(message.record))

        logger.add(_file_sink, level="DEBUG")


logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")

configure_logging()

__all__ = ["logger", "configure_logging"]
