"""Logging setup shared by the hook stages and the CI check."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "versync"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the versync hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    quiet: bool = False,
    label: str | None = None,
    log_file: Path | None = None,
) -> logging.Logger:
    """Send versync logs to stderr, tagged with the running command.

    Git shows hook stderr inline with its own output, so each line carries a
    ``[versync <label>]`` prefix. ``quiet`` keeps only warnings and errors for
    commands whose stdout is consumed by scripts.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # main() may run several times in one interpreter; keep a single handler set.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    prefix = f"[versync {label}]" if label else "[versync]"
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(f"{prefix} %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


__all__ = ["configure_logging", "get_logger"]
