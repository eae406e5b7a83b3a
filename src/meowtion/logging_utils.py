"""Logging setup shared by the Meowtion CLI and API."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

__all__ = ["EventFormatter", "configure_logging", "resolve_log_dir"]

_MANAGED_ATTR = "_meowtion_managed_handler"
_LOG_DIR_ENV = "MEOWTION_LOG_DIR"
_LOG_LEVEL_ENV = "MEOWTION_LOG_LEVEL"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class EventFormatter(logging.Formatter):
    """Plain text lines with ``extra`` fields appended as ``key=value``.

    Structured events are logged as
    ``logger.info("match_decided", extra={"event_type": ..., ...})``; without
    this the extra fields never reach the log file.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if not fields:
            return line
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(fields.items()))
        return f"{line} | {rendered}"


def resolve_log_dir(log_dir: Optional[Union[str, Path]] = None) -> Path:
    """Explicit *log_dir*, else ``$MEOWTION_LOG_DIR``, else ``<project>/logs``."""

    if log_dir:
        return Path(log_dir).expanduser()
    override = os.environ.get(_LOG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    for parent in Path(__file__).resolve().parents:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent / "logs"
    return Path.cwd() / "logs"


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    value = level if level is not None else os.environ.get(_LOG_LEVEL_ENV, "INFO")
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    log_name: str,
    *,
    level: Optional[Union[int, str]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    include_console: bool = True,
) -> Path:
    """Send root logging to ``<log dir>/<log_name>.log`` and return that path.

    Handlers installed by an earlier call are closed and replaced, so the CLI
    can reconfigure for ``serve`` without duplicating lines. ``level`` falls
    back to ``$MEOWTION_LOG_LEVEL`` (default INFO).
    """

    directory = resolve_log_dir(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / f"{log_name}.log"
    resolved_level = _resolve_level(level)

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _MANAGED_ATTR, False)]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(resolved_level)

    formatter = EventFormatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
    )
    new_handlers: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if include_console:
        new_handlers.append(logging.StreamHandler())
    for handler in new_handlers:
        handler.setLevel(resolved_level)
        handler.setFormatter(formatter)
        setattr(handler, _MANAGED_ATTR, True)
        root.addHandler(handler)

    logging.captureWarnings(True)
    return log_path
