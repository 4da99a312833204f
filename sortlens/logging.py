"""Terminal and log file logging configuration.

Two independent knobs:

- ``-v`` / ``--verbose`` on the CLI controls **terminal** verbosity
  (stderr handler level).  Default: WARNING.
- ``SORTLENS_LOG_LEVEL`` env var controls **log file** verbosity.
  Default: INFO.  The log file lives at
  ``<output_dir>/.sortlens/sortlens.log`` and is only written when the CLI
  is given ``--log-dir``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

_LOG_FILENAME = "sortlens.log"

# Max log file size before rotation (5 MB)
_MAX_BYTES = 5 * 1024 * 1024

_BACKUP_COUNT = 2


def _parse_log_level(level_str: str) -> int:
    """Parse a log level name case-insensitively.  Unknown names give INFO."""
    numeric = getattr(logging, level_str.upper(), None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def setup_logging(
    *,
    output_dir: Path | None = None,
    verbose: bool = False,
) -> None:
    """Configure the terminal handler and, optionally, a rotating log file.

    Args:
        output_dir: When provided, a rotating log file is created at
            ``<output_dir>/.sortlens/sortlens.log``.
        verbose: If True, the terminal handler shows DEBUG-level messages.
            Otherwise only WARNING and above reach the terminal.
    """
    root = logging.getLogger()

    # Calling setup_logging twice must not stack handlers
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    root.setLevel(logging.DEBUG)

    # ── Terminal handler (stderr) ──────────────────────────────────
    terminal = logging.StreamHandler()
    terminal.setLevel(logging.DEBUG if verbose else logging.WARNING)
    terminal.setFormatter(logging.Formatter("%(levelname)s | %(name)s | %(message)s"))
    root.addHandler(terminal)

    # ── Log file handler ───────────────────────────────────────────
    if output_dir is not None:
        log_dir = output_dir / ".sortlens"
        log_dir.mkdir(parents=True, exist_ok=True)

        from logging.handlers import RotatingFileHandler

        file_level = _parse_log_level(os.environ.get("SORTLENS_LOG_LEVEL", "INFO"))
        file_handler = RotatingFileHandler(
            log_dir / _LOG_FILENAME,
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(file_handler)
