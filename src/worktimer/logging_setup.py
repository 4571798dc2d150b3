# src/worktimer/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Console thresholds by logger-name prefix; the longest matching prefix wins.
# The REPL shares the terminal with these records, so anything chatty is
# pushed to the log file only.
CONSOLE_THRESHOLDS: dict[str, int] = {
    "worktimer": logging.DEBUG,
    # Observer churn and tick start/stop are DEBUG; only problems reach the prompt.
    "worktimer.timing.coordinator": logging.WARNING,
    # The REST client already reports failures through the notifier.
    "worktimer.api.http_backend": logging.ERROR,
    "py.warnings": logging.ERROR,
}
THIRD_PARTY_CONSOLE_LEVEL = logging.ERROR

# Libraries that log every request even at INFO.
QUIET_LIBRARIES = ("httpx", "httpcore", "asyncio")


def _console_threshold(name: str) -> int:
    best, level = "", THIRD_PARTY_CONSOLE_LEVEL
    for prefix, threshold in CONSOLE_THRESHOLDS.items():
        if (name == prefix or name.startswith(prefix + ".")) and len(prefix) > len(best):
            best, level = prefix, threshold
    return level


class _ConsoleNoiseFilter(logging.Filter):
    """Drop records below the console threshold for their logger (see CONSOLE_THRESHOLDS)."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= _console_threshold(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/worktimer",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    log_file_name: str = "worktimer.log",
) -> Path:
    """
    Console on stderr (filtered so the REPL stays readable) plus a full log
    file under log_dir. Replaces any handlers already on the root logger.

    Returns the log file path so the entry point can mention it.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_file_name

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)-7s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    to_file = logging.FileHandler(str(log_file), encoding="utf-8")
    to_file.setLevel(file_level)
    to_file.setFormatter(fmt)
    root.addHandler(to_file)

    logging.captureWarnings(True)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
