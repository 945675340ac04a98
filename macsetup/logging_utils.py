from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List

DEFAULT_LOG_PATH = str(Path("~/Library/Logs/mac-setup.log").expanduser())
FALLBACK_LOG_NAME = "mac-setup.log"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class SetupLogHandler(logging.FileHandler):
    """File handler owned by macsetup; one per process, replaced on re-configuration."""


class SetupConsoleHandler(logging.StreamHandler):
    pass


def _owned(root: logging.Logger, kind: type) -> List[logging.Handler]:
    return [h for h in root.handlers if isinstance(h, kind)]


def _open_log(log_path: str) -> SetupLogHandler:
    """Open the requested log file, or ./mac-setup.log when its directory is not writable."""

    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return SetupLogHandler(log_path)
    except OSError:
        return SetupLogHandler(str(Path.cwd() / FALLBACK_LOG_NAME))


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Attach the setup log file (and console) to the root logger.

    Calling it again with the same path keeps the existing handlers. A
    different path swaps the file handler, so one run never writes to two
    setup logs. Returns the path actually written to.
    """

    root = logging.getLogger()
    root.setLevel(level)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")
    requested = os.path.abspath(log_path)

    current = _owned(root, SetupLogHandler)
    if current and current[0].baseFilename == requested:
        file_handler = current[0]
    else:
        for h in current:
            root.removeHandler(h)
            h.close()
        file_handler = _open_log(log_path)
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    if also_console and not _owned(root, SetupConsoleHandler):
        console = SetupConsoleHandler()
        console.setFormatter(fmt)
        root.addHandler(console)

    chosen_path = file_handler.baseFilename
    if chosen_path != requested:
        logging.getLogger(__name__).warning("Cannot write %s; logging to %s", log_path, chosen_path)
    return chosen_path
