from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

DEFAULT_LOG_PATH = "/var/log/nebula-installer-debug.log"


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure root logging for the installer process.

    The requested path is tried first. Live media often mount /var/log
    read-only, so on failure the handler writes next to the working
    directory instead.

    Returns the file path actually in use.
    """

    root = logging.getLogger()
    root.setLevel(level)

    if getattr(root, "_nebula_configured", False):
        return getattr(root, "_nebula_log_path", log_path)

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    handlers: list[logging.Handler] = []

    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        chosen_path = log_path
    except OSError:
        chosen_path = str(Path.cwd() / Path(log_path).name)
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        # Console only shows problems; step output goes through the event stream.
        console.setLevel(logging.WARNING)
        handlers.append(console)

    for h in handlers:
        root.addHandler(h)

    setattr(root, "_nebula_configured", True)
    setattr(root, "_nebula_log_path", chosen_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
