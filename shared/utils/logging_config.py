"""Centralized logging configuration for PetPro services.

Usage:
    from shared.utils.logging_config import setup_logging

    # stderr + logs/<server_name>.log:
    setup_logging(server_name="notification-service")

    # With debug level and a custom directory:
    setup_logging(server_name="notification-service", debug=True, log_dir="/var/log/petpro")
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

MAX_BYTES = 5 * 1024 * 1024  # 5 MB
BACKUP_COUNT = 3

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_LOG_DIR = _PROJECT_ROOT / "logs"

# Client libraries that log every request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(
    level: int = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    *,
    server_name: str | None = None,
    log_dir: str | Path | None = None,
    debug: bool = False,
) -> None:
    """Configure the root logger with a stderr handler and a rotating log file.

    Call this once at the start of each entry point. Without ``server_name``
    only the stderr handler is installed.
    """
    if debug:
        level = logging.DEBUG

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = None
    if server_name:
        target_dir = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
        target_dir.mkdir(parents=True, exist_ok=True)
        log_file = target_dir / f"{server_name}.log"
        handlers.append(RotatingFileHandler(log_file, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT))

    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)

    if log_file:
        logging.getLogger().info("Logging to %s", log_file)
