"""
Centralized logging configuration for the supervisor host.

``setup_logging`` configures the root logger once per process with:
- Console output to stdout (DEBUG, or WARNING in user-friendly mode)
- File output to ``<log_dir>/<service_name>.log``
- Fresh log file on each start unless ``LOG_APPEND=1``
- Noisy third-party loggers clamped to WARNING
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Optional

from .config import env_bool, env_path

LOG_FORMAT = "%(asctime)s%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
WORKER_OUTPUT_LOGGER = "worker_supervisor.worker"

_config_lock = threading.Lock()
_MODULE_LOGGER = logging.getLogger(__name__)


def _close_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        try:
            handler.close()
        except OSError as exc:  # Best-effort cleanup operation  # policy_guard: allow-silent-handler
            _MODULE_LOGGER.debug("Handler close failed: %s", exc)
    logger.handlers = []


def _build_console_handler(user_friendly: bool, level: int) -> logging.Handler:
    if user_friendly:
        formatter = logging.Formatter("%(message)s")
    else:
        formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.WARNING if user_friendly else level)
    return console_handler


def _build_file_handler(service_name: str, log_dir: Path) -> logging.Handler:
    log_dir.mkdir(parents=True, exist_ok=True)
    file_mode = "a" if env_bool("LOG_APPEND", or_value=False) else "w"
    file_handler = logging.FileHandler(log_dir / f"{service_name}.log", mode=file_mode, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    file_handler.setLevel(logging.INFO)
    return file_handler


def _suppress_noisy_third_parties() -> None:
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def setup_logging(
    service_name: Optional[str] = None,
    user_friendly: bool = False,
    *,
    log_dir: Optional[Path] = None,
    level: int = logging.INFO,
) -> None:
    """Configure logging for the application.

    Calling it again replaces the handlers installed by the previous call.
    """

    with _config_lock:
        root_logger = logging.getLogger()
        _close_handlers(root_logger)

        root_logger.addHandler(_build_console_handler(user_friendly, level))

        if service_name:
            target_dir = log_dir or env_path("WORKER_LOG_DIR", Path("logs"))
            root_logger.addHandler(_build_file_handler(service_name, target_dir))

        root_logger.setLevel(min(level, logging.INFO))
        _suppress_noisy_third_parties()
