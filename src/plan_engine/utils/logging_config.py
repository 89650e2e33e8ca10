"""Logging configuration for the plan engine.

The engine itself only emits records through module loggers. Callers that
want to see them (scripts, workers, notebooks) call `setup_logging()` once.
"""

import logging
import sys
import uuid
from logging.handlers import RotatingFileHandler
from pathlib import Path

from plan_engine.config import get_config

# 10 MB per file, keep 5 backups
_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5
_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logging(
    level: str | None = None,
    log_dir: Path | None = None,
) -> logging.Logger:
    """Configure logging for the plan engine.

    Always adds a stderr handler. Adds a rotating file handler when
    log_dir is given.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Defaults to PLAN_ENGINE_LOG_LEVEL from the engine config.
        log_dir: Directory for log files. The directory is created if needed.

    Returns:
        The configured "plan_engine" logger.
    """
    if level is None:
        level = get_config().log_level

    root_logger = logging.getLogger("plan_engine")
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate handlers on repeated calls
    root_logger.handlers.clear()

    formatter = logging.Formatter(_LOG_FORMAT)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    root_logger.addHandler(stderr_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "plan_engine.log",
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    session_id = uuid.uuid4().hex[:8]
    root_logger.info("session_start session_id=%s", session_id)
    return root_logger
