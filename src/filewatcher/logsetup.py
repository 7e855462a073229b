"""Logging setup for the watcher agent.

Called once at process start; the returned logger is handed to the session
and every aggregator it creates.
"""

import logging
from pathlib import Path

LOGGER_NAME = "filewatcher"
LOG_FILE_NAME = "filewatcher.log"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_dir: Path, level: str = "INFO", console: bool = True) -> logging.Logger:
    """
    Configure the watcher logger with file (and optionally console) output.

    Handlers are only attached the first time; later calls just update the
    level.

    Args:
        log_dir: Directory for the log file, created if missing
        level: Logging level name
        console: Whether to also log to stderr

    Returns:
        The configured "filewatcher" logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, mode="a", encoding="utf-8")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.info(f"filewatcher logging to {log_dir} with log level {level.upper()}")
    return logger
