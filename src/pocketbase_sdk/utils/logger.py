# src/pocketbase_sdk/utils/logger.py
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from pocketbase_sdk.core.config import settings


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configures logging for applications built on the SDK (the CLI calls this).
    Logs to console and optionally to a rotating file.
    The library itself only ever calls logging.getLogger(settings.APP_NAME).
    """
    log_level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, log_level_name, logging.INFO)

    logger = logging.getLogger(settings.APP_NAME)
    logger.setLevel(log_level)

    # Prevent duplicate handlers if called multiple times
    if logger.hasHandlers():
        logger.handlers.clear()

    log_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(process)d - %(threadName)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILENAME:
        try:
            file_handler = RotatingFileHandler(
                settings.LOG_FILENAME,
                maxBytes=settings.LOG_MAX_BYTES,
                backupCount=settings.LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
            file_handler.setFormatter(log_formatter)
            logger.addHandler(file_handler)
            logger.info(f"Logging to file: {settings.LOG_FILENAME}")
        except OSError as e:
            logger.error(f"Failed to configure file logger for {settings.LOG_FILENAME}: {e}", exc_info=True)

    # Quiet the HTTP stack unless we are debugging requests ourselves
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.debug(f"Logging setup complete. Application log level set to: {log_level_name}")
    return logger
