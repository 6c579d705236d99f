# FILE: shared/logging_setup.py

import logging
import logging.handlers
import sys
from typing import Optional

from config import config

LOGGER = logging.getLogger(__name__)


def setup_logging(log_file: Optional[str] = None, level: Optional[str] = None) -> None:
    """Rotating file log plus console output. Does nothing if the root logger is already configured."""
    if logging.getLogger().hasHandlers():
        return
    log_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    file_handler = logging.handlers.RotatingFileHandler(
        log_file or config.LOG_FILE, maxBytes=5*1024*1024, backupCount=5, encoding='utf-8'
    )
    file_handler.setFormatter(log_formatter)
    file_handler.setLevel(logging.DEBUG)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    console_handler.setLevel(level or config.LOG_LEVEL)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    LOGGER.info("Logging configured successfully.")
