"""Logging configuration for the eksdeploy package."""
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from .config import Config

# Libraries that are too chatty at INFO
NOISY_LOGGERS = ("urllib3", "kubernetes", "requests")


def setup_logging(debug_mode: bool = False, log_file: Optional[str] = None) -> None:
    """Configure root logging based on debug mode."""
    log_level = logging.DEBUG if debug_mode else getattr(logging, Config.LOG_LEVEL, logging.INFO)
    handlers = [logging.StreamHandler()]

    log_file = log_file or Config.LOG_FILE
    if log_file:
        path = Path(log_file).expanduser().absolute()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=3)
        )

    logging.basicConfig(
        level=log_level,
        format=Config.LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # Disable debug logging for noisy libraries
    if not debug_mode:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
