# CORS Proxy
# License: MIT License
# Description: Console and rotating file logging for the CORS proxy.
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from rich.logging import RichHandler

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``corsproxy`` logger.

    Console output goes through rich. When ``log_file`` is given, records are
    also written to a rotating file.

    Args:
        verbose (bool): Emit debug diagnostics
        log_file (str): Optional path of the rotating log file

    Returns:
        logging.Logger: The package logger
    """
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [RichHandler(show_path=False, rich_tracebacks=True)]

    if log_file:
        file_handler = RotatingFileHandler(log_file, maxBytes=10_000_000, backupCount=1)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(file_handler)

    logger = logging.getLogger('corsproxy')
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setLevel(level)
        logger.addHandler(handler)

    # Werkzeug access lines share the console
    logging.getLogger('werkzeug').setLevel(logging.INFO)
    logging.getLogger('werkzeug').handlers = handlers[:1]
    return logger
