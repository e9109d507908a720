"""Logging configuration for TimeNode processes."""
import logging
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure root logging with a stream handler and an optional file handler."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    # web3 request logging is too chatty at debug level
    logging.getLogger("web3").setLevel(logging.WARNING)
