"""
Process-wide logging setup. Call setup_logging() once at startup.
"""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_NOISY_LOGGERS = ("sqlalchemy.engine", "passlib", "multipart")


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
