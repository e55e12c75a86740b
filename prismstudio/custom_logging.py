import logging
from enum import StrEnum

LOG_FORMAT_DEBUG = "%(levelname)s - %(message)s - %(pathname)s - %(funcName)s %(lineno)d"
LOG_FORMAT_DEFAULT = "%(asctime)s %(levelname)s %(name)s - %(message)s"

# Loggers that flood the output below WARNING outside of debug runs
NOISY_LOGGERS = ("sqlalchemy.engine", "celery.worker.strategy", "httpx")

class LogLevels(StrEnum):
    debug = "DEBUG"
    info = "INFO"
    warn = "WARNING"
    error = "ERROR"

LEVEL_MAP = {
    LogLevels.debug: logging.DEBUG,
    LogLevels.info: logging.INFO,
    LogLevels.warn: logging.WARNING,
    LogLevels.error: logging.ERROR,
}

def configure_logging(log_level: str = LogLevels.error):
    """Configure root logging for the API process and the Celery worker."""
    log_level = str(log_level).upper()

    if log_level not in LEVEL_MAP:
        logging.basicConfig(level=logging.ERROR, format=LOG_FORMAT_DEFAULT)
        logging.warning(f"Unknown log level '{log_level}', falling back to ERROR")
        return

    if log_level == LogLevels.debug:
        logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT_DEBUG)
        return

    logging.basicConfig(level=LEVEL_MAP[LogLevels(log_level)], format=LOG_FORMAT_DEFAULT)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
