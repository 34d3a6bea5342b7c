# mcpeek/pinglib/logger.py
import logging
import sys

from pinglib.config import LOG_LEVEL

log_level = getattr(logging, LOG_LEVEL, logging.WARNING)
log_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
# stdout carries the query report, so logs go to stderr
stream_handler = logging.StreamHandler(sys.stderr)
stream_handler.setFormatter(log_formatter)
_loggers = {}

def get_logger(name="mcpeek"):
    if name in _loggers: return _loggers[name]
    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    if not logger.hasHandlers():
        logger.addHandler(stream_handler)
    _loggers[name] = logger
    return logger

logger = get_logger()
