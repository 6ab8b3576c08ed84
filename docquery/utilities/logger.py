"""
Package logger.

Everything in docquery logs through `logger` below: store handle setup failures and wrapped driver errors at ERROR,
per-query "Database Usage Logging" timings at DEBUG. Look it up as `log.logger` at call time rather than importing the
name, so a logger installed with set_logger() takes effect everywhere.
"""

import logging

# Module-level logger
logger: logging.Logger = logging.getLogger('docquery')
logger.setLevel(logging.WARNING)  # Query timings are DEBUG, so they stay quiet by default

def set_logger(custom_logger: logging.Logger) -> None:
    """Route docquery's messages to the host application's logger."""
    global logger
    logger = custom_logger

def set_log_level(level: int) -> None:
    """Set the level of the logger currently in use. logging.DEBUG shows per-query timings."""
    logger.setLevel(level)
