"""
Logging configuration for the image generation backend

Every module logs through a child of the "imagegen" logger, so one stdout
handler carries the service, provider and store messages with the deployment
environment stamped on each line.
"""
import logging
import sys
import os
from typing import Optional

ROOT_LOGGER_NAME = "imagegen"
ENVIRONMENT = os.environ.get("ENVIRONMENT", "production")

# httpx logs every request URL at INFO, and provider URLs carry the prompt
QUIET_LIBRARIES = ("httpx", "httpcore")

def setup_logger(name: str = ROOT_LOGGER_NAME, level: Optional[str] = None) -> logging.Logger:
    """
    Set up a logger with a stdout handler

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL), LOG_LEVEL when omitted

    Returns:
        Configured logger instance
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level, logging.INFO))

    # Avoid duplicate handlers on re-import
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level, logging.INFO))
    handler.setFormatter(logging.Formatter(
        fmt=f'%(asctime)s - [{ENVIRONMENT}] %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(handler)

    for library in QUIET_LIBRARIES:
        logging.getLogger(library).setLevel(logging.WARNING)

    return logger

def get_logger(module_name: str) -> logging.Logger:
    """Child of the service logger for a module, e.g. get_logger(__name__) -> imagegen.crud"""
    if module_name == ROOT_LOGGER_NAME or module_name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(module_name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{module_name}")

logger = setup_logger()
