# storefront_sync/utils/logger.py
import logging
import os

LEVELS = {"ERROR": 40, "WARN": 30, "INFO": 20, "DEBUG": 10, "NONE": 100}

logger = logging.getLogger("storefront_sync")
logger.setLevel(LEVELS.get(os.getenv("LOG_LEVEL", "INFO").upper(), 20))


def debug(msg): logger.debug(msg)
def info(msg):  logger.info(msg)
def warn(msg):  logger.warning(msg)
def error(msg): logger.error(msg)
