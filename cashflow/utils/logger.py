import logging
import os


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(name="cashflow", level=None):
    """Create the application logger with a single stream handler"""
    log = logging.getLogger(name)

    if not log.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)

    log.setLevel(level or os.getenv("LOG_LEVEL", "INFO"))
    log.propagate = False
    return log


logger = setup_logger()
