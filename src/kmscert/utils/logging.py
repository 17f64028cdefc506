import logging
import sys

from ..config import LOG_LEVEL


def get_logger(debug: bool = False):
    logger = logging.getLogger("kmscert")
    if not logger.handlers:
        # stderr: stdout may carry the certificate itself
        h = logging.StreamHandler(sys.stderr)
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(message)s")
        h.setFormatter(fmt)
        logger.addHandler(h)
        logger.setLevel(LOG_LEVEL.upper())
    if debug:
        logger.setLevel(logging.DEBUG)
    return logger
