"""
Logging Configuration
Sets up the package logger.
"""
import logging
import sys


def setup_logging(level=logging.INFO, log_file=None, fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s'):
    r""" Configures the logger for the 'tubeUnwrap3D' namespace. All modules log through children of this logger

    Parameters
    ----------
    level : int
        logging level e.g. logging.DEBUG, logging.INFO
    log_file : str
        optional path to additionally save logs to a file
    fmt : str
        format string of the log records

    Returns
    -------
    logger : logging.Logger
        the configured package logger

    """
    logger = logging.getLogger("tubeUnwrap3D")
    logger.setLevel(level)

    # avoid duplicate logs if called more than once
    if logger.hasHandlers():
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(fmt, datefmt='%H:%M:%S')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized.")

    return logger
