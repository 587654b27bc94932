"""
Logging helpers shared by the ordination toolkit and its scripts.
"""

import logging

LOGGER_NAME = 'ordination_tools'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_LEVELS = ('debug', 'info', 'warning', 'error', 'critical')


def setup_logger(log_file=None, log_level='INFO'):
    """
    Configure the toolkit logger.

    Parameters:
    -----------
    log_file : str, optional
        Path to a log file; messages always go to the console as well
    log_level : str
        One of DEBUG, INFO, WARNING, ERROR, CRITICAL

    Returns:
    --------
    logging.Logger
        The configured logger
    """
    level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Drop handlers from a previous call so messages are not duplicated
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def log_print(message, level='info'):
    """Log a message on the toolkit logger at the named level."""
    logger = logging.getLogger(LOGGER_NAME)
    if level.lower() not in LOG_LEVELS:
        logger.warning(f"Unknown log level '{level}' for message: {message}")
        return
    getattr(logger, level.lower())(message)
