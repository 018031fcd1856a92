import logging
import os

LOGGER_NAME = "sentinel"


def setup_logger(name=LOGGER_NAME, level=logging.WARNING, log_file=None, console=True):
    """
    Set up and return a logger with a console and (optionally) a file handler.

    Args:
        name (str): The logger name. Module loggers under it inherit its handlers.
        level (int): Logging level.
        log_file (str): Optional path of a log file.
        console (bool): Whether to add a console handler (stderr).

    Returns:
        logging.Logger: The configured logger.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear out any existing handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if log_file:
        log_dir = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

    return logger
