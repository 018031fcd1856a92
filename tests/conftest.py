import logging

import pytest


@pytest.fixture(autouse=True)
def reset_sentinel_logger():
    """Drop handlers the CLI attaches so they don't outlive a test's streams."""
    yield
    logger = logging.getLogger("sentinel")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
