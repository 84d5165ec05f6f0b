import sys

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def reset_logger():
    """Restore loguru's default sink after tests that configure file/console logging."""
    yield
    logger.remove()
    logger.add(sys.stderr)
