import logging

import pytest

from numtower.constants import constants
from numtower.env       import environment

RESTORED_FIELDS = (
    'default_digits',
    'default_rounding',
    'negative_sqrt',
    'max_constant_digits',
    'ascii_only',
    'dark_mode',
    'is_interactive',
)


@pytest.fixture(autouse=True)
def restore_environment():
    """Each test starts from, and leaves behind, the default environment"""
    saved = {name: getattr(environment, name) for name in RESTORED_FIELDS}
    yield
    for name, value in saved.items():
        setattr(environment, name, value)
    logger = logging.getLogger('numtower')
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    constants.clear_cache()
