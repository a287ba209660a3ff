import logging
import os
from unittest.mock import patch

import pytest

from i18n_sheets.logging_config import LOGGER_NAME

CREDENTIAL_ENV_VARS = (
    "GOOGLE_SHEETS_CLIENT_EMAIL",
    "GOOGLE_SHEETS_PRIVATE_KEY",
    "GOOGLE_SHEETS_SPREADSHEET_ID",
    "SHEET_RANGE",
    "SHEETS_REQUESTS_PER_MINUTE",
)


@pytest.fixture(autouse=True)
def isolated_environment():
    """
    Keep real credentials out of the tests and reset the package logger.

    A developer's shell or .env may export the Google Sheets variables; tests
    that need them set their own values with patch.dict.
    """
    clean_env = {key: value for key, value in os.environ.items() if key not in CREDENTIAL_ENV_VARS}
    with patch.dict(os.environ, clean_env, clear=True):
        yield

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        try:
            handler.close()
        except Exception as e:
            logging.error(f"Failed to close log handler: {e}")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
