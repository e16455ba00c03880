"""Test-wide setup for every package under backend/.

Loads ``.env.tests`` and renders structlog events as plain key=value lines
through stdlib logging, so ``caplog.text`` can be matched against event
names and fields.
"""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import SHARED_PROCESSORS

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")


def _configure_test_logging() -> None:
    structlog.configure(
        processors=[
            *SHARED_PROCESSORS,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


_configure_test_logging()


@pytest.fixture(autouse=True)
def _test_logging():
    # setup_logging() reconfigures structlog globally; start each test from the test renderer
    _configure_test_logging()
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()
