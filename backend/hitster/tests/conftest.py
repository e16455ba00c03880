import pytest

from hitster.handlers.registry import default_handlers
from hitster.messaging.router import MessageRouter
from hitster.tests.helpers.session import FakeClock, make_session_manager
from shared.db import Database


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "hitster.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_manager(db, clock):
    return make_session_manager(db, clock)


@pytest.fixture
def message_router(session_manager):
    return MessageRouter(session_manager, default_handlers())
