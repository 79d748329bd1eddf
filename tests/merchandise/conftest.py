import threading
from datetime import UTC, datetime, timedelta

import pytest


class StepClock:
    """Deterministic clock: every reading advances time by ``step``."""

    def __init__(self, start=datetime(2024, 1, 1, 9, 0, tzinfo=UTC), step=timedelta(minutes=1)):
        self.current = start
        self.step = step
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            now = self.current
            self.current += self.step
            return now

    def advance(self, **kwargs):
        with self._lock:
            self.current += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Push the merchandise domain context before each test, pop it after."""
    from merchandise.domain import merchandise

    ctx = merchandise.domain_context()
    ctx.push()

    yield

    ctx.pop()


@pytest.fixture
def db_engine(tmp_path):
    from merchandise.domain import create_db_engine
    from merchandise.utils.db import drop_db, setup_db

    engine = create_db_engine(f"sqlite:///{tmp_path / 'merchandise.db'}", echo=False)
    setup_db(engine)

    yield engine

    drop_db(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    from merchandise.domain import create_session_factory

    return create_session_factory(db_engine)


@pytest.fixture
def collaborators():
    from merchandise.collaborators import fake_collaborators

    return fake_collaborators()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def lifecycle(session_factory, collaborators, clock):
    from merchandise.item.lifecycle import create_lifecycle_engine

    return create_lifecycle_engine(session_factory, collaborators=collaborators, clock=clock)


@pytest.fixture
def make_item(session_factory, collaborators, clock):
    """Register an item and, if asked, place it directly in ``state``.

    Placing writes the state and a seed history record without going through
    the engine, so no hooks run. Collaborator call logs are cleared afterwards.
    """
    from merchandise.item.item import Item, ItemHistory
    from merchandise.item.registration import register_item

    counter = iter(range(1, 10_000))

    def _make(state=None, item_number=None, **fields):
        item_number = item_number or f"ITEM-{next(counter):04d}"
        register_item(session_factory, item_number, collaborators=collaborators, clock=clock, source="test", **fields)

        if state is not None:
            with session_factory() as session, session.begin():
                item = session.query(Item).filter_by(item_number=item_number).one()
                item.state = state
                session.add(ItemHistory(item_number=item_number, state=state, source="seed", created_at=clock()))

        collaborators.notifications.reset()
        collaborators.jobs.enqueued.clear()
        collaborators.jobs.calls.clear()
        collaborators.pricing.calls.clear()
        return item_number

    return _make


@pytest.fixture
def load_item(session_factory):
    from merchandise.item.repository import ItemRepository

    def _load(item_number):
        with session_factory() as session:
            return ItemRepository(session).get(item_number)

    return _load


@pytest.fixture
def history_of(session_factory):
    from merchandise.item.repository import ItemRepository

    def _history(item_number):
        with session_factory() as session:
            return [(record.state, record.source) for record in ItemRepository(session).history(item_number)]

    return _history
