import os
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from tutorbook.database import Base  # noqa: E402
from tutorbook.models.appointment import Appointment  # noqa: E402
from tutorbook.models.slot import Slot  # noqa: E402
from tutorbook.models.user import User  # noqa: E402
from tutorbook.services.booking_engine import BookingEngine  # noqa: E402


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    tables = [User.__table__, Slot.__table__, Appointment.__table__]
    Base.metadata.create_all(bind=engine, tables=tables)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine, tables=tables)
        engine.dispose()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 1, 1, 8, 0))


@pytest.fixture
def booking_engine(db, clock) -> BookingEngine:
    return BookingEngine(db, clock=clock)
