import os
from datetime import date, datetime, timedelta, timezone

# Settings are read on import of src
os.environ.setdefault('SECRET_KEY', 'test-secret-key')
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SERVICE_NAME'] = 'all'
os.environ['MAIL_ENABLED'] = 'false'

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402

from src.core.resilience import circuit_breakers  # noqa: E402
from src.database import Base, SessionLocal, engine, init_db  # noqa: E402
from src.main import create_app  # noqa: E402
from src.trains.schemas import TrainSchema  # noqa: E402
from src.trains.service import TrainService  # noqa: E402
from tests.util_constant import DEFAULT_STOPS  # noqa: E402


def travel_day(offset: int = 2) -> date:
    """A date safely in the future in UTC"""
    return datetime.now(timezone.utc).date() + timedelta(days=offset)


def make_train(prn, grids, stops=DEFAULT_STOPS, name=None) -> TrainSchema:
    """Train with the given grids keyed by date and the same stop list on each date"""
    schedules = {}
    for day in grids:
        departure = datetime.combine(day, datetime.min.time()) + timedelta(hours=6)
        schedules[day.isoformat()] = [
            {'name': station, 'arrivalTime': (departure + timedelta(minutes=minutes)).isoformat()}
            for station, minutes in stops
        ]
    return TrainSchema.model_validate({
        'prn': prn,
        'trainName': name or f'Train {prn}',
        'seats': {day.isoformat(): grid for day, grid in grids.items()},
        'schedules': schedules,
    })


@pytest.fixture(autouse=True)
def clean_database():
    Base.metadata.drop_all(bind=engine)
    init_db()
    circuit_breakers.reset()
    yield
    circuit_breakers.reset()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def add_train(db):
    def _add_train(prn, grids, stops=DEFAULT_STOPS):
        return TrainService(db).add_train(make_train(prn, grids, stops))

    return _add_train


@pytest.fixture
def client():
    with TestClient(create_app('all')) as test_client:
        yield test_client
