import asyncio
import math
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Ensure the backend root (containing the `uwguessr` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from uwguessr.config import Settings
from uwguessr.database.models import Photo as PhotoRow
from uwguessr.database.session import build_engine, build_session_factory, init_db
from uwguessr.main import create_app
from uwguessr.models.game import Photo
from uwguessr.services.scoring import EARTH_RADIUS_M

TODAY = "2026-10-17"

# Dana Porter Library, University of Waterloo
CAMPUS_LAT = 43.4723
CAMPUS_LNG = -80.5417


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_790_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def north_of(lat: float, lng: float, meters: float):
    """The point ``meters`` due north of (lat, lng)."""
    return lat + math.degrees(meters / EARTH_RADIUS_M), lng


def make_photo(index: int, lat=CAMPUS_LAT, lng=CAMPUS_LNG) -> Photo:
    return Photo(
        id=f"photo-{index}",
        url=f"https://cdn.example.com/photos/{index}.jpg",
        lat=lat,
        lng=lng,
        building="DP",
        floor=1,
        added_by="tester",
        status="approved",
    )


async def seed_photos(session_factory, count: int = 8, approved: bool = True) -> None:
    async with session_factory() as session:
        for i in range(count):
            session.add(PhotoRow(
                id=f"photo-{i}",
                url=f"https://cdn.example.com/photos/{i}.jpg",
                lat=CAMPUS_LAT + i * 0.001,
                lng=CAMPUS_LNG,
                building="DP",
                floor=i % 3,
                added_by="tester",
                status="approved" if approved else "pending",
            ))
        await session.commit()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture()
async def session_factory(database_url):
    engine = build_engine(database_url)
    await init_db(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture()
def settings(database_url):
    return Settings(
        DATABASE_URL=database_url,
        RATE_LIMIT_REQUESTS=2,
        RATE_LIMIT_WINDOW_SECONDS=60,
        LOG_LEVEL="DEBUG",
    )


def _seed_database(database_url: str, count: int) -> None:
    async def run():
        engine = build_engine(database_url)
        await init_db(engine)
        await seed_photos(build_session_factory(engine), count)
        await engine.dispose()

    asyncio.run(run())


@pytest.fixture()
def client(settings, clock):
    _seed_database(settings.DATABASE_URL, 8)
    application = create_app(settings)
    application.state.today = lambda: TODAY
    application.state.clock = clock
    with TestClient(application) as test_client:
        yield test_client
