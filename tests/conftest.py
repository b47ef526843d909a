"""
Общие фикстуры: временная база, фейковый Media Fetcher, ручные часы.
"""
import asyncio

import pytest
import pytest_asyncio

import database
from errors import AcquisitionError
from services.photo_acquirer import PhotoAcquirer
from services.post_assembler import PostAssembler
from utils.clock import ManualClock
from utils.media_group import MediaGroupAggregator


class FakeFetcher:
    """Отдаёт b"bytes:<ref>"; ссылки из failing падают, hold() придерживает загрузку."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}

    def hold(self, photo_ref: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[photo_ref] = gate
        return gate

    async def fetch(self, photo_ref: str) -> bytes:
        self.calls.append(photo_ref)
        gate = self.gates.get(photo_ref)
        if gate is not None:
            await gate.wait()
        if photo_ref in self.failing:
            raise AcquisitionError(photo_ref, "HTTP 404")
        return f"bytes:{photo_ref}".encode()


class RecordingNotifier:
    def __init__(self):
        self.calls = []

    async def __call__(self, origin, post, error):
        self.calls.append((origin, post, error))


@pytest_asyncio.fixture
async def db(tmp_path):
    await database.init_db(str(tmp_path / "posts.db"))
    yield
    await database.close_db()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def acquirer(fetcher, tmp_path):
    return PhotoAcquirer(fetcher, tmp_path / "photos", max_concurrency=4)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def assembler(db, notifier):
    return PostAssembler(notifier=notifier)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def aggregator(acquirer, assembler, clock):
    return MediaGroupAggregator(acquirer, assembler, delay=2.0, clock=clock)
