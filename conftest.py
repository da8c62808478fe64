import itertools
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from twittish.engine import Engine
from twittish.kv import FileStore, MemoryStore
from twittish.models import State
from twittish.persistence import Persistence

TEST_DATA_DIR = Path("data-tests")
EPOCH = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe and re-create data-tests/ before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    TEST_DATA_DIR.mkdir()
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def new_id():
    """Deterministic ids: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


class SteppingClock:
    """Each call returns a time one second after the previous one."""

    def __init__(self, start: datetime = EPOCH, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def file_store():
    return FileStore(TEST_DATA_DIR)


@pytest.fixture
def engine(store, new_id, clock):
    """Engine over an empty state (no seed), nobody logged in."""
    return Engine(Persistence(store), State(), new_id=new_id, now=clock)
