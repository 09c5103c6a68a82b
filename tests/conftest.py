"""Shared fixtures: an isolated, file-backed store per test."""
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from tarot_scores.config import StoreConfig
from tarot_scores.store import Store


class TickingClock:
    """Deterministic clock: each call returns one minute later than the previous one."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        t = self.now
        self.now += timedelta(minutes=1)
        return t


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock(datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc))


@pytest.fixture
async def store(tmp_path: Path, clock: TickingClock):
    s = await Store.open(StoreConfig.in_directory(tmp_path, seed=False), clock=clock)
    yield s
    await s.close()
