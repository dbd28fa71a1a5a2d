from collections import Counter

import pytest
from fastapi.testclient import TestClient

from finance_api.db import init_db
from finance_api.main import create_app
from finance_api.ratelimit import RateCounterError
from finance_api.settings import Settings


class FakeRateCounter:
    def __init__(self):
        self.counts = Counter()
        self.fail = False

    async def incr(self, key, window_seconds):
        if self.fail:
            raise RateCounterError("counter unavailable")
        self.counts[key] += 1
        return self.counts[key]


@pytest.fixture
def settings(tmp_path):
    settings = Settings(
        data_dir=tmp_path,
        db_path=tmp_path / "t.sqlite",
        rate_limit=1000,
        trust_forwarded_for=True,
    )
    init_db(settings)
    return settings


@pytest.fixture
def counter():
    return FakeRateCounter()


@pytest.fixture
def client(settings, counter):
    with TestClient(create_app(settings, counter=counter)) as test_client:
        yield test_client
