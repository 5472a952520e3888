# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from meet_sync.api.dependencies.pipeline import get_pipeline
from meet_sync.main import create_app


class FakePipeline:
    """
    Stand-in for MeetActivityPipeline used by route tests.

    Each coroutine records its call and returns (or raises) whatever the
    test configured on the instance.
    """

    def __init__(self):
        self.calls = []
        self.result = None
        self.error = None

    async def _respond(self, name, *args):
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error
        return self.result

    async def run_single_date(self, day):
        return await self._respond("run_single_date", day)

    async def run_range(self, start, end):
        return await self._respond("run_range", start, end)

    async def run_past_days(self, days):
        return await self._respond("run_past_days", days)

    async def lookup_conference(self, conference_id):
        return await self._respond("lookup_conference", conference_id)


@pytest.fixture
def fake_pipeline() -> FakePipeline:
    return FakePipeline()


@pytest.fixture
def client(fake_pipeline) -> TestClient:
    """
    TestClient over a fresh app whose pipeline dependency is the fake.
    """
    app = create_app()
    app.dependency_overrides[get_pipeline] = lambda: fake_pipeline
    with TestClient(app) as test_client:
        yield test_client
