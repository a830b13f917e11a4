from datetime import datetime
from typing import List

import pytest

from strata.framework.configuration.flat import FlatDocumentStore
from strata.framework.configuration.models import LoggingConfiguration, StoreSettings
from strata.framework.configuration.store import ConfigStore
from strata.infrastructure.caching import ExpiringCache
from strata.infrastructure.observability.factory import LoggerFactory, configure_logging


class FakeClock:
    """Manually advanced monotonic clock, in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWallClock:
    """Returns queued datetimes for backup timestamps; repeats the last one."""

    def __init__(self, *moments: datetime) -> None:
        self.moments: List[datetime] = list(moments) or [datetime(2024, 1, 1, 12, 0, 0)]

    def __call__(self) -> datetime:
        if len(self.moments) > 1:
            return self.moments.pop(0)
        return self.moments[0]


@pytest.fixture(autouse=True)
def quiet_logging():
    """Leave every logger without handlers between tests."""
    yield
    configure_logging(LoggingConfiguration())
    LoggerFactory.get_instance().reset()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ExpiringCache(default_ttl=60, clock=clock)


@pytest.fixture
def config_dir(tmp_path):
    directory = tmp_path / "Configs"
    directory.mkdir()
    return directory


@pytest.fixture
def wall_clock():
    return FakeWallClock(
        datetime(2024, 1, 1, 12, 0, 0),
        datetime(2024, 1, 1, 12, 0, 1),
        datetime(2024, 1, 1, 12, 0, 2),
        datetime(2024, 1, 1, 12, 0, 3),
    )


@pytest.fixture
def store(config_dir, cache, wall_clock):
    config_store = ConfigStore(
        settings=StoreSettings(config_directory=config_dir, watch_poll_interval=0.05),
        cache=cache,
        now=wall_clock
    )
    yield config_store
    config_store.close()


@pytest.fixture
def flat_store():
    return FlatDocumentStore()
