"""Shared test fixtures for the nudge engine."""

import random
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from notifications.dispatch import NotificationStatus  # noqa: E402
from notifications.state import EngineState  # noqa: E402
from notifications.storage import EngineStateStore  # noqa: E402

# Tuesday
TUESDAY_10AM = datetime(2024, 1, 16, 10, 0)


class FakeDispatcher:
    """Records schedule calls; status and result are configurable."""

    def __init__(self, result=True, authorized=True, enabled=True):
        self.result = result
        self.authorized = authorized
        self.enabled = enabled
        self.calls = []

    async def get_status(self):
        return NotificationStatus(authorized=self.authorized, enabled=self.enabled)

    async def schedule_notification(self, category, title, body, delivery):
        self.calls.append(
            {"category": category, "title": title, "body": body, "delivery": delivery}
        )
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def now():
    return TUESDAY_10AM


@pytest.fixture
def fresh_state(now):
    """Empty state whose last app open is long enough ago not to suppress."""
    return EngineState(last_app_open_timestamp=now - timedelta(days=1))


@pytest.fixture
def store(tmp_path, fresh_state):
    s = EngineStateStore(tmp_path / "state.json")
    s.state = fresh_state
    return s


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def completions():
    """Six completions on distinct days: four in the 09:00 slot, two at 18:00."""
    base = datetime(2024, 1, 1)
    times = [(9, 5), (9, 20), (9, 10), (18, 0), (18, 10), (9, 25)]
    return [base + timedelta(days=i, hours=h, minutes=m) for i, (h, m) in enumerate(times)]
