import os
from datetime import datetime, timezone

import pytest

# Keep tests offline: opik spans become no-ops.
os.environ.setdefault("OPIK_TRACK_DISABLE", "true")

from coachpilot.config import Settings
from coachpilot.core.engine import CoachingEngine
from coachpilot.core.kv_store import InMemoryKeyValueStore

FIXED_NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def kv():
    return InMemoryKeyValueStore()


@pytest.fixture
def settings():
    return Settings(storage_path=None, opik_api_key="")


@pytest.fixture
def engine(kv, settings):
    return CoachingEngine(kv, settings, clock=lambda: FIXED_NOW)
