"""Shared fixtures for the scanner tests."""

from typing import List

import pytest

from builders import FakeLedger, FakeSession
from progress import ProgressUpdate


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def progress_events() -> List[ProgressUpdate]:
    """
    Collects every progress update emitted during a test.
    Use ``progress_events.append`` as the sink.
    """
    return []
