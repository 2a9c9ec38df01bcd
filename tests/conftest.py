"""
Shared fixtures for the sub_events tests
"""
import asyncio

import pytest

from sub_events import SubEvent


class Recorder:
    """Callable that remembers every value it was called with"""

    def __init__(self, name: str = "rec", log: list = None):
        self.name = name
        self.calls = []
        self.log = log

    def __call__(self, data):
        self.calls.append(data)
        if self.log is not None:
            self.log.append((self.name, data))


@pytest.fixture
def event():
    """Fresh unlimited event"""
    return SubEvent()


@pytest.fixture
def log():
    """Shared delivery log: (recorder name, value) tuples in call order"""
    return []


@pytest.fixture
def recorder(log):
    """Factory for recorders writing into the shared log"""
    def make(name: str = "rec") -> Recorder:
        return Recorder(name, log)
    return make


@pytest.fixture
def flush():
    """Lets the running loop process scheduled callbacks and tasks"""
    async def run(turns: int = 5):
        for _ in range(turns):
            await asyncio.sleep(0)
    return run
