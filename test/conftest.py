import pytest

from roninscan.adapters.memory_store import InMemoryRecordStore
from factories import FakeChain


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()
