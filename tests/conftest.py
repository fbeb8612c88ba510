"""Shared fixtures."""
import pytest

from tests.fakes import FakeStore


@pytest.fixture
def store():
    """Empty in-memory object store."""
    return FakeStore()
