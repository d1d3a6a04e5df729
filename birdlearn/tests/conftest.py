"""
Shared fixtures for the birdlearn test suite.
"""

import random

import pytest

from birdlearn.domain.mastery import MemoryMasteryStore
from birdlearn.scheduling import AdaptiveScheduler
from birdlearn.tests.helpers import BIRDS, FakeClock


@pytest.fixture
def birds():
    return list(BIRDS)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryMasteryStore()


@pytest.fixture
def scheduler(store, clock):
    return AdaptiveScheduler(store, rng=random.Random(42), clock=clock)
