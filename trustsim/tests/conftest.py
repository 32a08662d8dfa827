"""
Shared fixtures for trustsim tests.
"""

import pytest

from trustsim.entities import Registry
from trustsim.project import Project
from trustsim.randomness import RandomSource


@pytest.fixture
def registry():
    return Registry()


@pytest.fixture
def rng():
    return RandomSource(1234)


@pytest.fixture
def project(registry, rng):
    return Project(registry, rng)
