"""Shared fixtures for the OddsForge test suite."""

import pytest

from tests.factories import make_team


@pytest.fixture
def arsenal():
    return make_team("arsenal")


@pytest.fixture
def chelsea():
    return make_team("chelsea")


@pytest.fixture
def lakers():
    return make_team("lakers", sport="basketball", league="NBA")


@pytest.fixture
def celtics():
    return make_team("celtics", sport="basketball", league="NBA")
