"""Shared pytest fixtures."""

import pytest

from fakes import FakeSite


@pytest.fixture
def site():
    """Empty fake site; tests register the routes they need."""
    return FakeSite()
