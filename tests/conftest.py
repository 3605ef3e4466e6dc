"""Shared fixtures for proctrend tests."""

import pytest

from fakes import FakeProcess


@pytest.fixture
def fake_process() -> FakeProcess:
    return FakeProcess()
