"""Pytest fixtures shared across suites."""

from __future__ import annotations

import pytest

from fakes import FakeCatalogClient, FakeVision


@pytest.fixture
def fake_catalog() -> FakeCatalogClient:
    return FakeCatalogClient()


@pytest.fixture
def fake_vision() -> FakeVision:
    return FakeVision()
