"""Shared fixtures."""

from __future__ import annotations

import pytest

from support import EngineHarness, FakeSubjectProvider


@pytest.fixture
def provider() -> FakeSubjectProvider:
    return FakeSubjectProvider()


@pytest.fixture
def harness(provider: FakeSubjectProvider) -> EngineHarness:
    return EngineHarness(provider)
