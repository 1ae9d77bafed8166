"""Shared fixtures for Bastion MCP tests."""

from collections.abc import Iterator

import pytest

from bastion_mcp.services import reset_state


@pytest.fixture(autouse=True)
def clean_state() -> Iterator[None]:
    """Drop the global dependency container around each test."""
    reset_state()
    yield
    reset_state()
