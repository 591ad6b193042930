"""Shared fixtures for the combat engine tests."""

import pytest

from dungeon_arena.sim.content.registry import ContentRegistry


@pytest.fixture(scope="module")
def registry() -> ContentRegistry:
    """Module-scoped registry with the bundled content loaded once."""
    return ContentRegistry.load_defaults()
