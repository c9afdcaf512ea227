"""Workspace-level pytest configuration and fixtures."""

import pytest

from storage_vault.reclamation import HandleTracker


@pytest.fixture(autouse=True, scope="function")
def isolate_handle_tracker():
    """Release every tracked native handle after each test.

    HandleTracker is a process-wide singleton; handles registered by one
    test must not be visible to the next.
    """
    yield

    HandleTracker().release_all()
