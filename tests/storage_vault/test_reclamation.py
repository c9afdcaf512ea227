"""Tests for HandleTracker."""

import gc
from unittest.mock import Mock

from storage_vault.reclamation import HandleTracker


class Owner:
    """Weak-referenceable stand-in for a connector."""


class TestHandleTracker:
    """Test handle registration and reclamation."""

    def test_tracker_is_singleton(self) -> None:
        """Test that every construction returns the same tracker."""
        assert HandleTracker() is HandleTracker()

    def test_unreachable_owner_releases_handle(self) -> None:
        """Test that collecting the owner releases its handle."""
        tracker = HandleTracker()
        release = Mock()
        handle = object()
        owner = Owner()

        tracker.register(owner, handle, release)
        assert tracker.is_tracked(owner)

        del owner
        gc.collect()

        release.assert_called_once_with(handle)

    def test_deregister_prevents_release(self) -> None:
        """Test that an explicitly deregistered handle is not released later."""
        tracker = HandleTracker()
        release = Mock()
        handle = object()
        owner = Owner()
        tracker.register(owner, handle, release)

        returned = tracker.deregister(owner)
        del owner
        gc.collect()

        assert returned is handle
        release.assert_not_called()

    def test_deregister_unknown_owner_returns_none(self) -> None:
        """Test deregistering an owner that was never registered."""
        assert HandleTracker().deregister(Owner()) is None

    def test_reregister_replaces_previous_handle(self) -> None:
        """Test that only the newest handle of an owner is tracked."""
        tracker = HandleTracker()
        release = Mock()
        owner = Owner()
        first, second = object(), object()

        tracker.register(owner, first, release)
        tracker.register(owner, second, release)
        del owner
        gc.collect()

        release.assert_called_once_with(second)

    def test_release_all_releases_live_handles(self) -> None:
        """Test the explicit bulk release used at shutdown."""
        tracker = HandleTracker()
        release = Mock()
        owners = [Owner(), Owner()]
        for owner in owners:
            tracker.register(owner, object(), release)

        assert tracker.tracked_count() == 2
        assert tracker.release_all() == 2
        assert tracker.tracked_count() == 0
        assert release.call_count == 2

    def test_release_failure_is_not_raised(self) -> None:
        """Test that a failing release during collection is only logged."""
        tracker = HandleTracker()
        release = Mock(side_effect=OSError("already closed"))
        owner = Owner()
        tracker.register(owner, object(), release)

        del owner
        gc.collect()

        release.assert_called_once()
