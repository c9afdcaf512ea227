"""Process-wide tracking of native filesystem handles.

Each connector registers its handle once constructed. A ``weakref.finalize``
hook releases the handle if the connector is garbage-collected without
being closed. This is only a leak guard: ``close()`` on the connector is
the primary release path and deregisters the handle first.
"""

from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Callable
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

ReleaseFn = Callable[[Any], None]


def _release_quietly(release: ReleaseFn, handle: Any, owner_name: str) -> None:
    # Runs from the garbage collector or at interpreter exit.
    try:
        release(handle)
        logger.debug("Reclaimed native handle of unreachable %s", owner_name)
    except Exception as e:
        logger.warning("Failed to reclaim native handle of %s: %s", owner_name, e)


class HandleTracker:
    """Singleton registry of live native handles, keyed by their owner."""

    _lock: ClassVar[threading.Lock] = threading.Lock()
    _instance: HandleTracker | None = None
    _finalizers: dict[int, weakref.finalize]
    _registry_lock: threading.Lock

    def __new__(cls) -> HandleTracker:
        """Create or return the singleton tracker."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._finalizers = {}
                    instance._registry_lock = threading.Lock()
                    cls._instance = instance
        return cls._instance

    def register(self, owner: object, handle: Any, release: ReleaseFn) -> None:
        """Track ``handle`` for the lifetime of ``owner``.

        Args:
            owner: Object whose collection should trigger release.
            handle: Native resource to release.
            release: Callable that frees the handle. It must not reference
                ``owner``, or the owner never becomes unreachable.

        """
        key = id(owner)
        finalizer = weakref.finalize(
            owner, _release_quietly, release, handle, type(owner).__name__
        )
        with self._registry_lock:
            previous = self._finalizers.pop(key, None)
            self._finalizers[key] = finalizer
        if previous is not None:
            previous.detach()
        # Drop the entry once the finalizer has fired.
        weakref.finalize(owner, self._forget, key, finalizer)
        logger.debug("Tracking native handle for %s", type(owner).__name__)

    def deregister(self, owner: object) -> Any | None:
        """Stop tracking ``owner`` and return its handle, if any."""
        with self._registry_lock:
            finalizer = self._finalizers.pop(id(owner), None)
        if finalizer is None:
            return None
        detached = finalizer.detach()
        if detached is None:
            return None
        _, _, args, _ = detached
        return args[1]

    def is_tracked(self, owner: object) -> bool:
        """Return True if a live handle is registered for ``owner``."""
        with self._registry_lock:
            finalizer = self._finalizers.get(id(owner))
        return finalizer is not None and finalizer.alive

    def tracked_count(self) -> int:
        """Return the number of live tracked handles."""
        with self._registry_lock:
            return sum(1 for f in self._finalizers.values() if f.alive)

    def release_all(self) -> int:
        """Release every tracked handle now. Returns how many were released."""
        with self._registry_lock:
            finalizers = list(self._finalizers.values())
            self._finalizers.clear()
        released = 0
        for finalizer in finalizers:
            if finalizer.alive:
                finalizer()
                released += 1
        return released

    def _forget(self, key: int, finalizer: weakref.finalize) -> None:
        with self._registry_lock:
            if self._finalizers.get(key) is finalizer:
                del self._finalizers[key]
