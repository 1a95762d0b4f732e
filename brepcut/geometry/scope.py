"""Scoped ownership of transient geometry copies.

Transformed copies handed out by a host kernel may hold native resources.
``GeometryScope`` tracks them for one operation and releases them when the
scope exits, including the error path.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class HostKernel(Protocol):
    def release(self, item: Any) -> None:  # frees native resources of a transient copy
        ...


class GeometryScope:
    """Context manager releasing tracked transient geometry on exit."""

    def __init__(self, kernel: HostKernel | None = None) -> None:
        self.kernel = kernel
        self._items: list[Any] = []
        self._closed = False

    def __enter__(self) -> "GeometryScope":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    @property
    def tracked(self) -> int:
        return len(self._items)

    def track(self, item: T) -> T:
        """Register ``item`` for release and return it unchanged."""
        if self._closed:
            raise RuntimeError("GeometryScope is already closed")
        self._items.append(item)
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        items, self._items = self._items, []
        if self.kernel is None:
            return
        # Release in reverse acquisition order; keep going if one release fails
        failures = 0
        for item in reversed(items):
            try:
                self.kernel.release(item)
            except Exception as exc:
                failures += 1
                logger.warning("Failed to release transient geometry %r: %s", item, exc)
        if failures:
            logger.debug("GeometryScope closed with %d release failures", failures)


__all__ = ["HostKernel", "GeometryScope"]
