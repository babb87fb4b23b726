"""Reentrancy guard and call wrappers for controller entry points.

Every state-mutating entry point runs inside one journal scope and holds the
controller's lock for the whole call. The lock is released on every exit
path, so a failed call never leaves the controller locked. Read-only entry
points only check that the lock is free.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import structlog

from smartpool.errors import ReentrancyError

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


class Guard:
    """Two-state latch: free or locked."""

    __slots__ = ("_mutex",)

    def __init__(self) -> None:
        self._mutex = False

    @property
    def locked(self) -> bool:
        return self._mutex

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Acquire the lock for the duration of the block.

        Raises:
            ReentrancyError: If the lock is already held
        """
        if self._mutex:
            logger.warning("reentrant_call_rejected")
            raise ReentrancyError(detail="controller call already in progress")
        self._mutex = True
        try:
            yield
        finally:
            self._mutex = False

    def check_free(self) -> None:
        """Reject reads while a call is in progress.

        Raises:
            ReentrancyError: If the lock is held
        """
        if self._mutex:
            raise ReentrancyError(detail="read during controller call")


def guarded(method: F) -> F:
    """Run a controller method atomically under the controller's lock.

    The method must take a keyword-only ``sender``. A LogCall event is
    recorded for each accepted call.
    """

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, sender: str, **kwargs: Any) -> Any:
        with self.chain.atomic(), self._guard.hold():
            self._log_call(method.__name__, sender)
            return method(self, *args, sender=sender, **kwargs)

    return wrapper  # type: ignore[return-value]


def view(method: F) -> F:
    """Reject a read-only controller method while a call is in progress."""

    @functools.wraps(method)
    def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
        self._guard.check_free()
        return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
