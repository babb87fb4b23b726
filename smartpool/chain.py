"""Block clock, address allocation and the per-call transaction journal.

Controller calls are all-or-nothing. Python gives no automatic rollback, so
every stateful object (controller, engine, tokens) registers itself with the
journal before its first mutation inside a call. If the call raises, each
registered object is restored from its snapshot in reverse order and the
exception propagates unchanged.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


class Journaled(Protocol):
    """Object whose state can be captured and restored by the journal."""

    def _snapshot(self) -> Any: ...

    def _restore(self, state: Any) -> None: ...


class Chain:
    """Shared execution environment: current block and transaction journal.

    Attributes:
        block_number: Current block height. Advanced explicitly with mine().
    """

    def __init__(self, block_number: int = 1) -> None:
        self.block_number = block_number
        self._address_nonce = 0
        self._journal: list[tuple[Journaled, Any]] | None = None
        self._touched: set[int] = set()

    def mine(self, blocks: int = 1) -> int:
        """Advance the block height and return the new height."""
        if blocks < 0:
            raise ValueError(f"Cannot mine a negative number of blocks: {blocks}")
        self.block_number += blocks
        return self.block_number

    def new_address(self, label: str = "account") -> str:
        """Allocate a fresh, deterministic address."""
        self._address_nonce += 1
        digest = hashlib.sha256(f"{label}:{self._address_nonce}".encode()).hexdigest()
        return "0x" + digest[:40]

    @property
    def in_transaction(self) -> bool:
        return self._journal is not None

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run a block as a single all-or-nothing call.

        Nested scopes join the outermost one; only the outermost scope
        commits or rolls back.
        """
        if self._journal is not None:
            yield
            return

        self._journal = []
        self._touched = set()
        try:
            yield
        except BaseException as err:
            journal = self._journal
            self._journal = None
            for obj, state in reversed(journal):
                obj._restore(state)
            logger.warning(
                "call_rolled_back",
                error=str(err),
                restored_objects=len(journal),
            )
            raise
        finally:
            self._journal = None
            self._touched = set()

    def touch(self, obj: Journaled) -> None:
        """Record obj's state before its first mutation in the current call."""
        if self._journal is None:
            return
        key = id(obj)
        if key in self._touched:
            return
        self._touched.add(key)
        self._journal.append((obj, obj._snapshot()))
