"""Observability events emitted by the controller.

Events are notifications only; no component reads them back as input.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LogCall:
    """A guarded controller entry point was invoked."""

    caller: str
    method: str


@dataclass(frozen=True)
class LogJoin:
    caller: str
    token_in: str
    token_amount_in: int


@dataclass(frozen=True)
class LogExit:
    caller: str
    token_out: str
    token_amount_out: int


@dataclass(frozen=True)
class CapChanged:
    caller: str
    old_cap: int
    new_cap: int


@dataclass(frozen=True)
class NewTokenCommitted:
    token: str
    pool: str
    caller: str


Event = LogCall | LogJoin | LogExit | CapChanged | NewTokenCommitted
