"""Capability flags fixed when a controller is constructed."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import astuple, dataclass, fields

from smartpool.errors import ValidationError


@dataclass(frozen=True)
class Rights:
    """Which privileged operations the controller's owner may perform.

    Attributes:
        can_pause_swapping: Owner may toggle public swapping on the engine
        can_change_swap_fee: Owner may change the engine swap fee
        can_change_weights: Owner may reweight, immediately or gradually
        can_add_remove_tokens: Owner may add (under timelock) and remove tokens
        can_whitelist_lps: Only whitelisted addresses may join
        can_change_cap: Owner may change the pool share supply cap
    """

    can_pause_swapping: bool = False
    can_change_swap_fee: bool = True
    can_change_weights: bool = True
    can_add_remove_tokens: bool = True
    can_whitelist_lps: bool = False
    can_change_cap: bool = False

    @classmethod
    def from_flags(cls, flags: Sequence[bool]) -> Rights:
        """Build rights from an ordered flag list (field order above).

        An empty list yields the defaults.

        Raises:
            ValidationError: If the list is neither empty nor one flag per right
        """
        if len(flags) == 0:
            return cls()
        expected = len(fields(cls))
        if len(flags) != expected:
            raise ValidationError(
                "ERR_INVALID_RIGHTS", f"expected {expected} flags, got {len(flags)}"
            )
        return cls(*(bool(flag) for flag in flags))

    def to_flags(self) -> tuple[bool, ...]:
        return astuple(self)


DEFAULT_RIGHTS = Rights()
