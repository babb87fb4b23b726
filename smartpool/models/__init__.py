"""Smart pool data models.

- types: address and uint256 annotated types
- rights: immutable capability flags
- params: construction parameters (import from smartpool.models.params)
- api: HTTP request/response models (import from smartpool.models.api)
"""

from smartpool.models.rights import DEFAULT_RIGHTS, Rights
from smartpool.models.types import Address, Uint256, canonical_uint256, is_valid_address

__all__ = [
    "Rights",
    "DEFAULT_RIGHTS",
    "Address",
    "Uint256",
    "is_valid_address",
    "canonical_uint256",
]
