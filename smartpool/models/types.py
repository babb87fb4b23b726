"""Address and amount types shared by the controller and the HTTP models.

Amounts cross the API as decimal strings because they routinely exceed the
range of a JSON number.
"""

import re
from typing import Annotated, Any

from pydantic import BeforeValidator, Field

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")

_UINT256_LIMIT = 2**256


def canonical_uint256(value: Any) -> str:
    """Return value as a canonical uint256 decimal string.

    Accepts ints and decimal strings; leading zeros and surrounding
    whitespace are dropped.

    Raises:
        ValueError: If value is not an integer in [0, 2**256)
    """
    if isinstance(value, bool) or not isinstance(value, int | str):
        raise ValueError(f"expected an integer or decimal string, got {type(value).__name__}")

    if isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            raise ValueError(f"not a non-negative decimal integer: {value!r}")
        value = int(text)

    if not 0 <= value < _UINT256_LIMIT:
        raise ValueError(f"{value} outside uint256 range")
    return str(value)


# 0x followed by 40 hex digits
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# uint256 carried as a decimal string
Uint256 = Annotated[
    str,
    BeforeValidator(canonical_uint256),
    Field(description="256-bit unsigned integer as decimal string"),
]


def is_valid_address(address: Any) -> bool:
    """True for a string of 0x plus 40 hex digits."""
    return isinstance(address, str) and _ADDRESS_RE.fullmatch(address) is not None
