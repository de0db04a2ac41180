"""Greeted account domain model.

The hello world program keeps a single counter in the greeted account: the
number of times the account has been greeted, stored as an unsigned 32-bit
little-endian integer at offset zero.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

GREETING_LAYOUT = struct.Struct("<I")  # num_greets
GREETING_ACCOUNT_SIZE = GREETING_LAYOUT.size


class DecodeError(ValueError):
    """Raised when account data cannot be decoded as a greeting counter."""


@dataclass(frozen=True)
class GreetingAccount:
    """Decoded state of a greeted account."""

    num_greets: int

    @classmethod
    def decode(cls, data: bytes) -> "GreetingAccount":
        """Decode the counter from raw account data.

        Only the first four bytes are interpreted; trailing bytes are ignored.
        """
        if len(data) < GREETING_ACCOUNT_SIZE:
            raise DecodeError(
                f"greeting account data too short: {len(data)} byte(s), "
                f"expected at least {GREETING_ACCOUNT_SIZE}"
            )
        (num_greets,) = GREETING_LAYOUT.unpack_from(data)
        return cls(num_greets=num_greets)
