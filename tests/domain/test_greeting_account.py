import struct

import pytest

from solgreet.domain.models import GREETING_ACCOUNT_SIZE, GREETING_LAYOUT, DecodeError, GreetingAccount


@pytest.mark.parametrize("value", [0, 1, 255, 256, 65_536, 2**31, 2**32 - 1])
def test_decode_reads_little_endian_u32(value: int) -> None:
    assert GreetingAccount.decode(struct.pack("<I", value)).num_greets == value


def test_decode_byte_order() -> None:
    assert GreetingAccount.decode(b"\x01\x02\x03\x04").num_greets == 0x04030201


def test_decode_ignores_trailing_bytes() -> None:
    assert GreetingAccount.decode(b"\x05\x00\x00\x00\xff\xff").num_greets == 5


@pytest.mark.parametrize("data", [b"", b"\x01", b"\x01\x00\x00"])
def test_decode_short_data_raises(data: bytes) -> None:
    with pytest.raises(DecodeError, match="too short"):
        GreetingAccount.decode(data)


def test_account_size_is_four_bytes() -> None:
    assert GREETING_ACCOUNT_SIZE == 4
    assert GREETING_LAYOUT.size == GREETING_ACCOUNT_SIZE
