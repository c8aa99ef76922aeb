# MIT License
#
# Copyright (c) 2018 Evgeny Medvedev, evge.medvedev@gmail.com
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
# Modified by: Cuong CT, 6/12/2025
# Change Description: using eth_utils library for implement some formatter utilities.
# Added hex/bytes conversion and JSON-friendly value conversion for decoded call arguments.

from decimal import Decimal
from typing import Any, Optional, Union

from eth_utils import decode_hex, encode_hex, is_hex
from eth_utils import to_checksum_address as eth_to_normalized_address

HexOrBytes = Union[str, bytes, bytearray]


def to_bytes(value: HexOrBytes | None) -> bytes:
    """
    Accepts raw bytes or a (0x-prefixed or bare) hex string. None and "0x" become b"".
    """
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise TypeError(f"Expected bytes or hex string, got {type(value).__name__}")
    if value in ("", "0x", "0X"):
        return b""
    if not is_hex(value):
        raise ValueError(f"Invalid hex string: {value[:32]}")
    return decode_hex(value)


def to_hex(value: bytes) -> str:
    return encode_hex(value)


def to_normalized_address(address: Optional[str]) -> Optional[str]:
    """
    Convert address to its checksum form.
    Safe-guards against None or invalid types to maintain backward compatibility.
    """
    if address is None or not isinstance(address, str):
        return None

    try:
        return eth_to_normalized_address(address)
    except ValueError:
        return address.lower()


def to_json_compatible(value: Any) -> Any:
    """
    Converts values produced by eth_abi into JSON friendly ones:
    bytes become 0x-hex strings and tuples become lists.
    """
    if isinstance(value, (bytes, bytearray)):
        return encode_hex(bytes(value))
    if isinstance(value, (list, tuple)):
        return [to_json_compatible(item) for item in value]
    return value


def round_decimal(value: Decimal, places: int) -> float:
    return float(round(value, places))
