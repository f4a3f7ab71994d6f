"""Hex and fixed-width value helpers."""

from typing import Union

from eth_utils import to_checksum_address

from .errors import InvalidInputError

BytesLike = Union[bytes, bytearray, str]


def strip0x(h: str) -> str:
    return h[2:] if h[:2] in ("0x", "0X") else h


def to_bytes(value: BytesLike, what: str = "value") -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise InvalidInputError(f"{what} must be bytes or a hex string, got {type(value).__name__}")
    h = strip0x(value)
    if len(h) % 2 != 0:
        raise InvalidInputError(f"{what}: hex length must be even")
    try:
        return bytes.fromhex(h)
    except ValueError as e:
        raise InvalidInputError(f"{what}: invalid hex: {e}")


def fixed(value: BytesLike, size: int, what: str) -> bytes:
    """Decode ``value`` and insist on exactly ``size`` bytes."""
    b = to_bytes(value, what)
    if len(b) != size:
        raise InvalidInputError(f"{what} must be {size} bytes, got {len(b)}")
    return b


def as_address(value: BytesLike, what: str = "address") -> bytes:
    return fixed(value, 20, what)


def as_word(value: BytesLike, what: str = "value") -> bytes:
    return fixed(value, 32, what)


def hex0x(b: bytes) -> str:
    return "0x" + b.hex()


def checksum(value: BytesLike) -> str:
    return to_checksum_address(hex0x(as_address(value)))
