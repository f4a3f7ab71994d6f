"""Bounded, ascending salt search."""

from __future__ import annotations

import pytest
from eth_utils import keccak

from saltforge.errors import ExhaustedError, InvalidInputError
from saltforge.miner import mine, normalize_pattern, salt_from_nonce
from saltforge.oracle import predict

CREATOR = "0x0000000000000000000000000000000000000001"
EMPTY_HASH = keccak(b"")


def test_salt_from_nonce_is_keccak_of_decimal_text() -> None:
    assert salt_from_nonce(0) == keccak(b"0")
    assert salt_from_nonce(12) == keccak(b"12")
    # ethers.utils.id("1")
    assert salt_from_nonce(1).hex() == "c89efdaa54c0f20c7adf612882df0950f5a951637e0307cdcb4c672f298b8bc6"


def test_golden_pattern_ab_is_smallest_nonce() -> None:
    mined = mine(CREATOR, EMPTY_HASH, pattern="ab", max_attempts=10_000)
    assert mined.nonce == 16
    assert mined.attempts == 17
    assert mined.salt.hex() == "277ab82e5a4641341820a4a2933a62c1de997e42e92548657ae21b3728d580fe"
    assert mined.address.hex() == "28ebdb1f1d00340f8d39a783bea7c4aabca5b53d"
    assert mined.salt == salt_from_nonce(mined.nonce)
    assert mined.address == predict(CREATOR, mined.salt, EMPTY_HASH)
    assert "ab" in "0x" + mined.address.hex()
    for n in range(mined.nonce):
        assert "ab" not in "0x" + predict(CREATOR, salt_from_nonce(n), EMPTY_HASH).hex()
    assert mine(CREATOR, EMPTY_HASH, pattern="ab", max_attempts=10_000) == mined


def test_pattern_is_case_insensitive() -> None:
    lower = mine(CREATOR, EMPTY_HASH, pattern="ab", max_attempts=10_000)
    upper = mine(CREATOR, EMPTY_HASH, pattern="AB", max_attempts=10_000)
    assert lower == upper


def test_0x_pattern_matches_first_nonce() -> None:
    mined = mine(CREATOR, EMPTY_HASH, pattern="0x")
    assert mined.nonce == 0
    assert mined.attempts == 1


def test_bound_exhausted() -> None:
    with pytest.raises(ExhaustedError) as exc:
        mine(CREATOR, EMPTY_HASH, pattern="ffffffffffffffffffff", max_attempts=200)
    assert exc.value.attempts == 200


def test_bound_is_exact() -> None:
    mined = mine(CREATOR, EMPTY_HASH, pattern="ab", max_attempts=10_000)
    assert mine(CREATOR, EMPTY_HASH, pattern="ab", max_attempts=mined.attempts) == mined
    if mined.attempts > 1:
        with pytest.raises(ExhaustedError):
            mine(CREATOR, EMPTY_HASH, pattern="ab", max_attempts=mined.attempts - 1)


def test_explicit_salt_skips_search() -> None:
    salt = keccak(text="anything")
    mined = mine(CREATOR, EMPTY_HASH, salt=salt, max_attempts=1)
    assert mined.salt == salt
    assert mined.nonce is None
    assert mined.attempts == 0
    assert mined.address == predict(CREATOR, salt, EMPTY_HASH)


def test_pattern_and_salt_together_rejected() -> None:
    with pytest.raises(InvalidInputError):
        mine(CREATOR, EMPTY_HASH, pattern="ab", salt=keccak(text="1"))


def test_neither_pattern_nor_salt_rejected() -> None:
    with pytest.raises(InvalidInputError):
        mine(CREATOR, EMPTY_HASH)


@pytest.mark.parametrize("bad", ["", "  ", "xyz", "0xg0", "ab0x", "a" * 43])
def test_bad_patterns(bad) -> None:
    with pytest.raises(InvalidInputError):
        normalize_pattern(bad)


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(InvalidInputError):
        mine(CREATOR, EMPTY_HASH, pattern="ab", max_attempts=0)


def test_bad_salt_width() -> None:
    with pytest.raises(InvalidInputError):
        mine(CREATOR, EMPTY_HASH, salt=b"\x01" * 31)
