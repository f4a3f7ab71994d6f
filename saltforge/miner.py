"""Salt mining for vanity CREATE2 addresses.

Candidate salts are ``keccak256(str(nonce))`` for nonce = 0, 1, 2, ... (the
``ethers.utils.id`` convention), so a hit is reproducible from the nonce
alone and the first hit is always the smallest nonce.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from eth_utils import keccak

from .errors import ExhaustedError, InvalidInputError
from .hexutil import BytesLike, as_address, as_word, checksum, hex0x
from .oracle import predict

log = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 1_000_000
PROGRESS_EVERY = 100_000

_PATTERN_RE = re.compile(r"(0x)?[0-9a-f]*")


@dataclass(frozen=True)
class MinedSalt:
    salt: bytes
    address: bytes
    nonce: Optional[int]
    attempts: int

    @property
    def salt_hex(self) -> str:
        return hex0x(self.salt)

    def as_dict(self) -> dict:
        return {
            "salt": self.salt_hex,
            "address": checksum(self.address),
            "nonce": self.nonce,
            "attempts": self.attempts,
        }


def salt_from_nonce(nonce: int) -> bytes:
    if nonce < 0:
        raise InvalidInputError("salt nonce must be >= 0")
    return keccak(text=str(nonce))


def normalize_pattern(pattern: str) -> str:
    p = pattern.strip().lower()
    if not p or len(p) > 42 or not _PATTERN_RE.fullmatch(p):
        raise InvalidInputError(f"pattern must be 1-42 hex characters (optionally 0x-led), got {pattern!r}")
    return p


def matches(address: bytes, pattern: str) -> bool:
    """``pattern`` must already be normalized."""
    return pattern in hex0x(address)


def mine(
    creator: BytesLike,
    code_hash: BytesLike,
    pattern: Optional[str] = None,
    salt: Optional[BytesLike] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> MinedSalt:
    """Resolve a salt and its predicted address.

    Exactly one of ``pattern`` or ``salt`` must be given. An explicit salt is
    returned as-is with no search. Otherwise nonces are tried in ascending
    order and the first address containing ``pattern`` (case-insensitive,
    matched against the ``0x``-prefixed lowercase hex) wins.
    """
    if pattern is not None and salt is not None:
        raise InvalidInputError("pattern and salt are mutually exclusive")
    creator_b = as_address(creator, "creator")
    code_hash_b = as_word(code_hash, "init code hash")

    if salt is not None:
        salt_b = as_word(salt, "salt")
        return MinedSalt(salt_b, predict(creator_b, salt_b, code_hash_b), None, 0)

    if pattern is None:
        raise InvalidInputError("one of pattern or salt is required")
    want = normalize_pattern(pattern)
    if max_attempts < 1:
        raise InvalidInputError("max_attempts must be >= 1")

    log.debug("mining pattern %r for creator %s (bound %d)", want, hex0x(creator_b), max_attempts)
    for nonce in range(max_attempts):
        candidate = salt_from_nonce(nonce)
        addr = predict(creator_b, candidate, code_hash_b)
        if matches(addr, want):
            log.info("pattern %r matched at nonce %d -> %s", want, nonce, hex0x(addr))
            return MinedSalt(candidate, addr, nonce, nonce + 1)
        if nonce and nonce % PROGRESS_EVERY == 0:
            log.debug("mining %r: %d attempts", want, nonce)
    raise ExhaustedError(f"no salt matching {want!r} within {max_attempts} attempts", max_attempts)
