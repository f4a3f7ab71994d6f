"""Contract address prediction.

CREATE2 (EIP-1014)::

    address = keccak256(0xff ++ creator ++ salt ++ keccak256(init_code))[12:]

CREATE (legacy, nonce based)::

    address = keccak256(rlp([sender, nonce]))[12:]

Both are pure: the same inputs give the same address on every machine, which
is what lets a deployment be planned before anything touches the chain.
"""

import rlp
from eth_utils import keccak

from .errors import InvalidInputError
from .hexutil import BytesLike, as_address, as_word, checksum, to_bytes

CREATE2_PREFIX = b"\xff"


def init_code_hash(init_code: BytesLike) -> bytes:
    return keccak(to_bytes(init_code, "init code"))


def predict(creator: BytesLike, salt: BytesLike, code_hash: BytesLike) -> bytes:
    """Return the 20-byte CREATE2 address for (creator, salt, init code hash)."""
    preimage = (
        CREATE2_PREFIX
        + as_address(creator, "creator")
        + as_word(salt, "salt")
        + as_word(code_hash, "init code hash")
    )
    return keccak(preimage)[12:]


def predict_address(creator: BytesLike, salt: BytesLike, code_hash: BytesLike) -> str:
    return checksum(predict(creator, salt, code_hash))


def create_address(sender: BytesLike, nonce: int) -> bytes:
    if nonce < 0:
        raise InvalidInputError("nonce must be >= 0")
    return keccak(rlp.encode([as_address(sender, "sender"), nonce]))[12:]
