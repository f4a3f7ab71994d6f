"""saltforge — predict, mine and execute deterministic CREATE2 deployments."""

from .errors import (
    AddressMismatchError,
    ConfigError,
    DerivationError,
    ExhaustedError,
    InvalidInputError,
    LedgerError,
    SaltForgeError,
)
from .oracle import create_address, predict, predict_address
from .miner import MinedSalt, mine, salt_from_nonce
from .keys import AccountSet, DerivedAccount, derive, new_seed_phrase

__version__ = "0.1.0"
