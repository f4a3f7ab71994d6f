"""Deterministic deployer accounts from a BIP-39 seed phrase.

Keys are derived with BIP-32 over secp256k1 at ``m/44'/60'/0'/0/{index}``
(the Ethereum BIP-44 path), so the same phrase always yields the same
accounts in the same order.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from eth_account import Account
from eth_utils.exceptions import ValidationError

from .errors import DerivationError, InvalidInputError

log = logging.getLogger(__name__)

DEFAULT_PATH_TEMPLATE = "m/44'/60'/0'/0/{index}"

Account.enable_unaudited_hdwallet_features()


@dataclass(frozen=True)
class DerivedAccount:
    index: int
    path: str
    private_key: bytes = field(repr=False)
    address: str

    @property
    def private_key_hex(self) -> str:
        return "0x" + self.private_key.hex()

    def local_account(self):
        """eth-account ``LocalAccount`` able to sign transactions."""
        return Account.from_key(self.private_key)


@dataclass(frozen=True)
class Derived:
    """Outcome of one index: exactly one of ``account`` / ``error`` is set."""
    index: int
    account: Optional[DerivedAccount] = None
    error: Optional[DerivationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AccountSet:
    seed_phrase: str = field(repr=False)
    accounts: Tuple[DerivedAccount, ...]

    def __len__(self) -> int:
        return len(self.accounts)

    def __getitem__(self, i: int) -> DerivedAccount:
        return self.accounts[i]

    def __iter__(self) -> Iterator[DerivedAccount]:
        return iter(self.accounts)

    @property
    def addresses(self) -> List[str]:
        return [a.address for a in self.accounts]


def new_seed_phrase(num_words: int = 12) -> str:
    """Fresh phrase from the OS CSPRNG."""
    _, phrase = Account.create_with_mnemonic(num_words=num_words)
    return phrase


def _check_template(path_template: str) -> None:
    if "{index}" not in path_template:
        raise InvalidInputError(f"derivation path template needs an {{index}} field: {path_template!r}")


def derive_one(seed_phrase: str, index: int, path_template: str = DEFAULT_PATH_TEMPLATE,
               passphrase: str = "") -> DerivedAccount:
    _check_template(path_template)
    path = path_template.format(index=index)
    try:
        acct = Account.from_mnemonic(seed_phrase, passphrase=passphrase, account_path=path)
    except (ValidationError, ValueError) as e:
        raise DerivationError(f"derivation failed at index {index} ({path}): {e}", index=index)
    return DerivedAccount(index=index, path=path, private_key=bytes(acct.key), address=acct.address)


def derive_tagged(seed_phrase: str, count: int, path_template: str = DEFAULT_PATH_TEMPLATE,
                  passphrase: str = "") -> Iterator[Derived]:
    if count < 0:
        raise InvalidInputError("account count must be >= 0")
    _check_template(path_template)
    for i in range(count):
        try:
            yield Derived(i, account=derive_one(seed_phrase, i, path_template, passphrase))
        except DerivationError as e:
            yield Derived(i, error=e)


def derive(seed_phrase: Optional[str] = None, count: int = 1,
           path_template: str = DEFAULT_PATH_TEMPLATE, passphrase: str = "",
           allow_partial: bool = False) -> AccountSet:
    """Derive ``count`` accounts from ``seed_phrase``.

    A missing phrase is replaced by a freshly generated one (returned on the
    ``AccountSet``). The batch aborts on the first failing index unless
    ``allow_partial`` is set, in which case failures are logged and skipped.
    """
    if seed_phrase is None:
        seed_phrase = new_seed_phrase()
        log.info("no seed phrase configured, generated a fresh one")
    accounts = []
    for result in derive_tagged(seed_phrase, count, path_template, passphrase):
        if result.ok:
            accounts.append(result.account)
        elif allow_partial:
            log.warning("skipping account %d: %s", result.index, result.error.message)
        else:
            raise result.error
    return AccountSet(seed_phrase=seed_phrase, accounts=tuple(accounts))
