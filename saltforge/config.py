"""Process configuration.

Built once from the environment (after loading ``.env``) and passed around
explicitly; nothing mutates it afterwards.
"""

import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError
from .keys import DEFAULT_PATH_TEMPLATE
from .miner import DEFAULT_MAX_ATTEMPTS


@dataclass(frozen=True)
class Settings:
    network: str = "development"
    provider_http: str = "http://localhost:8545"
    mnemonic: Optional[str] = None
    accounts_count: int = 10
    derivation_path: str = DEFAULT_PATH_TEMPLATE
    max_fee_per_gas: int = 3_000_000_000_000_000
    max_priority_fee_per_gas: int = 3_000_000_000_000_000
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    receipt_timeout: float = 120.0
    artifacts_dir: str = "artifacts"

    def __post_init__(self):
        if self.accounts_count < 0:
            raise ConfigError("ACCOUNTS_COUNT must be a natural number")
        if self.max_attempts < 1:
            raise ConfigError("SALT_MAX_ATTEMPTS must be >= 1")
        if not math.isfinite(self.receipt_timeout) or self.receipt_timeout <= 0:
            raise ConfigError("RECEIPT_TIMEOUT must be a positive, finite number")
        if self.max_fee_per_gas < 0 or self.max_priority_fee_per_gas < 0:
            raise ConfigError("gas price caps must be >= 0")
        if self.max_priority_fee_per_gas > self.max_fee_per_gas:
            raise ConfigError("MAX_PRIORITY_FEE_PER_GAS exceeds MAX_GAS_PRICE")
        if "{index}" not in self.derivation_path:
            raise ConfigError("DERIVATION_PATH must contain {index}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 env_file: Optional[str] = None) -> "Settings":
        if environ is None:
            load_dotenv(env_file or find_dotenv(usecwd=True))
            environ = os.environ
        kw = {}
        for var, name, conv in _ENV:
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            try:
                kw[name] = conv(raw)
            except ValueError:
                raise ConfigError(f"{var}: invalid value {raw!r}")
        return cls(**kw)

    def redacted(self) -> dict:
        return {
            "network": self.network,
            "provider_http": self.provider_http,
            "mnemonic": "<set>" if self.mnemonic else None,
            "accounts_count": self.accounts_count,
            "derivation_path": self.derivation_path,
            "max_fee_per_gas": self.max_fee_per_gas,
            "max_priority_fee_per_gas": self.max_priority_fee_per_gas,
            "max_attempts": self.max_attempts,
            "receipt_timeout": self.receipt_timeout,
            "artifacts_dir": self.artifacts_dir,
        }


def _nat(raw: str) -> int:
    v = int(raw, 10)
    if v < 0:
        raise ValueError(raw)
    return v


_ENV = (
    ("NETWORK", "network", lambda s: s.strip().lower()),
    ("PROVIDER_HTTP", "provider_http", str),
    ("ACCOUNT_MNEMONIC", "mnemonic", lambda s: " ".join(s.split())),
    ("ACCOUNTS_COUNT", "accounts_count", _nat),
    ("DERIVATION_PATH", "derivation_path", str),
    ("MAX_GAS_PRICE", "max_fee_per_gas", _nat),
    ("MAX_PRIORITY_FEE_PER_GAS", "max_priority_fee_per_gas", _nat),
    ("SALT_MAX_ATTEMPTS", "max_attempts", _nat),
    ("RECEIPT_TIMEOUT", "receipt_timeout", float),
    ("ARTIFACTS_DIR", "artifacts_dir", str),
)
