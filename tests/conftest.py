"""Shared fixtures: an in-memory ledger that executes CREATE2 with the oracle."""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest
from eth_utils import keccak

from saltforge.artifacts import Artifact
from saltforge.config import Settings
from saltforge.errors import LedgerError
from saltforge.hexutil import checksum, hex0x
from saltforge.ledger import Ledger, Receipt
from saltforge.oracle import create_address, predict

SENDER = "0x00000000000000000000000000000000000000aa"
OWNER = "0x00000000000000000000000000000000000000bb"
FACTORY = "0x0000000000000000000000000000000000000001"


class FakeLedger(Ledger):
    """Creates contracts in a dict; can be told to lie or fail."""

    def __init__(self, artifacts: Optional[Dict[str, Artifact]] = None):
        self.code: Dict[str, bytes] = {}
        self.owners: Dict[str, str] = {}
        self.calls: List[str] = []
        self.artifacts = artifacts or {}
        self.tx_nonce = 0
        self.lie_for: Optional[str] = None
        self.fail_for: Optional[str] = None

    @property
    def sender(self) -> str:
        return checksum(SENDER)

    def nonce(self) -> int:
        return self.tx_nonce

    def code_at(self, address) -> bytes:
        return self.code.get(checksum(address), b"")

    def read_artifact(self, name: str) -> Artifact:
        return self.artifacts[name]

    def _tx(self) -> str:
        self.tx_nonce += 1
        return hex0x(self.tx_nonce.to_bytes(32, "big"))

    def deploy_ownable(self, deployer, init_code, salt, owner) -> Receipt:
        self.calls.append(hex0x(init_code))
        if self.fail_for is not None and init_code.startswith(bytes.fromhex(self.fail_for)):
            raise LedgerError("execution reverted")
        address = checksum(predict(deployer, salt, keccak(init_code)))
        if self.lie_for is not None and init_code.startswith(bytes.fromhex(self.lie_for)):
            address = checksum("0x" + "ee" * 20)
        self.code[address] = init_code
        self.owners[address] = checksum(owner)
        return Receipt(self._tx(), address, len(self.calls))

    def deploy_contract(self, artifact: Artifact) -> Receipt:
        address = checksum(create_address(self.sender, self.tx_nonce))
        self.code[address] = artifact.init_code
        return Receipt(self._tx(), address, 1)


@pytest.fixture
def settings() -> Settings:
    return Settings(max_attempts=50_000, receipt_timeout=5)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger({
        "Deployer": Artifact("Deployer", bytes.fromhex("6001600155")),
        "AdminProxy": Artifact("AdminProxy", bytes.fromhex("aa01")),
        "AssetMarket": Artifact("AssetMarket", bytes.fromhex("bb02")),
        "UpgradeableContract": Artifact("UpgradeableContract", bytes.fromhex("cc03")),
    })
