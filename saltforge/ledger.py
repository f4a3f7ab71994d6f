"""The ledger collaborator: the chain that actually creates contracts.

``Ledger`` is the surface the coordinator needs. ``Web3Ledger`` implements it
against a JSON-RPC node with web3.py and an on-chain ``Deployer`` factory whose
``deployOwnable(code, salt, owner)`` runs CREATE2 and hands ownership to
``owner`` in the same transaction.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from web3 import Web3
from web3.exceptions import Web3Exception

from .artifacts import Artifact, ArtifactStore
from .config import Settings
from .errors import LedgerError
from .hexutil import BytesLike, as_address, as_word, checksum, hex0x, to_bytes

log = logging.getLogger(__name__)

DEPLOYER_ABI = [
    {
        "type": "function",
        "name": "deployOwnable",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "code", "type": "bytes"},
            {"name": "salt", "type": "bytes32"},
            {"name": "owner", "type": "address"},
        ],
        "outputs": [{"name": "addr", "type": "address"}],
    },
]


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    address: str
    block_number: Optional[int] = None


class Ledger(ABC):
    """What the coordinator needs from a chain."""

    @property
    @abstractmethod
    def sender(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def nonce(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def code_at(self, address: BytesLike) -> bytes:
        raise NotImplementedError

    @abstractmethod
    def read_artifact(self, name: str) -> Artifact:
        raise NotImplementedError

    @abstractmethod
    def deploy_ownable(self, deployer: BytesLike, init_code: bytes, salt: bytes,
                       owner: BytesLike) -> Receipt:
        """CREATE2 ``init_code`` through ``deployer`` and transfer it to ``owner``.

        Blocks until the transaction is final. Returns the address the chain
        actually used.
        """
        raise NotImplementedError

    @abstractmethod
    def deploy_contract(self, artifact: Artifact) -> Receipt:
        """Plain CREATE from ``sender``."""
        raise NotImplementedError


class Web3Ledger(Ledger):

    def __init__(self, w3, account, settings: Settings, store: Optional[ArtifactStore] = None):
        self.w3 = w3
        self.account = account
        self.settings = settings
        self.store = store or ArtifactStore(settings.artifacts_dir)

    @classmethod
    def connect(cls, settings: Settings, account, store: Optional[ArtifactStore] = None) -> "Web3Ledger":
        w3 = Web3(Web3.HTTPProvider(settings.provider_http))
        if not w3.is_connected():
            raise LedgerError(f"cannot reach node at {settings.provider_http}")
        log.info("connected to %s (%s)", settings.provider_http, settings.network)
        return cls(w3, account, settings, store)

    @property
    def sender(self) -> str:
        return self.account.address

    def nonce(self) -> int:
        try:
            return self.w3.eth.get_transaction_count(self.sender, "pending")
        except (Web3Exception, OSError, ValueError) as e:
            raise LedgerError(f"cannot read nonce of {self.sender}: {e}")

    def code_at(self, address: BytesLike) -> bytes:
        try:
            return bytes(self.w3.eth.get_code(checksum(address)))
        except (Web3Exception, OSError, ValueError) as e:
            raise LedgerError(f"cannot read code at {checksum(address)}: {e}")

    def read_artifact(self, name: str) -> Artifact:
        return self.store.read(name)

    def _fees(self) -> dict:
        return {
            "maxFeePerGas": self.settings.max_fee_per_gas,
            "maxPriorityFeePerGas": self.settings.max_priority_fee_per_gas,
        }

    def _send(self, tx: dict, what: str):
        try:
            signed = self.account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
            log.info("%s: sent %s", what, hex0x(bytes(tx_hash)))
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.settings.receipt_timeout)
        except (Web3Exception, OSError, ValueError) as e:
            raise LedgerError(f"{what}: transaction failed: {e}")
        if receipt["status"] != 1:
            raise LedgerError(f"{what}: transaction {hex0x(bytes(receipt['transactionHash']))} reverted")
        return receipt

    def deploy_ownable(self, deployer: BytesLike, init_code: bytes, salt: bytes,
                       owner: BytesLike) -> Receipt:
        factory = self.w3.eth.contract(address=checksum(deployer), abi=DEPLOYER_ABI)
        fn = factory.functions.deployOwnable(to_bytes(init_code), as_word(salt, "salt"), checksum(owner))
        try:
            reported = fn.call({"from": self.sender})
            tx = fn.build_transaction({"from": self.sender, "nonce": self.nonce(), **self._fees()})
        except (Web3Exception, OSError, ValueError) as e:
            raise LedgerError(f"deployOwnable via {checksum(deployer)} rejected: {e}")
        receipt = self._send(tx, "deployOwnable")
        address = checksum(as_address(reported, "reported address"))
        if not self.code_at(address):
            raise LedgerError(f"deployOwnable confirmed but no code at {address}")
        return Receipt(hex0x(bytes(receipt["transactionHash"])), address, receipt["blockNumber"])

    def deploy_contract(self, artifact: Artifact) -> Receipt:
        tx = {
            "from": self.sender,
            "nonce": self.nonce(),
            "data": hex0x(artifact.init_code),
            "value": 0,
            **self._fees(),
        }
        try:
            tx["chainId"] = self.w3.eth.chain_id
            tx["gas"] = self.w3.eth.estimate_gas(tx)
        except (Web3Exception, OSError, ValueError) as e:
            raise LedgerError(f"{artifact.name}: cannot prepare deployment: {e}")
        receipt = self._send(tx, artifact.name)
        if not receipt["contractAddress"]:
            raise LedgerError(f"{artifact.name}: receipt carries no contract address")
        return Receipt(hex0x(bytes(receipt["transactionHash"])), checksum(receipt["contractAddress"]),
                       receipt["blockNumber"])
