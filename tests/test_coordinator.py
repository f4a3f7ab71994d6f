"""Deployment coordination against the in-memory ledger."""

from __future__ import annotations

import pytest
from eth_abi import decode
from eth_utils import keccak

from saltforge.artifacts import Artifact, encode_args
from saltforge.coordinator import (
    ADMIN_SALT,
    IMPLEMENTATION_SALT,
    DeploymentCoordinator,
    DeployRequest,
)
from saltforge.errors import AddressMismatchError, InvalidInputError, LedgerError
from saltforge.hexutil import checksum
from saltforge.oracle import create_address, predict

from conftest import FACTORY, OWNER, FakeLedger

A = Artifact("A", bytes.fromhex("6000"))
B = Artifact("B", bytes.fromhex("6001"))


def test_deploy_with_explicit_salt(ledger, settings) -> None:
    coordinator = DeploymentCoordinator(ledger, settings)
    salt = keccak(text="1")
    record = coordinator.deploy(DeployRequest(FACTORY, OWNER, A, salt=salt))
    assert record.address == checksum(predict(FACTORY, salt, A.init_code_hash))
    assert record.salt == "0x" + salt.hex()
    assert record.nonce is None
    assert record.owner == checksum(OWNER)
    assert ledger.owners[record.address] == checksum(OWNER)
    assert record.tx_hash


def test_deploy_with_pattern(ledger, settings) -> None:
    coordinator = DeploymentCoordinator(ledger, settings)
    record = coordinator.deploy(DeployRequest(FACTORY, OWNER, A, pattern="AB"))
    assert "ab" in record.address.lower()
    assert record.nonce is not None


def test_request_requires_exactly_one_of_pattern_or_salt() -> None:
    with pytest.raises(InvalidInputError):
        DeployRequest(FACTORY, OWNER, A)
    with pytest.raises(InvalidInputError):
        DeployRequest(FACTORY, OWNER, A, pattern="ab", salt=keccak(text="1"))
    with pytest.raises(InvalidInputError):
        DeployRequest("0x1234", OWNER, A, pattern="ab")
    with pytest.raises(InvalidInputError):
        DeployRequest(FACTORY, OWNER, A, pattern="zz")


def test_mismatch_raises_and_publishes_nothing(ledger, settings) -> None:
    ledger.lie_for = "6000"
    coordinator = DeploymentCoordinator(ledger, settings)
    with pytest.raises(AddressMismatchError) as exc:
        coordinator.deploy(DeployRequest(FACTORY, OWNER, A, salt=keccak(text="1")))
    assert exc.value.actual == checksum("0x" + "ee" * 20)


def test_already_deployed_is_refused(ledger, settings) -> None:
    coordinator = DeploymentCoordinator(ledger, settings)
    request = DeployRequest(FACTORY, OWNER, A, salt=keccak(text="1"))
    coordinator.deploy(request)
    with pytest.raises(LedgerError):
        coordinator.deploy(request)
    assert len(ledger.calls) == 1


def test_sequence_dependency_changes_downstream_address(settings) -> None:
    def run(salt_text):
        coordinator = DeploymentCoordinator(FakeLedger(), settings)
        return coordinator.deploy_sequence([
            lambda done: DeployRequest(FACTORY, OWNER, A, salt=keccak(text=salt_text)),
            lambda done: DeployRequest(
                FACTORY, OWNER, B.with_constructor(["address"], [done[0].address]), salt=keccak(text="9")),
        ])

    first = run("1")
    second = run("2")
    assert first[0].address != second[0].address
    assert first[1].init_code_hash != second[1].init_code_hash
    assert first[1].address != second[1].address


def test_sequence_halts_on_mismatch(ledger, settings) -> None:
    ledger.lie_for = "6001"
    coordinator = DeploymentCoordinator(ledger, settings)
    third = Artifact("C", bytes.fromhex("6002"))
    with pytest.raises(AddressMismatchError):
        coordinator.deploy_sequence([
            lambda done: DeployRequest(FACTORY, OWNER, A, salt=keccak(text="1")),
            lambda done: DeployRequest(FACTORY, OWNER, B, salt=keccak(text="2")),
            lambda done: DeployRequest(FACTORY, OWNER, third, salt=keccak(text="3")),
        ])
    assert ledger.calls == ["0x6000", "0x6001"]


def test_sequence_halts_on_ledger_failure(ledger, settings) -> None:
    ledger.fail_for = "6000"
    coordinator = DeploymentCoordinator(ledger, settings)
    with pytest.raises(LedgerError):
        coordinator.deploy_sequence([
            lambda done: DeployRequest(FACTORY, OWNER, A, salt=keccak(text="1")),
            lambda done: DeployRequest(FACTORY, OWNER, B, salt=keccak(text="2")),
        ])
    assert ledger.calls == ["0x6000"]


def test_deploy_factory_predicts_create_address(ledger, settings) -> None:
    ledger.tx_nonce = 3
    coordinator = DeploymentCoordinator(ledger, settings)
    address = coordinator.deploy_factory(ledger.read_artifact("Deployer"))
    assert address == checksum(create_address(ledger.sender, 3))


def test_deploy_upgradeable(ledger, settings) -> None:
    coordinator = DeploymentCoordinator(ledger, settings)
    factory = coordinator.deploy_factory(ledger.read_artifact("Deployer"))
    admin, impl, proxy = coordinator.deploy_upgradeable(
        factory, OWNER,
        ledger.read_artifact("AdminProxy"),
        ledger.read_artifact("AssetMarket"),
        ledger.read_artifact("UpgradeableContract"),
        proxy_pattern="0x",
    )
    assert admin.address == checksum(predict(factory, ADMIN_SALT, keccak(bytes.fromhex("aa01"))))
    assert impl.address == checksum(predict(factory, IMPLEMENTATION_SALT, keccak(bytes.fromhex("bb02"))))
    assert proxy.nonce == 0

    proxy_code = ledger.code[proxy.address]
    assert proxy_code[:2] == bytes.fromhex("cc03")
    impl_addr, admin_addr, init = decode(["address", "address", "bytes"], proxy_code[2:])
    assert checksum(impl_addr) == impl.address
    assert checksum(admin_addr) == admin.address
    assert init[:4] == keccak(text="initialize(string)")[:4]
    assert init[4:] == encode_args(["string"], [""])
