"""Drive deterministic deployments through a ledger.

Every deployment is planned offline first (init code, salt, predicted
address), then executed by the ledger, then checked: a record only exists
once the chain has created the contract exactly where we said it would.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from eth_utils import keccak

from .artifacts import Artifact, call_data, encode_args
from .config import Settings
from .errors import AddressMismatchError, InvalidInputError, LedgerError, SaltForgeError
from .hexutil import BytesLike, as_address, checksum, hex0x
from .ledger import Ledger
from .miner import mine, normalize_pattern
from .oracle import create_address
from .records import DeploymentRecord

log = logging.getLogger(__name__)

ADMIN_SALT = keccak(text="1")
IMPLEMENTATION_SALT = keccak(text="2")
DEFAULT_PROXY_PATTERN = "0x"


@dataclass(frozen=True)
class DeployRequest:
    """One contract to create.

    ``deployer`` is the CREATE2 factory, ``owner`` receives ownership.
    Exactly one of ``pattern`` / ``salt`` must be set.
    """
    deployer: BytesLike
    owner: BytesLike
    artifact: Artifact
    pattern: Optional[str] = None
    salt: Optional[BytesLike] = None

    def __post_init__(self):
        if (self.pattern is None) == (self.salt is None):
            raise InvalidInputError(f"{self.artifact.name}: give exactly one of pattern or salt")
        as_address(self.deployer, "deployer")
        as_address(self.owner, "owner")
        if self.pattern is not None:
            normalize_pattern(self.pattern)


Step = Callable[[List[DeploymentRecord]], DeployRequest]


class DeploymentCoordinator:

    def __init__(self, ledger: Ledger, settings: Settings):
        self.ledger = ledger
        self.settings = settings

    def plan(self, request: DeployRequest):
        artifact = request.artifact
        return mine(request.deployer, artifact.init_code_hash, pattern=request.pattern,
                    salt=request.salt, max_attempts=self.settings.max_attempts)

    def deploy(self, request: DeployRequest) -> DeploymentRecord:
        artifact = request.artifact
        mined = self.plan(request)
        predicted = checksum(mined.address)
        log.info("%s: predicted %s (salt %s)", artifact.name, predicted, mined.salt_hex)

        if self.ledger.code_at(predicted):
            raise LedgerError(f"{artifact.name}: {predicted} already holds code")

        receipt = self.ledger.deploy_ownable(request.deployer, artifact.init_code, mined.salt, request.owner)
        if checksum(receipt.address) != predicted:
            raise AddressMismatchError(predicted, checksum(receipt.address), artifact.name)

        record = DeploymentRecord(
            name=artifact.name,
            address=predicted,
            salt=mined.salt_hex,
            owner=checksum(request.owner),
            init_code_hash=hex0x(artifact.init_code_hash),
            nonce=mined.nonce,
            tx_hash=receipt.tx_hash,
        )
        log.info("%s deployed @ %s with salt %s", artifact.name, record.address, record.salt)
        return record

    def deploy_sequence(self, steps: Sequence[Step]) -> List[DeploymentRecord]:
        """Run ``steps`` in order; each sees the records produced so far.

        The first failure stops the run. Contracts already created stay on
        chain and are reported in the log.
        """
        records: List[DeploymentRecord] = []
        for i, step in enumerate(steps):
            try:
                records.append(self.deploy(step(records)))
            except SaltForgeError:
                log.error("deployment halted at step %d of %d", i + 1, len(steps))
                for r in records:
                    log.error("left deployed: %s @ %s", r.name, r.address)
                raise
        return records

    def deploy_factory(self, artifact: Artifact) -> str:
        """Deploy the CREATE2 factory itself with a plain CREATE."""
        predicted = checksum(create_address(self.ledger.sender, self.ledger.nonce()))
        receipt = self.ledger.deploy_contract(artifact)
        if checksum(receipt.address) != predicted:
            raise AddressMismatchError(predicted, checksum(receipt.address), artifact.name)
        log.info("%s deployed @ %s", artifact.name, predicted)
        return predicted

    def deploy_upgradeable(
        self,
        deployer: BytesLike,
        owner: BytesLike,
        admin: Artifact,
        implementation: Artifact,
        proxy: Artifact,
        proxy_pattern: str = DEFAULT_PROXY_PATTERN,
        admin_salt: BytesLike = ADMIN_SALT,
        implementation_salt: BytesLike = IMPLEMENTATION_SALT,
        init_signature: str = "initialize(string)",
        init_types: Sequence[str] = ("string",),
        init_values: Sequence = ("",),
    ) -> List[DeploymentRecord]:
        """Admin proxy, implementation, then the proxy wrapping the implementation.

        The proxy's constructor is ``(implementation, admin, init_data)`` so its
        address depends on both earlier addresses.
        """
        init_data = call_data(init_signature, init_types, init_values)

        def proxy_step(done: List[DeploymentRecord]) -> DeployRequest:
            admin_rec, impl_rec = done
            args = encode_args(["address", "address", "bytes"],
                               [impl_rec.address, admin_rec.address, init_data])
            return DeployRequest(deployer, owner, proxy.with_args(args), pattern=proxy_pattern)

        return self.deploy_sequence([
            lambda done: DeployRequest(deployer, owner, admin, salt=admin_salt),
            lambda done: DeployRequest(deployer, owner, implementation, salt=implementation_salt),
            proxy_step,
        ])
