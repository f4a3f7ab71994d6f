"""Deployment records and the deployment log files."""

import csv
import json
from dataclasses import asdict, dataclass
from typing import Iterable, Optional

FIELDS = ["name", "address", "salt", "nonce", "owner", "init_code_hash", "tx_hash"]


@dataclass(frozen=True)
class DeploymentRecord:
    """A contract the ledger created at exactly the predicted address."""
    name: str
    address: str
    salt: str
    owner: str
    init_code_hash: str
    nonce: Optional[int] = None
    tx_hash: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


def write_json(path: str, records: Iterable[DeploymentRecord], **extra) -> None:
    obj = dict(extra)
    obj["deployments"] = [r.as_dict() for r in records]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2)


def write_csv(path: str, records: Iterable[DeploymentRecord]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=FIELDS)
        w.writeheader()
        for r in records:
            w.writerow(r.as_dict())
