"""Contract artifacts and init code assembly.

An artifact is creation bytecode plus (optionally) ABI-encoded constructor
arguments; init code is simply their concatenation. Artifacts are read from a
Hardhat ``artifacts/`` tree (``artifacts/contracts/Foo.sol/Foo.json``).
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, List, Sequence, Tuple

from eth_abi import encode as abi_encode
from eth_utils import function_signature_to_4byte_selector, keccak

from .errors import InvalidInputError
from .hexutil import strip0x, to_bytes

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    name: str
    bytecode: bytes
    abi: Tuple[dict, ...] = field(default=(), repr=False)
    constructor_args: bytes = b""

    @property
    def init_code(self) -> bytes:
        return self.bytecode + self.constructor_args

    @property
    def init_code_hash(self) -> bytes:
        return keccak(self.init_code)

    def with_args(self, constructor_args: bytes) -> "Artifact":
        return replace(self, constructor_args=bytes(constructor_args))

    def with_constructor(self, types: Sequence[str], values: Sequence[Any]) -> "Artifact":
        return self.with_args(encode_args(types, values))


def _normalize(t: str, a: Any) -> Any:
    if not isinstance(a, str):
        return a
    if t.startswith("uint") or t.startswith("int"):
        return int(a, 0)
    if t == "bool":
        return a.lower() in ("1", "true", "yes", "y")
    if t.startswith("bytes"):
        return bytes.fromhex(strip0x(a))
    return a


def encode_args(types: Sequence[str], values: Sequence[Any]) -> bytes:
    """ABI-encode constructor arguments; string values are coerced per type."""
    types = list(types)
    if len(types) != len(values):
        raise InvalidInputError(f"{len(types)} constructor types but {len(values)} values")
    try:
        return abi_encode(types, [_normalize(t, a) for t, a in zip(types, values)])
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"cannot ABI-encode {types}: {e}")


def parse_types(csv_types: str) -> List[str]:
    return [t.strip() for t in csv_types.split(",") if t.strip()]


def call_data(signature: str, types: Sequence[str], values: Sequence[Any]) -> bytes:
    """Selector plus encoded arguments, e.g. ``initialize(string)``."""
    return function_signature_to_4byte_selector(signature) + encode_args(types, values)


def from_json(name: str, obj: dict) -> Artifact:
    bytecode = obj.get("bytecode")
    if isinstance(bytecode, dict):  # solc standard JSON output
        bytecode = bytecode.get("object")
    if not bytecode or strip0x(bytecode) == "":
        raise InvalidInputError(f"artifact {name} has no creation bytecode")
    return Artifact(
        name=obj.get("contractName", name),
        bytecode=to_bytes(bytecode, f"{name} bytecode"),
        abi=tuple(obj.get("abi", ())),
    )


class ArtifactStore:
    """Looks up ``<Name>.json`` anywhere under ``root``."""

    def __init__(self, root):
        self.root = Path(root)

    def path_for(self, name: str) -> Path:
        hits = sorted(p for p in self.root.rglob(f"{name}.json") if not p.name.endswith(".dbg.json"))
        if not hits:
            raise InvalidInputError(f"artifact {name!r} not found under {self.root}")
        if len(hits) > 1:
            log.warning("artifact %s found %d times, using %s", name, len(hits), hits[0])
        return hits[0]

    def read(self, name: str) -> Artifact:
        path = self.path_for(name)
        with open(path, "r", encoding="utf-8") as f:
            try:
                obj = json.load(f)
            except json.JSONDecodeError as e:
                raise InvalidInputError(f"{path}: {e}")
        return from_json(name, obj)


def build_init_code(bytecode, ctor_types, ctor_args):
    """Init code from raw bytecode and a CSV of constructor types (CLI form)."""
    if bytecode is None:
        return None
    code = to_bytes(bytecode, "bytecode")
    if ctor_types is None or ctor_types.strip() == "":
        return code
    return code + encode_args(parse_types(ctor_types), list(ctor_args))
