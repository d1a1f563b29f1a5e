"""Contract ABIs and the event schemas derived from them.

The fragments below cover only what the client calls and decodes. Full
ABIs (and bytecode, for deployment) come from the Hardhat artifacts when
they are available.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rankdrop.models.events import EventField, EventSchema

log = logging.getLogger(__name__)

USER_RANK = "UserRank"
AIRDROP_FACTORY = "AirdropFactory"
AIRDROP = "Airdrop"


def _event(name: str, *inputs: tuple[str, str, bool]) -> dict[str, Any]:
    return {
        "anonymous": False,
        "inputs": [
            {"indexed": indexed, "internalType": typ, "name": n, "type": typ}
            for n, typ, indexed in inputs
        ],
        "name": name,
        "type": "event",
    }


def _function(
    name: str,
    inputs: list[tuple[str, str]],
    outputs: list[str] | None = None,
    mutability: str = "nonpayable",
) -> dict[str, Any]:
    return {
        "inputs": [{"internalType": t, "name": n, "type": t} for n, t in inputs],
        "name": name,
        "outputs": [{"internalType": t, "name": "", "type": t} for t in outputs or []],
        "stateMutability": mutability,
        "type": "function",
    }


USER_RANK_ABI: list[dict[str, Any]] = [
    _function("upgradeRank", []),
    _function("getUserRank", [("user", "address")], ["uint256"], "view"),
    _event("RankChanged", ("user", "address", True), ("newRank", "uint256", False)),
    _event("UserRankTagClassCreated", ("userRankTagClassId", "uint256", False)),
]

AIRDROP_FACTORY_ABI: list[dict[str, Any]] = [
    _function("createAirdropContract", []),
    _event("AirdropCreated", ("contractAddress", "address", False)),
]

AIRDROP_ABI: list[dict[str, Any]] = [
    _function("userInit", [("users", "address[]")]),
    _function("activate", []),
    _function("isInit", [("user", "address")], ["bool"], "view"),
    _function("isActivate", [("user", "address")], ["bool"], "view"),
    _event("UserInit", ("users", "address[]", False)),
    _event("Activate", ("tagClassId", "uint256", False), ("user", "address", True)),
]

DEFAULT_ABIS: dict[str, list[dict[str, Any]]] = {
    USER_RANK: USER_RANK_ABI,
    AIRDROP_FACTORY: AIRDROP_FACTORY_ABI,
    AIRDROP: AIRDROP_ABI,
}


def _canonical_type(entry: dict[str, Any]) -> str:
    """Expand tuple types to their component form, e.g. ``(uint256,address)[]``."""
    typ = entry["type"]
    if typ.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in entry.get("components", []))
        return f"({inner}){typ[len('tuple'):]}"
    return typ


def schema_from_abi(entry: dict[str, Any]) -> EventSchema:
    """Build an EventSchema from one ABI ``event`` entry."""
    if entry.get("type") != "event":
        raise ValueError(f"ABI entry {entry.get('name')!r} is not an event")
    return EventSchema(
        name=entry["name"],
        fields=tuple(
            EventField(
                name=i.get("name", ""),
                type=_canonical_type(i),
                indexed=bool(i.get("indexed", False)),
            )
            for i in entry.get("inputs", [])
        ),
        anonymous=bool(entry.get("anonymous", False)),
    )


def event_schemas(abi: list[dict[str, Any]]) -> dict[str, EventSchema]:
    """All event schemas declared in an ABI, keyed by event name."""
    return {e["name"]: schema_from_abi(e) for e in abi if e.get("type") == "event"}


@dataclass(frozen=True)
class Artifact:
    """A compiled contract: ABI plus creation bytecode."""

    name: str
    abi: list[dict[str, Any]]
    bytecode: str


def artifact_path(artifacts_dir: str | Path, name: str) -> Path:
    """Hardhat layout: ``artifacts/contracts/<Name>.sol/<Name>.json``."""
    return Path(artifacts_dir).expanduser() / "contracts" / f"{name}.sol" / f"{name}.json"


def load_artifact(path: str | Path) -> Artifact:
    """Load a Hardhat artifact JSON file."""
    p = Path(path).expanduser()
    with open(p) as f:
        data = json.load(f)
    return Artifact(
        name=data.get("contractName", p.stem),
        abi=data["abi"],
        bytecode=data.get("bytecode", ""),
    )


def load_abis(artifacts_dir: str | Path | None = None) -> dict[str, list[dict[str, Any]]]:
    """ABIs for the three contracts, preferring compiled artifacts over the defaults."""
    abis = {name: list(abi) for name, abi in DEFAULT_ABIS.items()}
    if artifacts_dir is None:
        return abis
    for name in abis:
        p = artifact_path(artifacts_dir, name)
        if p.exists():
            abis[name] = load_artifact(p).abi
            log.debug("Loaded %s ABI from %s", name, p)
    return abis
