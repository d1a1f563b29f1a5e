"""Chain-level records: contract references, pending txs, receipts, logs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ContractRef:
    """A deployed contract the client talks to, with the ABI used to encode calls."""

    name: str  # "UserRank" | "AirdropFactory" | "Airdrop"
    address: str  # checksummed
    abi: list[dict[str, Any]] = field(default_factory=list, compare=False, repr=False)


@dataclass(frozen=True)
class PendingTx:
    """A submitted transaction that has not been confirmed yet."""

    tx_hash: str  # 0x-prefixed
    method: str
    target: str  # contract address, or "" for a deployment


@dataclass(frozen=True)
class RawLog:
    """One log entry as found in a receipt."""

    address: str  # emitting contract, checksummed
    topics: tuple[bytes, ...]
    data: bytes
    log_index: int = 0


@dataclass(frozen=True)
class Receipt:
    """Outcome of a mined transaction."""

    tx_hash: str
    status: bool  # False if the transaction reverted
    block_number: int
    logs: tuple[RawLog, ...] = ()
    contract_address: str | None = None  # set for deployments
