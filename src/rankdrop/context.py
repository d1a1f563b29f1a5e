"""Explicit context shared by the pipeline and the contract clients."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from eth_utils import to_checksum_address

from rankdrop.interfaces.gateway import ChainGateway
from rankdrop.models.chain import ContractRef


class SubmissionQueue:
    """One FIFO lock per signing identity.

    A signer has a single nonce sequence, so its writes must go out one at
    a time. asyncio.Lock wakes waiters in arrival order.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, signer: str) -> asyncio.Lock:
        key = signer.lower()
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock


@dataclass
class ChainContext:
    """Gateway handle, signer identity and loaded ABIs, passed to each component."""

    gateway: ChainGateway
    abis: dict[str, list[dict[str, Any]]]
    confirmation_timeout: float = 120.0
    queue: SubmissionQueue = field(default_factory=SubmissionQueue)

    @property
    def signer(self) -> str:
        return self.gateway.signer

    def contract(self, name: str, address: str) -> ContractRef:
        """Bind a loaded ABI to a deployed address."""
        if name not in self.abis:
            raise KeyError(f"No ABI loaded for {name}")
        return ContractRef(name=name, address=to_checksum_address(address), abi=self.abis[name])
