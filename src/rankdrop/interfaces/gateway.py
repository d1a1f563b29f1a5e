"""ChainGateway protocol - the RPC layer the pipeline submits through."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from rankdrop.models.chain import ContractRef, PendingTx, Receipt


class ChainGateway(Protocol):
    """Submits signed transactions, reports confirmations, serves view calls.

    Retries on transient network failure are the gateway's responsibility.
    """

    @property
    def signer(self) -> str:
        """Checksummed address of the signing identity."""
        ...

    async def submit(
        self, target: ContractRef, method: str, args: Sequence[Any]
    ) -> PendingTx:
        """Sign and broadcast a call to ``method`` on ``target``."""
        ...

    async def deploy(
        self, abi: list[dict[str, Any]], bytecode: str, args: Sequence[Any]
    ) -> PendingTx:
        """Sign and broadcast a contract creation."""
        ...

    async def await_mined(self, pending: PendingTx) -> Receipt:
        """Suspend until the network reports the transaction mined."""
        ...

    async def get_receipt(self, tx_hash: str) -> Receipt:
        """Fetch the receipt of a mined transaction."""
        ...

    async def call(
        self, target: ContractRef, method: str, args: Sequence[Any]
    ) -> Any:
        """Run a read-only view function."""
        ...

    async def close(self) -> None:
        ...
