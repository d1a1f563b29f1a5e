"""TransactionExecutor protocol - what the contract clients need from the pipeline."""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from rankdrop.models.chain import ContractRef
from rankdrop.models.events import EventRecord, EventSchema, TxOutcome


class TransactionExecutor(Protocol):
    """Runs one logical operation: submit, confirm, fetch receipt, decode."""

    async def execute(
        self,
        target: ContractRef,
        method: str,
        args: Sequence[Any],
        expected_event: EventSchema | str,
    ) -> EventRecord:
        ...

    async def execute_detailed(
        self,
        target: ContractRef,
        method: str,
        args: Sequence[Any],
        expected_event: EventSchema | str,
    ) -> TxOutcome:
        ...
