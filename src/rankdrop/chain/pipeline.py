"""Transaction pipeline - submit, wait for confirmation, fetch receipt, decode.

The outcome of an operation is found by matching the expected event's
signature across every log the target emitted in the receipt. Each
method emits a different number of events in a different order, so no
fixed log position is assumed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from rankdrop.chain.decoder import decode, matches
from rankdrop.chain.schemas import event_schemas
from rankdrop.context import ChainContext
from rankdrop.errors import (
    AmbiguousEventMatch,
    ConfirmationTimeout,
    DecodeError,
    EventDecodeFailed,
    ExpectedEventNotFound,
    TransactionReverted,
)
from rankdrop.models.chain import ContractRef, PendingTx, Receipt
from rankdrop.models.events import EventRecord, EventSchema, TxOutcome

log = logging.getLogger(__name__)


def _short(value: str) -> str:
    return value[:10] if value else "?"


class TransactionPipeline:
    """Runs one logical on-chain operation to a decoded outcome.

    Writes from the same signer are queued through the context's
    SubmissionQueue. The pipeline mutates no client state.
    """

    def __init__(self, ctx: ChainContext) -> None:
        self._ctx = ctx
        self._gateway = ctx.gateway

    # ── Public API ─────────────────────────────────────────

    async def execute(
        self,
        target: ContractRef,
        method: str,
        args: Sequence[Any],
        expected_event: EventSchema | str,
    ) -> EventRecord:
        """Run ``method`` on ``target`` and return its decoded outcome event."""
        outcome = await self.execute_detailed(target, method, args, expected_event)
        return outcome.record

    async def execute_detailed(
        self,
        target: ContractRef,
        method: str,
        args: Sequence[Any],
        expected_event: EventSchema | str,
    ) -> TxOutcome:
        """Like execute(), but also return the receipt."""
        schema = self._resolve_schema(target, method, expected_event)

        receipt = await self._submit_and_confirm(
            method,
            target.address,
            lambda: self._gateway.submit(target, method, list(args)),
        )
        self._check_status(receipt, method, target.address)
        record = self._select(receipt, schema, method, target.address)
        return TxOutcome(record=record, receipt=receipt)

    async def deploy(
        self,
        name: str,
        abi: list[dict[str, Any]],
        bytecode: str,
        args: Sequence[Any],
        expected_event: EventSchema | str | None = None,
    ) -> tuple[str, Receipt, EventRecord | None]:
        """Deploy a contract and optionally decode an event from its constructor.

        Returns (address, receipt, record-or-None).
        """
        method = f"{name}.constructor"
        schema: EventSchema | None = None
        if expected_event is not None:
            schema = self._resolve_schema(
                ContractRef(name=name, address="", abi=abi), method, expected_event,
            )

        receipt = await self._submit_and_confirm(
            method, "", lambda: self._gateway.deploy(abi, bytecode, list(args)),
        )
        self._check_status(receipt, method, "")
        address = receipt.contract_address
        if not address:
            raise ExpectedEventNotFound(
                "Deployment receipt has no contract address", method=method, address="",
                receipt=receipt,
            )

        record = None
        if schema is not None:
            record = self._select(receipt, schema, method, address)
        log.info("%s deployed at %s (tx=%s)", name, address, _short(receipt.tx_hash))
        return address, receipt, record

    # ── Stages ─────────────────────────────────────────────

    async def _submit_and_confirm(self, method: str, address: str, send) -> Receipt:
        lock = self._ctx.queue.lock_for(self._ctx.signer)
        async with lock:
            pending: PendingTx = await send()
            log.info("Submitted %s to %s (tx=%s)", method, address or "<create>", pending.tx_hash)
            try:
                await asyncio.wait_for(
                    self._gateway.await_mined(pending), self._ctx.confirmation_timeout,
                )
            except asyncio.TimeoutError:
                log.error(
                    "%s not confirmed within %.1fs (tx=%s)",
                    method, self._ctx.confirmation_timeout, pending.tx_hash,
                )
                raise ConfirmationTimeout(
                    f"Not confirmed within {self._ctx.confirmation_timeout}s",
                    method=method,
                    address=address,
                    tx_hash=pending.tx_hash,
                ) from None

        receipt = await self._gateway.get_receipt(pending.tx_hash)
        log.debug(
            "Receipt for %s: status=%s block=%d logs=%d",
            _short(receipt.tx_hash), receipt.status, receipt.block_number, len(receipt.logs),
        )
        return receipt

    def _check_status(self, receipt: Receipt, method: str, address: str) -> None:
        if not receipt.status:
            log.error("%s reverted on %s (tx=%s)", method, address or "<create>", receipt.tx_hash)
            raise TransactionReverted(
                "Transaction reverted", method=method, address=address, receipt=receipt,
            )

    def _resolve_schema(
        self, target: ContractRef, method: str, expected_event: EventSchema | str,
    ) -> EventSchema:
        if isinstance(expected_event, EventSchema):
            return expected_event
        schema = event_schemas(target.abi).get(expected_event)
        if schema is None:
            raise ExpectedEventNotFound(
                f"{target.name} ABI declares no event {expected_event!r}",
                method=method,
                address=target.address,
            )
        return schema

    def _select(
        self, receipt: Receipt, schema: EventSchema, method: str, address: str,
    ) -> EventRecord:
        """Decode the one log from ``address`` that carries ``schema``'s signature."""
        candidates = [
            entry for entry in receipt.logs
            if matches(schema, entry) and entry.address.lower() == address.lower()
        ]
        if not candidates:
            raise ExpectedEventNotFound(
                f"No {schema.name} event in {len(receipt.logs)} logs",
                method=method, address=address, receipt=receipt,
            )
        if len(candidates) > 1:
            raise AmbiguousEventMatch(
                f"{len(candidates)} {schema.name} events at log indexes "
                f"{[c.log_index for c in candidates]}",
                method=method, address=address, receipt=receipt,
            )
        try:
            record = decode(
                schema, candidates[0], expected_address=address, tx_hash=receipt.tx_hash,
            )
        except DecodeError as exc:
            log.error("%s log from %s did not decode: %s", schema.name, address, exc)
            raise EventDecodeFailed(
                str(exc), method=method, address=address, receipt=receipt,
            ) from exc
        log.debug("Decoded %s from log %d: %s", record.name, record.log_index, record.args)
        return record
