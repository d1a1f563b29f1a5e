"""Airdrop factory client - asks the factory for a new Airdrop contract."""

from __future__ import annotations

import logging
from typing import Any

from eth_utils import is_address, to_checksum_address

from rankdrop.airdrop.lifecycle import UserLifecycleStateMachine
from rankdrop.chain.schemas import event_schemas
from rankdrop.errors import InstanceCreationFailed, RankdropError
from rankdrop.interfaces.pipeline import TransactionExecutor
from rankdrop.models.chain import ContractRef
from rankdrop.models.events import EventRecord, EventSchema
from rankdrop.models.records import ContractInstance

log = logging.getLogger(__name__)


def _instance_address(record: EventRecord, schema: EventSchema, field_name: str) -> Any:
    if field_name in record.args:
        return record.args[field_name]
    address_fields = [f.name for f in schema.fields if f.type == "address"]
    if len(address_fields) == 1:
        return record.args[address_fields[0]]
    return None


class AirdropFactoryClient:
    """Creates contract instances through a factory and records them."""

    def __init__(
        self,
        pipeline: TransactionExecutor,
        lifecycle: UserLifecycleStateMachine | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._lifecycle = lifecycle

    async def create_instance(
        self,
        factory: ContractRef,
        creation_method: str,
        creation_event: EventSchema | str,
        instance_abi: list[dict[str, Any]] | None = None,
        address_field: str = "contractAddress",
    ) -> ContractInstance:
        """Call the factory's creation method and return the new instance.

        Raises InstanceCreationFailed on any pipeline failure or if the
        event carries no usable address. Nothing is recorded in that case.
        """
        if isinstance(creation_event, str):
            schema = event_schemas(factory.abi).get(creation_event)
            if schema is None:
                raise InstanceCreationFailed(
                    f"{factory.name} ABI declares no event {creation_event!r}"
                )
        else:
            schema = creation_event

        log.info("Requesting new instance from factory %s via %s()", factory.address, creation_method)
        try:
            outcome = await self._pipeline.execute_detailed(factory, creation_method, [], schema)
        except RankdropError as exc:
            log.error("Instance creation via %s failed: %s", creation_method, exc)
            raise InstanceCreationFailed(f"{creation_method}() failed: {exc}") from exc

        raw = _instance_address(outcome.record, schema, address_field)
        if not isinstance(raw, str) or not is_address(raw) or int(raw, 16) == 0:
            raise InstanceCreationFailed(
                f"{schema.name} event carries no instance address (got {raw!r}, "
                f"tx={outcome.receipt.tx_hash})"
            )

        instance = ContractInstance(
            address=to_checksum_address(raw),
            created_at=outcome.receipt,
            abi=list(instance_abi or []),
        )
        if self._lifecycle is not None:
            self._lifecycle.register_instance(instance)
        log.info("New instance %s (tx=%s)", instance.address, outcome.receipt.tx_hash)
        return instance
