"""Airdrop client - initializes and activates participants on an Airdrop instance."""

from __future__ import annotations

import logging
from typing import Sequence

from eth_utils import to_checksum_address

from rankdrop.airdrop.lifecycle import UserLifecycleStateMachine
from rankdrop.chain.schemas import AIRDROP
from rankdrop.context import ChainContext
from rankdrop.interfaces.pipeline import TransactionExecutor
from rankdrop.models.chain import ContractRef
from rankdrop.models.config import AirdropConfig
from rankdrop.models.records import ContractInstance, UserState

log = logging.getLogger(__name__)


class AirdropClient:
    """Drives userInit() / activate() and the isInit / isActivate queries.

    State changes reach the lifecycle machine only after the pipeline has
    decoded the confirming event; a revert leaves the cache untouched.
    """

    def __init__(
        self,
        ctx: ChainContext,
        pipeline: TransactionExecutor,
        lifecycle: UserLifecycleStateMachine,
        names: AirdropConfig | None = None,
    ) -> None:
        self._ctx = ctx
        self._pipeline = pipeline
        self._lifecycle = lifecycle
        self._names = names or AirdropConfig()

    def _ref(self, instance: ContractInstance | str) -> ContractRef:
        if isinstance(instance, ContractInstance):
            abi = instance.abi or self._ctx.abis[AIRDROP]
            return ContractRef(name=AIRDROP, address=instance.address, abi=abi)
        return self._ctx.contract(AIRDROP, instance)

    async def init_users(
        self, instance: ContractInstance | str, addresses: Sequence[str]
    ) -> list[UserState]:
        """Add ``addresses`` to the airdrop's tag class."""
        ref = self._ref(instance)
        users = [to_checksum_address(a) for a in addresses]
        record = await self._pipeline.execute(
            ref, self._names.init_method, [users], self._names.init_event,
        )
        return self._lifecycle.apply(ref.address, record)

    async def activate(self, instance: ContractInstance | str) -> UserState:
        """Activate the signer. Reverts on-chain unless the signer was initialized."""
        ref = self._ref(instance)
        record = await self._pipeline.execute(
            ref, self._names.activate_method, [], self._names.activate_event,
        )
        log.info(
            "Activate TagClassId:%s address:%s",
            record.args.get("tagClassId"), record.args.get(self._names.user_field),
        )
        (state,) = self._lifecycle.apply(ref.address, record)
        return state

    async def is_initialized(self, instance: ContractInstance | str, address: str | None = None) -> bool:
        ref = self._ref(instance)
        user = to_checksum_address(address or self._ctx.signer)
        value = bool(await self._ctx.gateway.call(ref, self._names.is_initialized_query, [user]))
        self._lifecycle.resync(ref.address, user, initialized=value)
        log.info("Address:%s isInit:%s", user, value)
        return value

    async def is_activated(self, instance: ContractInstance | str, address: str | None = None) -> bool:
        ref = self._ref(instance)
        user = to_checksum_address(address or self._ctx.signer)
        value = bool(await self._ctx.gateway.call(ref, self._names.is_activated_query, [user]))
        if value:
            self._lifecycle.resync(ref.address, user, initialized=True, activated=True)
        else:
            self._lifecycle.resync(ref.address, user, activated=False)
        log.info("Address:%s isActivate:%s", user, value)
        return value

    async def refresh(self, instance: ContractInstance | str, address: str | None = None) -> UserState:
        """Re-read both flags from chain and return the resynced state."""
        ref = self._ref(instance)
        user = to_checksum_address(address or self._ctx.signer)
        await self.is_initialized(ref.address, user)
        await self.is_activated(ref.address, user)
        return self._lifecycle.state(ref.address, user)
