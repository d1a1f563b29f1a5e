"""Lifecycle runner - wires all components together and drives the full flow."""

from __future__ import annotations

import logging
from dataclasses import replace

from rankdrop.airdrop.client import AirdropClient
from rankdrop.airdrop.factory import AirdropFactoryClient
from rankdrop.airdrop.lifecycle import UserLifecycleStateMachine
from rankdrop.chain.gateway import Web3ChainGateway
from rankdrop.chain.pipeline import TransactionPipeline
from rankdrop.chain.schemas import AIRDROP, AIRDROP_FACTORY, USER_RANK, load_abis
from rankdrop.context import ChainContext
from rankdrop.interfaces.gateway import ChainGateway
from rankdrop.models.config import ClientConfig
from rankdrop.models.records import ContractInstance, LifecycleReport, UserState
from rankdrop.rank.tracker import RankProgressionTracker

log = logging.getLogger(__name__)


def make_gateway(cfg: ClientConfig) -> Web3ChainGateway:
    return Web3ChainGateway(
        rpc_url=cfg.rpc_url,
        private_key=cfg.private_key,
        chain_id=cfg.chain_id,
        receipt_timeout=cfg.confirmation_timeout,
        poll_latency=cfg.poll_latency,
    )


class LifecycleRunner:
    """Owns the context and every contract client for one signing identity.

    Runs the lifecycle in order: upgrade rank, read it back, create an
    airdrop, initialize the signer, activate the signer.
    """

    def __init__(self, cfg: ClientConfig, gateway: ChainGateway | None = None) -> None:
        self._cfg = cfg
        self.ctx = ChainContext(
            gateway=gateway if gateway is not None else make_gateway(cfg),
            abis=load_abis(cfg.artifacts_dir),
            confirmation_timeout=cfg.confirmation_timeout,
        )
        self.pipeline = TransactionPipeline(self.ctx)
        self.lifecycle = UserLifecycleStateMachine(cfg.airdrop)
        self.factory = AirdropFactoryClient(self.pipeline, self.lifecycle)
        self.airdrop = AirdropClient(self.ctx, self.pipeline, self.lifecycle, cfg.airdrop)

        self.rank: RankProgressionTracker | None = None
        if cfg.user_rank_address:
            self.rank = RankProgressionTracker(
                self.ctx,
                self.pipeline,
                self.ctx.contract(USER_RANK, cfg.user_rank_address),
                cfg.user_rank,
            )

    @property
    def signer(self) -> str:
        return self.ctx.signer

    async def close(self) -> None:
        await self.ctx.gateway.close()

    async def create_airdrop(self) -> ContractInstance:
        if not self._cfg.airdrop_factory_address:
            raise ValueError("No AirdropFactory address configured")
        names = self._cfg.airdrop
        return await self.factory.create_instance(
            self.ctx.contract(AIRDROP_FACTORY, self._cfg.airdrop_factory_address),
            names.create_method,
            names.create_event,
            instance_abi=self.ctx.abis[AIRDROP],
            address_field=names.address_field,
        )

    def user_snapshot(self, instance: str, address: str) -> UserState:
        """Lifecycle state with the tracker's cached rank filled in."""
        state = self.lifecycle.state(instance, address)
        if self.rank is not None:
            state = replace(state, rank=self.rank.cached_rank(address) or 0)
        return state

    async def progress_rank(self, report: LifecycleReport) -> None:
        if self.rank is None:
            log.info("No UserRank address configured, skipping rank progression")
            return
        report.rank_after_upgrade = await self.rank.upgrade()
        report.rank_queried = await self.rank.current_rank()

    async def airdrop_lifecycle(self, report: LifecycleReport) -> None:
        instance = await self.create_airdrop()
        report.airdrop_address = instance.address
        report.tx_hashes.append(instance.created_at.tx_hash)

        await self.airdrop.init_users(instance, [self.signer])
        await self.airdrop.is_initialized(instance)
        await self.airdrop.is_activated(instance)
        report.snapshots.append(("initialized", self.user_snapshot(instance.address, self.signer)))

        await self.airdrop.activate(instance)
        await self.airdrop.is_activated(instance)
        report.snapshots.append(("activated", self.user_snapshot(instance.address, self.signer)))

    async def run(self) -> LifecycleReport:
        """Rank progression first, then the airdrop lifecycle."""
        log.info("Running lifecycle as %s on %s", self.signer, self._cfg.network)
        report = LifecycleReport(signer=self.signer)
        await self.progress_rank(report)
        await self.airdrop_lifecycle(report)
        return report
