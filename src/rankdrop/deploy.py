"""Deploys the UserRank and AirdropFactory contracts from Hardhat artifacts."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from eth_utils import to_checksum_address

from rankdrop.chain.pipeline import TransactionPipeline
from rankdrop.chain.schemas import AIRDROP_FACTORY, USER_RANK, Artifact, event_schemas
from rankdrop.models.config import DeployConfig, UserRankConfig
from rankdrop.models.records import DeployedContract

log = logging.getLogger(__name__)


class ContractDeployer:
    """Deploys the two long-lived contracts with their constructor parameters."""

    def __init__(
        self,
        pipeline: TransactionPipeline,
        params: DeployConfig,
        names: UserRankConfig | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._params = params
        self._names = names or UserRankConfig()

    async def deploy_user_rank(self, artifact: Artifact) -> DeployedContract:
        """Deploy UserRank and read its tag class id from the constructor's event."""
        p = self._params
        if len(p.user_rank_plc_fees) != len(p.user_rank_gds_fees):
            raise ValueError("user_rank_plc_fees and user_rank_gds_fees must have the same length")
        args = [
            to_checksum_address(p.tag_class_address),
            to_checksum_address(p.tag_address),
            to_checksum_address(p.plc_address),
            [int(f) for f in p.user_rank_plc_fees],
            to_checksum_address(p.gds_address),
            [int(f) for f in p.user_rank_gds_fees],
        ]
        event = self._names.deploy_event if self._names.deploy_event in event_schemas(artifact.abi) else None
        address, receipt, record = await self._pipeline.deploy(
            USER_RANK, artifact.abi, artifact.bytecode, args, event,
        )
        tag_class_id = None
        if record is not None:
            tag_class_id = int(record.args[self._names.tag_class_field])
        log.info("UserRank deploy to: %s UserRankTagClassId: %s", address, tag_class_id)
        return DeployedContract(
            name=USER_RANK, address=address, receipt=receipt, tag_class_id=tag_class_id,
        )

    async def deploy_airdrop_factory(self, artifact: Artifact) -> DeployedContract:
        p = self._params
        args = [
            to_checksum_address(p.tag_class_address),
            to_checksum_address(p.tag_address),
            to_checksum_address(p.plc_address),
            int(p.airdrop_plc_fee),
        ]
        address, receipt, _ = await self._pipeline.deploy(
            AIRDROP_FACTORY, artifact.abi, artifact.bytecode, args,
        )
        log.info("AirdropFactory deploy to: %s", address)
        return DeployedContract(name=AIRDROP_FACTORY, address=address, receipt=receipt)

    async def deploy_all(
        self, user_rank: Artifact, airdrop_factory: Artifact
    ) -> list[DeployedContract]:
        """UserRank first, then AirdropFactory, matching the deployment order on-chain."""
        return [
            await self.deploy_user_rank(user_rank),
            await self.deploy_airdrop_factory(airdrop_factory),
        ]


def save_deployments(path: str | Path, network: str, deployed: list[DeployedContract]) -> Path:
    """Merge deployed addresses into deployments.json, keyed by network."""
    p = Path(path).expanduser()
    data: dict = {}
    if p.exists():
        with open(p) as f:
            data = json.load(f)

    section = data.setdefault(network, {})
    for contract in deployed:
        entry = {"address": contract.address, "tx_hash": contract.receipt.tx_hash}
        if contract.tag_class_id is not None:
            entry["tag_class_id"] = contract.tag_class_id
        section[contract.name] = entry

    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w") as f:
        json.dump(data, f, indent=2)
    return p
